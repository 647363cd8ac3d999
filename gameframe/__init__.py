"""
GameFrame - team feedback and activity digests for coaches and players.

This package contains the complete application:
- core: Framework-agnostic digest engine
- infrastructure: Snowflake and in-memory entity stores
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
