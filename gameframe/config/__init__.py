"""
GameFrame configuration.

Settings are read from the environment (or a .env file). Mock mode
swaps Snowflake for the in-memory entity store.
"""

from .settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
