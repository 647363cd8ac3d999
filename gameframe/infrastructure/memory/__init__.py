"""
In-memory entity store.

Used in mock mode for local development without Snowflake credentials.
"""

from .store import MockEntityStore

__all__ = ["MockEntityStore"]
