"""
Repository pattern implementations for Snowflake.

Repositories translate between domain models and database rows.
"""

from .directories import (
    SnowflakeCommentStore,
    SnowflakeGameDirectory,
    SnowflakeKeyMomentStore,
    SnowflakeTeamDirectory,
    SnowflakeUserDirectory,
    create_snowflake_directories,
)

__all__ = [
    "SnowflakeCommentStore",
    "SnowflakeGameDirectory",
    "SnowflakeKeyMomentStore",
    "SnowflakeTeamDirectory",
    "SnowflakeUserDirectory",
    "create_snowflake_directories",
]
