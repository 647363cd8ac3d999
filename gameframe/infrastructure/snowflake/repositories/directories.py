"""
Snowflake-backed entity directories.

Implements the digest's store Protocols on top of these tables:

    teams        (team_id, team_name, coaches ARRAY, players ARRAY)
    games        (game_id, team_id, title)
    comments     (comment_id, team_id, game_id, key_moment_id, transcript_id,
                  uploaded_by, body, created_at TIMESTAMP_TZ, parent_comment_id)
    key_moments  (key_moment_id, team_id, game_id, uploaded_by, feedback_for ARRAY)
    users        (user_id, user_type, first_name, last_name, email)

The connector is synchronous, so every query runs in a worker thread.
Connector failures are logged and re-raised as RemoteFetchError; a
point lookup that returns no row raises NotFoundError.
"""

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any

from ....core.digest.directories import EntityDirectories
from ....core.digest.errors import NotFoundError, RemoteFetchError
from ....core.digest.models import Comment, KeyMoment, User, UserRole
from ..client import SnowflakeConnection

logger = logging.getLogger(__name__)


def _as_list(value: Any) -> list[str]:
    """ARRAY columns come back as JSON text from the connector."""
    if value is None:
        return []
    if isinstance(value, str):
        value = json.loads(value)
    return [str(item) for item in value]


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class _SnowflakeReader:
    """Shared query plumbing for the directory repositories."""

    def __init__(self, connection: SnowflakeConnection) -> None:
        self._conn = connection

    def _fetch(self, query: str, params: tuple) -> list[tuple]:
        cursor = self._conn.cursor()
        try:
            cursor.execute(query, params)
            return cursor.fetchall()
        finally:
            cursor.close()

    async def _query(self, query: str, params: tuple, description: str) -> list[tuple]:
        try:
            return await asyncio.to_thread(self._fetch, query, params)
        except Exception as e:
            logger.error(
                "Snowflake query failed",
                extra={"query": description, "error": str(e)}
            )
            raise RemoteFetchError(f"Failed to fetch {description}: {e}", cause=e) from e

    async def _query_one(
        self,
        query: str,
        params: tuple,
        kind: str,
        key: str,
    ) -> tuple:
        rows = await self._query(query, params, kind)
        if not rows:
            raise NotFoundError(kind, key)
        return rows[0]


class SnowflakeTeamDirectory(_SnowflakeReader):

    async def teams_coached_by(self, coach_id: str) -> list[str]:
        rows = await self._query(
            """
            SELECT team_id
            FROM teams
            WHERE ARRAY_CONTAINS(%s::VARIANT, coaches)
            ORDER BY team_id
            """,
            (coach_id,),
            "coached teams",
        )
        return [row[0] for row in rows]

    async def teams_enrolled_by(self, player_id: str) -> list[str]:
        rows = await self._query(
            """
            SELECT team_id
            FROM teams
            WHERE ARRAY_CONTAINS(%s::VARIANT, players)
            ORDER BY team_id
            """,
            (player_id,),
            "enrolled teams",
        )
        return [row[0] for row in rows]


class SnowflakeCommentStore(_SnowflakeReader):

    async def fetch_since(
        self,
        team_ids: list[str],
        since: datetime,
    ) -> list[Comment]:
        """Newest first. An empty team list never reaches the database."""
        if not team_ids:
            return []

        placeholders = ", ".join(["%s"] * len(team_ids))
        rows = await self._query(
            f"""
            SELECT
                comment_id,
                team_id,
                game_id,
                key_moment_id,
                transcript_id,
                uploaded_by,
                body,
                created_at,
                parent_comment_id
            FROM comments
            WHERE team_id IN ({placeholders})
              AND created_at >= %s
            ORDER BY created_at DESC
            """,
            (*team_ids, since),
            "recent comments",
        )

        comments: list[Comment] = []
        seen: set[str] = set()
        for row in rows:
            if row[0] in seen:
                continue
            seen.add(row[0])
            comments.append(Comment(
                comment_id=row[0],
                team_id=row[1],
                game_id=row[2],
                key_moment_id=row[3],
                transcript_id=row[4],
                author_id=row[5],
                body=row[6] or "",
                created_at=_as_utc(row[7]),
                parent_comment_id=row[8],
            ))
        return comments


class SnowflakeGameDirectory(_SnowflakeReader):

    async def team_for_game(self, game_id: str) -> str:
        row = await self._query_one(
            "SELECT team_id FROM games WHERE game_id = %s",
            (game_id,),
            "game",
            game_id,
        )
        return row[0]

    async def title_for_game(self, team_id: str, game_id: str) -> str:
        row = await self._query_one(
            "SELECT title FROM games WHERE team_id = %s AND game_id = %s",
            (team_id, game_id),
            "game title",
            game_id,
        )
        if row[0] is None:
            raise NotFoundError("game title", game_id)
        return row[0]


class SnowflakeKeyMomentStore(_SnowflakeReader):

    async def get(
        self,
        team_id: str,
        game_id: str,
        key_moment_id: str,
    ) -> KeyMoment:
        row = await self._query_one(
            """
            SELECT key_moment_id, game_id, team_id, feedback_for, uploaded_by
            FROM key_moments
            WHERE team_id = %s AND game_id = %s AND key_moment_id = %s
            """,
            (team_id, game_id, key_moment_id),
            "key moment",
            key_moment_id,
        )
        return KeyMoment(
            key_moment_id=row[0],
            game_id=row[1],
            team_id=row[2],
            feedback_for=tuple(_as_list(row[3])),
            uploaded_by=row[4],
        )


class SnowflakeUserDirectory(_SnowflakeReader):

    async def get(self, user_id: str) -> User:
        row = await self._query_one(
            """
            SELECT user_id, user_type, first_name, last_name, email
            FROM users
            WHERE user_id = %s
            """,
            (user_id,),
            "user",
            user_id,
        )
        return User(
            user_id=row[0],
            role=UserRole.parse(row[1]),
            first_name=row[2] or "",
            last_name=row[3] or "",
            email=row[4],
        )


def create_snowflake_directories(connection: SnowflakeConnection) -> EntityDirectories:
    """All five directories sharing one connection."""
    return EntityDirectories(
        teams=SnowflakeTeamDirectory(connection),
        comments=SnowflakeCommentStore(connection),
        games=SnowflakeGameDirectory(connection),
        key_moments=SnowflakeKeyMomentStore(connection),
        users=SnowflakeUserDirectory(connection),
    )
