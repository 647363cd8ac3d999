"""
In-memory entity store for local development.

Mock mode keeps teams, games, comments, key moments and users in
dictionaries, so the API can be exercised without provisioning
Snowflake. The five directory classes are thin views over one shared
MockEntityStore.

Not suitable for production, but perfect for development and testing.
"""

import json
import logging
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Union

from ...core.digest.directories import EntityDirectories
from ...core.digest.errors import NotFoundError
from ...core.digest.models import Comment, Game, KeyMoment, Team, User, UserRole

logger = logging.getLogger(__name__)


class MockEntityStore:
    """Entity tables held in memory, keyed by id."""

    def __init__(self) -> None:
        self.teams: dict[str, Team] = {}
        self.games: dict[str, Game] = {}
        self.comments: dict[str, Comment] = {}
        self.key_moments: dict[str, KeyMoment] = {}
        self.users: dict[str, User] = {}
        logger.info("Initialized mock entity store (in-memory)")

    # -----------------------------------------------------------------------
    # Seeding
    # -----------------------------------------------------------------------

    def add_team(self, team: Team) -> Team:
        self.teams[team.team_id] = team
        return team

    def add_game(self, game: Game) -> Game:
        self.games[game.game_id] = game
        return game

    def add_user(self, user: User) -> User:
        self.users[user.user_id] = user
        return user

    def add_key_moment(self, key_moment: KeyMoment) -> KeyMoment:
        self.key_moments[key_moment.key_moment_id] = key_moment
        return key_moment

    def add_comment(self, comment: Comment) -> Comment:
        """
        Store a comment, filling in its team from the game if needed.

        Comments live under their team, so a comment whose game is
        unknown must say which team it belongs to.
        """
        if comment.team_id is None:
            game = self.games.get(comment.game_id)
            if game is None:
                raise ValueError(
                    f"Comment {comment.comment_id} has no team and game "
                    f"{comment.game_id} is unknown"
                )
            comment = replace(comment, team_id=game.team_id)
        self.comments[comment.comment_id] = comment
        return comment

    def clear(self) -> None:
        for table in (self.teams, self.games, self.comments, self.key_moments, self.users):
            table.clear()

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "MockEntityStore":
        """
        Load seed data from a JSON file.

        Expected top-level keys: teams, games, users, key_moments,
        comments. Each holds a list of objects using the same field
        names as the models; timestamps are ISO 8601.
        """
        with open(path, encoding="utf-8") as f:
            data = json.load(f)

        store = cls()
        for item in data.get("teams", []):
            store.add_team(Team(
                team_id=item["team_id"],
                name=item.get("name", ""),
                coach_ids=tuple(item.get("coach_ids", [])),
                player_ids=tuple(item.get("player_ids", [])),
            ))
        for item in data.get("games", []):
            store.add_game(Game(
                game_id=item["game_id"],
                team_id=item["team_id"],
                title=item.get("title", ""),
            ))
        for item in data.get("users", []):
            store.add_user(User(
                user_id=item["user_id"],
                role=UserRole.parse(item.get("role")),
                first_name=item.get("first_name", ""),
                last_name=item.get("last_name", ""),
                email=item.get("email"),
            ))
        for item in data.get("key_moments", []):
            store.add_key_moment(KeyMoment(
                key_moment_id=item["key_moment_id"],
                game_id=item["game_id"],
                team_id=item["team_id"],
                feedback_for=tuple(item.get("feedback_for", [])),
                uploaded_by=item.get("uploaded_by"),
            ))
        for item in data.get("comments", []):
            store.add_comment(Comment(
                comment_id=item["comment_id"],
                game_id=item["game_id"],
                key_moment_id=item["key_moment_id"],
                author_id=item["author_id"],
                body=item.get("body", ""),
                created_at=_parse_timestamp(item["created_at"]),
                team_id=item.get("team_id"),
                transcript_id=item.get("transcript_id"),
                parent_comment_id=item.get("parent_comment_id"),
            ))

        logger.info(
            "Loaded mock entity store",
            extra={
                "path": str(path),
                "teams": len(store.teams),
                "comments": len(store.comments),
            }
        )
        return store

    def directories(self) -> EntityDirectories:
        return EntityDirectories(
            teams=MockTeamDirectory(self),
            comments=MockCommentStore(self),
            games=MockGameDirectory(self),
            key_moments=MockKeyMomentStore(self),
            users=MockUserDirectory(self),
        )


def _parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed


# ---------------------------------------------------------------------------
# Directory views
# ---------------------------------------------------------------------------

class MockTeamDirectory:

    def __init__(self, store: MockEntityStore) -> None:
        self._store = store

    async def teams_coached_by(self, coach_id: str) -> list[str]:
        return [t.team_id for t in self._store.teams.values() if coach_id in t.coach_ids]

    async def teams_enrolled_by(self, player_id: str) -> list[str]:
        return [t.team_id for t in self._store.teams.values() if player_id in t.player_ids]


class MockCommentStore:

    def __init__(self, store: MockEntityStore) -> None:
        self._store = store

    async def fetch_since(
        self,
        team_ids: list[str],
        since: datetime,
    ) -> list[Comment]:
        """Newest first, like the real store."""
        if not team_ids:
            return []
        wanted = set(team_ids)
        recent = [
            c for c in self._store.comments.values()
            if c.team_id in wanted and c.created_at >= since
        ]
        return sorted(recent, key=lambda c: c.created_at, reverse=True)


class MockGameDirectory:

    def __init__(self, store: MockEntityStore) -> None:
        self._store = store

    async def team_for_game(self, game_id: str) -> str:
        game = self._store.games.get(game_id)
        if game is None:
            raise NotFoundError("game", game_id)
        return game.team_id

    async def title_for_game(self, team_id: str, game_id: str) -> str:
        game = self._store.games.get(game_id)
        if game is None or game.team_id != team_id:
            raise NotFoundError("game title", game_id)
        return game.title


class MockKeyMomentStore:

    def __init__(self, store: MockEntityStore) -> None:
        self._store = store

    async def get(
        self,
        team_id: str,
        game_id: str,
        key_moment_id: str,
    ) -> KeyMoment:
        key_moment = self._store.key_moments.get(key_moment_id)
        if (
            key_moment is None
            or key_moment.team_id != team_id
            or key_moment.game_id != game_id
        ):
            raise NotFoundError("key moment", key_moment_id)
        return key_moment


class MockUserDirectory:

    def __init__(self, store: MockEntityStore) -> None:
        self._store = store

    async def get(self, user_id: str) -> User:
        user = self._store.users.get(user_id)
        if user is None:
            raise NotFoundError("user", user_id)
        return user

