"""
Interfaces for the stores a digest reads from.

Using Protocols here means the digest builder doesn't know whether it's
talking to Snowflake, an in-memory mock, or a test double. All methods
are async so real network-backed implementations never block the loop.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from .models import Comment, KeyMoment, User


class AuthProvider(Protocol):
    """Source of the currently authenticated user id."""

    async def current_user(self) -> str:
        """Return the user id, or raise AuthError if nobody is signed in."""
        ...


class TeamDirectory(Protocol):

    async def teams_coached_by(self, coach_id: str) -> list[str]:
        """Team ids coached by a user. Raises RemoteFetchError."""
        ...

    async def teams_enrolled_by(self, player_id: str) -> list[str]:
        """Team ids a player belongs to. Empty is a valid answer."""
        ...


class CommentStore(Protocol):

    async def fetch_since(
        self,
        team_ids: list[str],
        since: datetime,
    ) -> list[Comment]:
        """
        Comments on any of the teams' games created at or after `since`.

        Newest first, each comment once. Only the lower bound is pushed
        down to the store; the builder applies the upper bound itself
        so that every backend agrees on what "now" was.
        """
        ...


class GameDirectory(Protocol):

    async def team_for_game(self, game_id: str) -> str:
        """Owning team of a game. Raises NotFoundError."""
        ...

    async def title_for_game(self, team_id: str, game_id: str) -> str:
        """Display title of a game. Raises NotFoundError."""
        ...


class KeyMomentStore(Protocol):

    async def get(
        self,
        team_id: str,
        game_id: str,
        key_moment_id: str,
    ) -> KeyMoment:
        """Raises NotFoundError."""
        ...


class UserDirectory(Protocol):

    async def get(self, user_id: str) -> User:
        """Raises NotFoundError."""
        ...


@dataclass(frozen=True)
class EntityDirectories:
    """The five stores a digest reads from, bundled for wiring."""
    teams: TeamDirectory
    comments: CommentStore
    games: GameDirectory
    key_moments: KeyMomentStore
    users: UserDirectory
