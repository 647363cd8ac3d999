"""
Who a digest is for.

Coaches and players get the same pipeline with two differences: which
teams are in scope, and which comments they're allowed to see. Each
audience carries both rules so the builder has a single code path.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from .directories import TeamDirectory
from .key_moments import KeyMomentFilter
from .metadata import ResolutionCache
from .models import Comment, UserRole


class DigestAudience(ABC):
    """Scoping and visibility policy for one kind of user."""

    role: UserRole

    @property
    @abstractmethod
    def subject_id(self) -> str:
        """The user the digest is about."""
        ...

    @abstractmethod
    async def team_scope(self, teams: TeamDirectory) -> list[str]:
        """Team ids whose comments are candidates for the digest."""
        ...

    @abstractmethod
    async def admits(
        self,
        comment: Comment,
        key_moment_filter: KeyMomentFilter,
        cache: ResolutionCache,
    ) -> bool:
        """Whether a candidate comment belongs in the digest."""
        ...


@dataclass(frozen=True)
class CoachAudience(DigestAudience):
    """
    A coach sees everything on their teams except their own comments.

    authenticated_id is the signed-in user. The builder only creates
    this audience once it has checked that it equals coach_id.
    """
    coach_id: str
    authenticated_id: str
    role: UserRole = UserRole.COACH

    @property
    def subject_id(self) -> str:
        return self.coach_id

    async def team_scope(self, teams: TeamDirectory) -> list[str]:
        return await teams.teams_coached_by(self.coach_id)

    async def admits(
        self,
        comment: Comment,
        key_moment_filter: KeyMomentFilter,
        cache: ResolutionCache,
    ) -> bool:
        return comment.author_id != self.authenticated_id


@dataclass(frozen=True)
class PlayerAudience(DigestAudience):
    """
    A player sees comments on key moments that target them.

    Team membership alone isn't enough here. A team's comment stream
    covers every player on the roster, and most of it is about someone
    else, so each comment is checked against its key moment.
    """
    player_id: str
    role: UserRole = UserRole.PLAYER

    @property
    def subject_id(self) -> str:
        return self.player_id

    async def team_scope(self, teams: TeamDirectory) -> list[str]:
        return await teams.teams_enrolled_by(self.player_id)

    async def admits(
        self,
        comment: Comment,
        key_moment_filter: KeyMomentFilter,
        cache: ResolutionCache,
    ) -> bool:
        return await key_moment_filter.targets(self.player_id, comment, cache)
