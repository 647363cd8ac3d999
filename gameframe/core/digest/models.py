"""
Domain models for the activity digest.

These are read-only snapshots of the entities a digest is built from.
They are frozen because nothing in the digest pipeline mutates them:
a comment fetched at the start of a build is the same comment at the end.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional


class UserRole(Enum):
    """The two kinds of account, plus a fallback for incomplete profiles."""
    COACH = "coach"
    PLAYER = "player"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Optional[str]) -> "UserRole":
        """Map a stored role string to a role, defaulting to UNKNOWN."""
        if not value:
            return cls.UNKNOWN
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class User:
    """A coach or player account."""
    user_id: str
    role: UserRole = UserRole.UNKNOWN
    first_name: str = ""
    last_name: str = ""
    email: Optional[str] = None

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


@dataclass(frozen=True)
class Team:
    """
    A team and its roster.

    Only used to scope queries. Coaches and players are referenced
    by user id, never embedded.
    """
    team_id: str
    name: str = ""
    coach_ids: tuple[str, ...] = ()
    player_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class Game:
    """A game owned by a team."""
    game_id: str
    team_id: str
    title: str = ""


@dataclass(frozen=True)
class Comment:
    """
    A feedback comment left on a key moment.

    The comment knows its game but not the team that owns the game;
    that has to be looked up separately.
    """
    comment_id: str
    game_id: str
    key_moment_id: str
    author_id: str
    body: str
    created_at: datetime
    team_id: Optional[str] = None
    transcript_id: Optional[str] = None
    parent_comment_id: Optional[str] = None

    @property
    def is_reply(self) -> bool:
        return self.parent_comment_id is not None


@dataclass(frozen=True)
class KeyMoment:
    """
    A segment of a game that feedback is attached to.

    feedback_for lists the players the feedback is meant for. It may
    be empty, in which case the moment targets nobody in particular.
    """
    key_moment_id: str
    game_id: str
    team_id: str
    feedback_for: tuple[str, ...] = ()
    uploaded_by: Optional[str] = None

    def targets(self, player_id: str) -> bool:
        return player_id in self.feedback_for


@dataclass(frozen=True)
class DigestWindow:
    """The closed time interval a digest covers."""
    since: datetime
    until: datetime

    def __post_init__(self) -> None:
        if self.until < self.since:
            raise ValueError("Window end must not be before window start")

    @classmethod
    def ending_at(cls, until: datetime, days: int = 7) -> "DigestWindow":
        if days <= 0:
            raise ValueError("Window length must be positive")
        return cls(since=until - timedelta(days=days), until=until)

    def contains(self, moment: datetime) -> bool:
        return self.since <= moment <= self.until


@dataclass
class DigestMetadata:
    """
    Display data resolved for a set of comments.

    A missing key means the lookup failed or was never attempted.
    Callers choose their own fallback text.
    """
    title_by_game: dict[str, str] = field(default_factory=dict)
    team_by_game: dict[str, str] = field(default_factory=dict)
    name_by_author: dict[str, str] = field(default_factory=dict)


@dataclass
class Digest:
    """
    The weekly activity feed for one user.

    Comments keep the order the comment store returned them in.
    """
    window: DigestWindow
    comments: list[Comment] = field(default_factory=list)
    metadata: DigestMetadata = field(default_factory=DigestMetadata)

    @classmethod
    def empty(cls, window: DigestWindow) -> "Digest":
        return cls(window=window)

    @property
    def is_empty(self) -> bool:
        return not self.comments

    @property
    def title_by_game(self) -> dict[str, str]:
        return self.metadata.title_by_game

    @property
    def team_by_game(self) -> dict[str, str]:
        return self.metadata.team_by_game

    @property
    def name_by_author(self) -> dict[str, str]:
        return self.metadata.name_by_author
