"""
Activity digest engine.

Builds the weekly feed of feedback comments for a coach or a player.
"""

from .audience import CoachAudience, DigestAudience, PlayerAudience
from .builder import DigestBuilder
from .directories import EntityDirectories
from .errors import (
    AuthError,
    DigestError,
    IdentityMismatchError,
    NotFoundError,
    RemoteFetchError,
)
from .key_moments import KeyMomentFilter
from .metadata import MetadataResolver, ResolutionCache
from .models import (
    Comment,
    Digest,
    DigestMetadata,
    DigestWindow,
    Game,
    KeyMoment,
    Team,
    User,
    UserRole,
)

__all__ = [
    "AuthError",
    "CoachAudience",
    "Comment",
    "Digest",
    "DigestAudience",
    "DigestBuilder",
    "DigestError",
    "DigestMetadata",
    "DigestWindow",
    "EntityDirectories",
    "Game",
    "IdentityMismatchError",
    "KeyMoment",
    "KeyMomentFilter",
    "MetadataResolver",
    "NotFoundError",
    "PlayerAudience",
    "RemoteFetchError",
    "ResolutionCache",
    "Team",
    "User",
    "UserRole",
]
