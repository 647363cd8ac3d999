"""
Activity digest API endpoints.

Serves the "Recent Activity" feed: the last week of feedback comments
relevant to a coach or a player, with game titles and author names
already resolved so the client can render rows directly.
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from ...core.digest import (
    AuthError,
    Digest,
    IdentityMismatchError,
    RemoteFetchError,
    UserRole,
)
from ..dependencies import AuthenticatedUser, DigestBuilderDep

logger = logging.getLogger(__name__)

router = APIRouter()

UNKNOWN_GAME = "Unknown Game"
UNKNOWN_USER = "Unknown User"


# ---------------------------------------------------------------------------
# Response Models
# ---------------------------------------------------------------------------

class DigestCommentItem(BaseModel):
    """A single comment row, ready to display."""
    comment_id: str = Field(description="Comment identifier")
    body: str = Field(description="Comment text")
    created_at: str = Field(description="When the comment was posted (ISO format)")
    game_id: str = Field(description="Game the comment is about")
    game_title: str = Field(description="Game title, or a placeholder if unknown")
    team_id: Optional[str] = Field(None, description="Team owning the game, if resolved")
    key_moment_id: str = Field(description="Key moment the comment is attached to")
    author_id: str = Field(description="Who wrote the comment")
    author_name: str = Field(description="Author display name, or a placeholder if unknown")
    transcript_id: Optional[str] = Field(None, description="Transcript the comment refers to")
    parent_comment_id: Optional[str] = Field(None, description="Set when the comment is a reply")


class DigestResponse(BaseModel):
    """A user's activity digest."""
    role: str = Field(description="Audience the digest was built for (coach or player)")
    user_id: str = Field(description="User the digest is about")
    since: str = Field(description="Start of the digest window (ISO format)")
    until: str = Field(description="End of the digest window (ISO format)")
    comment_count: int = Field(description="Number of comments in the digest")
    comments: list[DigestCommentItem] = Field(description="Comments, in fetch order")
    title_by_game: dict[str, str] = Field(description="Resolved game titles")
    team_by_game: dict[str, str] = Field(description="Resolved owning teams")
    name_by_author: dict[str, str] = Field(description="Resolved author names")


def _to_response(digest: Digest, role: UserRole, user_id: str) -> DigestResponse:
    items = [
        DigestCommentItem(
            comment_id=c.comment_id,
            body=c.body,
            created_at=c.created_at.isoformat(),
            game_id=c.game_id,
            game_title=digest.title_by_game.get(c.game_id, UNKNOWN_GAME),
            team_id=digest.team_by_game.get(c.game_id),
            key_moment_id=c.key_moment_id,
            author_id=c.author_id,
            author_name=digest.name_by_author.get(c.author_id, UNKNOWN_USER),
            transcript_id=c.transcript_id,
            parent_comment_id=c.parent_comment_id,
        )
        for c in digest.comments
    ]

    return DigestResponse(
        role=role.value,
        user_id=user_id,
        since=digest.window.since.isoformat(),
        until=digest.window.until.isoformat(),
        comment_count=len(items),
        comments=items,
        title_by_game=digest.title_by_game,
        team_by_game=digest.team_by_game,
        name_by_author=digest.name_by_author,
    )


def _fetch_failed(role: UserRole, user_id: str, error: RemoteFetchError) -> HTTPException:
    logger.error(
        "Digest build failed",
        extra={"role": role.value, "user_id": user_id, "error": str(error)}
    )
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail="Could not load recent activity. Please retry.",
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get(
    "/coach/{coach_id}",
    response_model=DigestResponse,
    status_code=status.HTTP_200_OK,
    summary="Get coach activity digest",
    description="Last week's comments on the coach's teams, excluding the coach's own",
)
async def get_coach_digest(
    coach_id: str,
    api_key: AuthenticatedUser = None,
    builder: DigestBuilderDep = None,
) -> DigestResponse:
    """
    Build the coach's activity digest.

    The signed-in user (X-User-Id header) must be the coach in the path.
    """
    logger.info("Building coach digest", extra={"coach_id": coach_id})

    try:
        digest = await builder.build_coach_digest(coach_id)
    except IdentityMismatchError:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Cannot view another coach's activity",
        )
    except AuthError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Sign in required. Provide X-User-Id header.",
        )
    except RemoteFetchError as e:
        raise _fetch_failed(UserRole.COACH, coach_id, e)

    return _to_response(digest, UserRole.COACH, coach_id)


@router.get(
    "/player/{player_id}",
    response_model=DigestResponse,
    status_code=status.HTTP_200_OK,
    summary="Get player activity digest",
    description="Last week's comments on key moments that target the player",
)
async def get_player_digest(
    player_id: str,
    api_key: AuthenticatedUser = None,
    builder: DigestBuilderDep = None,
) -> DigestResponse:
    """
    Build the player's activity digest.

    A player who hasn't joined any team gets an empty digest, not an error.
    """
    logger.info("Building player digest", extra={"player_id": player_id})

    try:
        digest = await builder.build_player_digest(player_id)
    except RemoteFetchError as e:
        raise _fetch_failed(UserRole.PLAYER, player_id, e)

    return _to_response(digest, UserRole.PLAYER, player_id)
