"""
Weekly activity digest builder.

This is the orchestration layer for the "Recent Activity" feed. For a
coach or a player it:
1. Works out which teams are in scope
2. Fetches the last week's comments for those teams
3. Keeps only the comments this user should see
4. Resolves display metadata for what's left

Steps 1 and 2 are all-or-nothing: if the team list or the comment list
can't be fetched, there is no digest. Everything after that is best
effort, so one deleted game or missing user never sinks the feed.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from .audience import CoachAudience, DigestAudience, PlayerAudience
from .directories import (
    AuthProvider,
    CommentStore,
    EntityDirectories,
    GameDirectory,
    KeyMomentStore,
    TeamDirectory,
    UserDirectory,
)
from .errors import IdentityMismatchError, RemoteFetchError
from .key_moments import KeyMomentFilter
from .metadata import MetadataResolver, ResolutionCache, gather_or_cancel
from .models import Comment, Digest, DigestWindow

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_DAYS = 7


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DigestBuilder:
    """
    Builds per-user digests from the entity directories.

    All collaborators are passed in at construction. The builder holds
    no per-request state, so one instance can serve concurrent builds.
    """

    def __init__(
        self,
        auth: AuthProvider,
        teams: TeamDirectory,
        comments: CommentStore,
        games: GameDirectory,
        key_moments: KeyMomentStore,
        users: UserDirectory,
        clock: Optional[Callable[[], datetime]] = None,
        window_days: int = DEFAULT_WINDOW_DAYS,
        concurrency: int = 8,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self._auth = auth
        self._teams = teams
        self._comments = comments
        self._clock = clock or utc_now
        self._window_days = window_days
        self._concurrency = concurrency
        self._key_moment_filter = KeyMomentFilter(games, key_moments)
        self._metadata = MetadataResolver(games, users, concurrency=concurrency)

    @classmethod
    def from_directories(
        cls,
        auth: AuthProvider,
        directories: EntityDirectories,
        **options,
    ) -> "DigestBuilder":
        return cls(
            auth=auth,
            teams=directories.teams,
            comments=directories.comments,
            games=directories.games,
            key_moments=directories.key_moments,
            users=directories.users,
            **options,
        )

    async def build_coach_digest(self, coach_id: str) -> Digest:
        """
        Comments from the last week on the coach's teams.

        The signed-in user must be the coach. Their own comments are
        left out.

        Raises:
            AuthError: nobody is signed in, or someone else is
            RemoteFetchError: teams or comments couldn't be fetched
        """
        authenticated_id = await self._auth.current_user()
        if authenticated_id != coach_id:
            logger.warning(
                "Coach digest requested for another user",
                extra={"coach_id": coach_id, "authenticated_id": authenticated_id}
            )
            raise IdentityMismatchError(authenticated_id, coach_id)

        return await self.build(
            CoachAudience(coach_id=coach_id, authenticated_id=authenticated_id)
        )

    async def build_player_digest(self, player_id: str) -> Digest:
        """
        Comments from the last week on key moments targeting the player.

        A player with no teams gets an empty digest.

        Raises:
            RemoteFetchError: teams or comments couldn't be fetched
        """
        return await self.build(PlayerAudience(player_id=player_id))

    async def build(self, audience: DigestAudience) -> Digest:
        """
        Run the digest pipeline for one audience.

        The window is taken from the clock after the team lookup and
        used for both the store query and the final check, so every
        comment in a digest is judged against the same instant.

        A fresh ResolutionCache is created for each build and closed on
        the way out. Sharing it between builds would let a stale title
        or a renamed user leak into the next request, and closing it
        makes sure no lookup outlives the connection it runs on.
        """
        team_ids = await self._fetch_team_scope(audience)

        window = DigestWindow.ending_at(self._clock(), self._window_days)
        if not team_ids:
            logger.info(
                "No teams in scope, returning empty digest",
                extra={"role": audience.role.value, "user_id": audience.subject_id}
            )
            return Digest.empty(window)

        candidates = await self._fetch_comments(audience, team_ids, window)

        cache = ResolutionCache()
        try:
            comments = await self._admit(audience, candidates, window, cache)
            metadata = await self._metadata.resolve(comments, cache)
        finally:
            cache.close()

        logger.info(
            "Built digest",
            extra={
                "role": audience.role.value,
                "user_id": audience.subject_id,
                "team_count": len(team_ids),
                "fetched": len(candidates),
                "kept": len(comments),
            }
        )
        return Digest(window=window, comments=comments, metadata=metadata)

    async def _fetch_team_scope(self, audience: DigestAudience) -> list[str]:
        try:
            return await audience.team_scope(self._teams)
        except RemoteFetchError as e:
            logger.error(
                "Failed to fetch teams for digest",
                extra={
                    "role": audience.role.value,
                    "user_id": audience.subject_id,
                    "error": str(e),
                }
            )
            raise

    async def _fetch_comments(
        self,
        audience: DigestAudience,
        team_ids: list[str],
        window: DigestWindow,
    ) -> list[Comment]:
        try:
            return await self._comments.fetch_since(team_ids, window.since)
        except RemoteFetchError as e:
            logger.error(
                "Failed to fetch comments for digest",
                extra={
                    "role": audience.role.value,
                    "user_id": audience.subject_id,
                    "team_ids": team_ids,
                    "error": str(e),
                }
            )
            raise

    async def _admit(
        self,
        audience: DigestAudience,
        candidates: list[Comment],
        window: DigestWindow,
        cache: ResolutionCache,
    ) -> list[Comment]:
        """
        Filter candidates, keeping the order they were fetched in.

        Checks run concurrently because a player digest costs one key
        moment fetch per comment. The semaphore caps how many of those
        hit the store at once, and the verdicts are zipped back onto
        the fetched list rather than collected as they finish, so
        concurrency never reorders the feed.
        """
        semaphore = asyncio.Semaphore(self._concurrency)

        async def check(comment: Comment) -> bool:
            # Stores filter on `since` only; enforce both ends here
            if not window.contains(comment.created_at):
                return False
            async with semaphore:
                return await audience.admits(comment, self._key_moment_filter, cache)

        verdicts = await gather_or_cancel(check(c) for c in candidates)
        return [c for c, keep in zip(candidates, verdicts) if keep]
