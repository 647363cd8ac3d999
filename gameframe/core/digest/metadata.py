"""
Display metadata for digest comments.

A comment only carries raw ids. To show "Coach Smith commented on
Saturday vs. Eagles" we need the game title, the team that owns the
game and the author's name, each living in a different store.

Lookups are memoized in a ResolutionCache that belongs to exactly one
digest build. Ten comments on the same game cost one team lookup and
one title lookup, not ten of each.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Iterable, Optional, TypeVar

from .directories import GameDirectory, UserDirectory
from .errors import NotFoundError, RemoteFetchError
from .models import Comment, DigestMetadata, User

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Failures that mean "unknown" during enrichment. Anything else is a bug
# and propagates.
UNRESOLVABLE = (NotFoundError, RemoteFetchError)


class ResolutionCache:
    """
    Request-scoped memo of lookups, keyed by (namespace, id).

    The first caller for a key starts the lookup and stores the pending
    task before awaiting it, so concurrent callers for the same key share
    one remote call. Failed lookups are cached as None and never retried.

    Within one build a failure is final. If the user store timed out
    for one author, asking again for each of their comments would only
    multiply the wait. The next request starts with an empty cache.
    """

    def __init__(self) -> None:
        self._tasks: dict[tuple[str, str], asyncio.Task] = {}

    async def resolve(
        self,
        namespace: str,
        key: str,
        lookup: Callable[[], Awaitable[T]],
    ) -> Optional[T]:
        task = self._tasks.get((namespace, key))
        if task is None:
            task = asyncio.ensure_future(_absent_on_failure(namespace, key, lookup))
            self._tasks[(namespace, key)] = task
        # Shielded so one cancelled waiter doesn't cancel the shared lookup
        return await asyncio.shield(task)

    def attempts(self, namespace: str) -> int:
        """Number of distinct keys looked up in a namespace."""
        return sum(1 for ns, _ in self._tasks if ns == namespace)

    def close(self) -> None:
        """Cancel lookups still in flight. Called when a build ends."""
        for task in self._tasks.values():
            if not task.done():
                task.cancel()


async def gather_or_cancel(coros: Iterable[Awaitable[T]]) -> list[T]:
    """
    Run coroutines concurrently and return their results in order.

    Unlike a bare asyncio.gather, nothing outlives the call: if one
    coroutine raises, or the caller is cancelled, every sibling still
    running is cancelled and awaited before the error propagates. A
    digest build that has failed must not keep issuing store lookups
    over a connection the request is about to close.
    """
    tasks = [asyncio.ensure_future(c) for c in coros]
    try:
        return await asyncio.gather(*tasks)
    finally:
        pending = [t for t in tasks if not t.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)


async def _absent_on_failure(
    namespace: str,
    key: str,
    lookup: Callable[[], Awaitable[T]],
) -> Optional[T]:
    try:
        return await lookup()
    except UNRESOLVABLE as e:
        logger.warning(
            "Lookup failed, leaving entry unresolved",
            extra={"namespace": namespace, "key": key, "error": str(e)}
        )
        return None


async def resolve_team_for_game(
    games: GameDirectory,
    game_id: str,
    cache: ResolutionCache,
) -> Optional[str]:
    """Owning team of a game, or None if it can't be found."""
    return await cache.resolve("team", game_id, lambda: games.team_for_game(game_id))


class MetadataResolver:
    """
    Resolves game titles, game owners and author names for comments.

    Stateless between calls: all memoization lives in the cache passed
    to resolve().
    """

    def __init__(
        self,
        games: GameDirectory,
        users: UserDirectory,
        concurrency: int = 8,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self._games = games
        self._users = users
        self._concurrency = concurrency

    async def resolve(
        self,
        comments: list[Comment],
        cache: Optional[ResolutionCache] = None,
    ) -> DigestMetadata:
        """
        Build the three lookup maps for a list of comments.

        Never raises for a missing game or user; the matching entry is
        simply left out of the result.
        """
        owns_cache = cache is None
        if cache is None:
            cache = ResolutionCache()

        metadata = DigestMetadata()
        semaphore = asyncio.Semaphore(self._concurrency)

        async def enrich(comment: Comment) -> None:
            async with semaphore:
                await self._resolve_game(comment.game_id, cache, metadata)
                await self._resolve_author(comment.author_id, cache, metadata)

        try:
            await gather_or_cancel(enrich(c) for c in comments)
        finally:
            if owns_cache:
                cache.close()

        logger.debug(
            "Resolved digest metadata",
            extra={
                "comment_count": len(comments),
                "games": len(metadata.team_by_game),
                "titles": len(metadata.title_by_game),
                "authors": len(metadata.name_by_author),
            }
        )
        return metadata

    async def _resolve_game(
        self,
        game_id: str,
        cache: ResolutionCache,
        metadata: DigestMetadata,
    ) -> None:
        # Titles live under the owning team, so no team means no title
        team_id = await resolve_team_for_game(self._games, game_id, cache)
        if team_id is None:
            return
        metadata.team_by_game[game_id] = team_id

        title = await cache.resolve(
            "title", game_id, lambda: self._games.title_for_game(team_id, game_id)
        )
        if title is not None:
            metadata.title_by_game[game_id] = title

    async def _resolve_author(
        self,
        author_id: str,
        cache: ResolutionCache,
        metadata: DigestMetadata,
    ) -> None:
        user: Optional[User] = await cache.resolve(
            "user", author_id, lambda: self._users.get(author_id)
        )
        if user is not None:
            metadata.name_by_author[author_id] = user.display_name
