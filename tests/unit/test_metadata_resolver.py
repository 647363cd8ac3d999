"""
Unit tests for metadata resolution and the per-build lookup cache.
"""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from gameframe.core.digest import (
    MetadataResolver,
    NotFoundError,
    RemoteFetchError,
    ResolutionCache,
)


# ---------------------------------------------------------------------------
# ResolutionCache Tests
# ---------------------------------------------------------------------------

class TestResolutionCache:
    """Tests for request-scoped memoization."""

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_lookup(self):
        """Callers arriving while a lookup is in flight wait for it."""
        cache = ResolutionCache()
        release = asyncio.Event()
        calls = []

        async def lookup():
            calls.append(1)
            await release.wait()
            return "T1"

        waiters = [asyncio.ensure_future(cache.resolve("team", "G1", lookup)) for _ in range(5)]
        await asyncio.sleep(0)
        release.set()
        results = await asyncio.gather(*waiters)

        assert results == ["T1"] * 5
        assert len(calls) == 1
        assert cache.attempts("team") == 1

    @pytest.mark.asyncio
    async def test_failure_is_cached_as_absent(self):
        cache = ResolutionCache()
        lookup = AsyncMock(side_effect=NotFoundError("game", "G9"))

        first = await cache.resolve("team", "G9", lookup)
        second = await cache.resolve("team", "G9", lookup)

        assert first is None
        assert second is None
        lookup.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_remote_failure_is_absent_too(self):
        cache = ResolutionCache()
        lookup = AsyncMock(side_effect=RemoteFetchError("timeout"))

        assert await cache.resolve("user", "u1", lookup) is None

    @pytest.mark.asyncio
    async def test_unexpected_errors_propagate(self):
        """Only not-found and fetch failures mean absent; bugs surface."""
        cache = ResolutionCache()
        lookup = AsyncMock(side_effect=KeyError("boom"))

        with pytest.raises(KeyError):
            await cache.resolve("user", "u1", lookup)

    @pytest.mark.asyncio
    async def test_namespaces_are_independent(self):
        cache = ResolutionCache()
        team = AsyncMock(return_value="T1")
        title = AsyncMock(return_value="Finals")

        assert await cache.resolve("team", "G1", team) == "T1"
        assert await cache.resolve("title", "G1", title) == "Finals"
        assert cache.attempts("team") == 1
        assert cache.attempts("title") == 1
        assert cache.attempts("user") == 0

    @pytest.mark.asyncio
    async def test_close_cancels_pending_lookups(self):
        cache = ResolutionCache()
        never = asyncio.Event()

        async def lookup():
            await never.wait()

        waiter = asyncio.ensure_future(cache.resolve("user", "u1", lookup))
        await asyncio.sleep(0)
        cache.close()

        with pytest.raises(asyncio.CancelledError):
            await waiter


# ---------------------------------------------------------------------------
# MetadataResolver Tests
# ---------------------------------------------------------------------------

class TestMetadataResolver:
    """Tests for building the three display maps."""

    @pytest.mark.asyncio
    async def test_resolves_titles_teams_and_names(self, store, make_comment):
        directories = store.directories()
        resolver = MetadataResolver(directories.games, directories.users)
        comments = [
            make_comment("C1", author_id="P1"),
            make_comment("C2", author_id="X", age=timedelta(days=2)),
        ]

        metadata = await resolver.resolve(comments)

        assert metadata.title_by_game == {"G1": "Saturday vs. Eagles"}
        assert metadata.team_by_game == {"G1": "T1"}
        assert metadata.name_by_author == {"P1": "Sam Lee", "X": "Alex Morgan"}

    @pytest.mark.asyncio
    async def test_empty_comment_list_resolves_nothing(self, counting_games, counting_users):
        resolver = MetadataResolver(counting_games, counting_users)

        metadata = await resolver.resolve([])

        assert metadata.title_by_game == {}
        assert metadata.team_by_game == {}
        assert metadata.name_by_author == {}
        assert not counting_games.team_calls
        assert not counting_users.calls

    @pytest.mark.asyncio
    async def test_missing_title_keeps_team(self, store, make_comment):
        """Team and title are separate lookups; one can fail alone."""
        directories = store.directories()
        games = MagicMock()
        games.team_for_game = AsyncMock(return_value="T1")
        games.title_for_game = AsyncMock(side_effect=NotFoundError("game title", "G1"))
        resolver = MetadataResolver(games, directories.users)

        metadata = await resolver.resolve([make_comment("C1", author_id="P1")])

        assert metadata.team_by_game == {"G1": "T1"}
        assert metadata.title_by_game == {}
        games.title_for_game.assert_awaited_once_with("T1", "G1")

    @pytest.mark.asyncio
    async def test_failed_team_lookup_skips_title(self, make_comment):
        games = MagicMock()
        games.team_for_game = AsyncMock(side_effect=RemoteFetchError("timeout"))
        games.title_for_game = AsyncMock(return_value="never")
        users = MagicMock()
        users.get = AsyncMock(side_effect=NotFoundError("user", "P1"))
        resolver = MetadataResolver(games, users)

        metadata = await resolver.resolve([make_comment("C1", author_id="P1")])

        assert metadata.team_by_game == {}
        assert metadata.title_by_game == {}
        assert metadata.name_by_author == {}
        games.title_for_game.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_shared_cache_reuses_earlier_lookups(self, store, make_comment, counting_games, counting_users):
        """Lookups already in the cache are not repeated."""
        resolver = MetadataResolver(counting_games, counting_users)
        cache = ResolutionCache()
        comments = [make_comment("C1", author_id="P1")]

        await resolver.resolve(comments, cache)
        await resolver.resolve(comments, cache)
        cache.close()

        assert counting_games.team_calls == {"G1": 1}
        assert counting_games.title_calls == {"G1": 1}
        assert counting_users.calls == {"P1": 1}

    @pytest.mark.asyncio
    async def test_separate_builds_do_not_share_lookups(self, make_comment, counting_games, counting_users):
        """Without a shared cache, each call starts fresh."""
        resolver = MetadataResolver(counting_games, counting_users)
        comments = [make_comment("C1", author_id="P1")]

        await resolver.resolve(comments)
        await resolver.resolve(comments)

        assert counting_users.calls == {"P1": 2}

    def test_concurrency_must_be_positive(self, store):
        directories = store.directories()
        with pytest.raises(ValueError):
            MetadataResolver(directories.games, directories.users, concurrency=0)
