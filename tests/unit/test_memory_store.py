"""
Unit tests for the in-memory entity store used in mock mode.
"""

import json
from datetime import datetime, timedelta, timezone

import pytest

from gameframe.core.digest import NotFoundError, UserRole
from gameframe.infrastructure.memory import MockEntityStore


# ---------------------------------------------------------------------------
# Seeding
# ---------------------------------------------------------------------------

class TestSeeding:
    """Tests for adding entities to the store."""

    def test_comment_takes_team_from_its_game(self, store, make_comment):
        stored = store.add_comment(make_comment("C1", author_id="P1"))
        assert stored.team_id == "T1"

    def test_comment_on_unknown_game_needs_a_team(self, store, make_comment):
        with pytest.raises(ValueError, match="unknown"):
            store.add_comment(make_comment("C1", author_id="P1", game_id="G404"))

    def test_clear_empties_every_table(self, store, make_comment):
        store.add_comment(make_comment("C1", author_id="P1"))
        store.clear()
        assert not store.teams
        assert not store.games
        assert not store.comments
        assert not store.key_moments
        assert not store.users

    def test_from_json_loads_all_tables(self, tmp_path):
        seed = {
            "teams": [{"team_id": "T1", "name": "Tigers", "coach_ids": ["X"], "player_ids": ["P1"]}],
            "games": [{"game_id": "G1", "team_id": "T1", "title": "Opener"}],
            "users": [{"user_id": "X", "role": "coach", "first_name": "Alex", "last_name": "Morgan"}],
            "key_moments": [{"key_moment_id": "K1", "game_id": "G1", "team_id": "T1", "feedback_for": ["P1"]}],
            "comments": [{
                "comment_id": "C1",
                "game_id": "G1",
                "key_moment_id": "K1",
                "author_id": "X",
                "body": "Great hustle",
                "created_at": "2026-03-13T09:30:00",
            }],
        }
        path = tmp_path / "seed.json"
        path.write_text(json.dumps(seed), encoding="utf-8")

        loaded = MockEntityStore.from_json(path)

        assert loaded.teams["T1"].coach_ids == ("X",)
        assert loaded.users["X"].role == UserRole.COACH
        assert loaded.key_moments["K1"].targets("P1")
        comment = loaded.comments["C1"]
        assert comment.team_id == "T1"
        assert comment.created_at == datetime(2026, 3, 13, 9, 30, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Directory Views
# ---------------------------------------------------------------------------

class TestMockDirectories:
    """Tests for the directory views over the store."""

    @pytest.mark.asyncio
    async def test_team_membership_by_role(self, store):
        teams = store.directories().teams
        assert await teams.teams_coached_by("X") == ["T1"]
        assert await teams.teams_enrolled_by("P1") == ["T1"]
        assert await teams.teams_coached_by("P1") == []
        assert await teams.teams_enrolled_by("X") == []

    @pytest.mark.asyncio
    async def test_comments_come_back_newest_first(self, store, make_comment, now):
        store.add_comment(make_comment("OLD", author_id="P1", age=timedelta(days=3)))
        store.add_comment(make_comment("NEW", author_id="P1", age=timedelta(hours=1)))
        store.add_comment(make_comment("MID", author_id="P1", age=timedelta(days=1)))

        comments = await store.directories().comments.fetch_since(["T1"], now - timedelta(days=7))

        assert [c.comment_id for c in comments] == ["NEW", "MID", "OLD"]

    @pytest.mark.asyncio
    async def test_comments_filtered_by_team_and_since(self, store, make_comment, now):
        store.add_comment(make_comment("IN", author_id="P1", age=timedelta(days=1)))
        store.add_comment(make_comment("OLD", author_id="P1", age=timedelta(days=9)))
        store.add_comment(make_comment("ELSEWHERE", author_id="P1", game_id="G9", team_id="T9"))

        comments = await store.directories().comments.fetch_since(["T1"], now - timedelta(days=7))

        assert [c.comment_id for c in comments] == ["IN"]

    @pytest.mark.asyncio
    async def test_no_teams_means_no_comments(self, store, make_comment, now):
        store.add_comment(make_comment("C1", author_id="P1"))
        assert await store.directories().comments.fetch_since([], now - timedelta(days=7)) == []

    @pytest.mark.asyncio
    async def test_game_lookups(self, store):
        games = store.directories().games
        assert await games.team_for_game("G1") == "T1"
        assert await games.title_for_game("T1", "G1") == "Saturday vs. Eagles"

    @pytest.mark.asyncio
    async def test_game_title_requires_matching_team(self, store):
        with pytest.raises(NotFoundError):
            await store.directories().games.title_for_game("T9", "G1")

    @pytest.mark.asyncio
    async def test_unknown_entities_raise_not_found(self, store):
        directories = store.directories()
        with pytest.raises(NotFoundError):
            await directories.games.team_for_game("G404")
        with pytest.raises(NotFoundError):
            await directories.key_moments.get("T1", "G1", "K404")
        with pytest.raises(NotFoundError):
            await directories.users.get("U404")
