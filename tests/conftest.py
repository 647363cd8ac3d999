"""
Shared fixtures for the digest tests.

The seeded store models one team with a coach and two players:

    Team T1: coach X, players P1 and P2
    Game G1 "Saturday vs. Eagles" (owned by T1)
    Key moment K1 on G1 targets P1
    Key moment K2 on G1 targets P2
    Key moment K3 on G1 targets nobody

Comments are added per test so each scenario reads on its own.
"""

from collections import Counter
from datetime import datetime, timedelta, timezone

import pytest

from gameframe.core.digest import (
    Comment,
    DigestBuilder,
    Game,
    KeyMoment,
    Team,
    User,
    UserRole,
)
from gameframe.infrastructure.auth import RequestAuthProvider
from gameframe.infrastructure.memory import MockEntityStore

NOW = datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc)


def _comment(
    comment_id: str,
    author_id: str,
    key_moment_id: str = "K1",
    game_id: str = "G1",
    age: timedelta = timedelta(days=1),
    team_id: str | None = None,
) -> Comment:
    return Comment(
        comment_id=comment_id,
        game_id=game_id,
        key_moment_id=key_moment_id,
        author_id=author_id,
        body=f"Feedback {comment_id}",
        created_at=NOW - age,
        team_id=team_id,
    )


class CountingGames:
    """Game directory wrapper that counts calls per game id."""

    def __init__(self, inner) -> None:
        self._inner = inner
        self.team_calls: Counter = Counter()
        self.title_calls: Counter = Counter()

    async def team_for_game(self, game_id: str) -> str:
        self.team_calls[game_id] += 1
        return await self._inner.team_for_game(game_id)

    async def title_for_game(self, team_id: str, game_id: str) -> str:
        self.title_calls[game_id] += 1
        return await self._inner.title_for_game(team_id, game_id)


class CountingUsers:
    """User directory wrapper that counts calls per user id."""

    def __init__(self, inner) -> None:
        self._inner = inner
        self.calls: Counter = Counter()

    async def get(self, user_id: str) -> User:
        self.calls[user_id] += 1
        return await self._inner.get(user_id)


@pytest.fixture
def store() -> MockEntityStore:
    store = MockEntityStore()
    store.add_team(Team(
        team_id="T1",
        name="Tigers",
        coach_ids=("X",),
        player_ids=("P1", "P2"),
    ))
    store.add_game(Game(game_id="G1", team_id="T1", title="Saturday vs. Eagles"))
    store.add_user(User(user_id="X", role=UserRole.COACH, first_name="Alex", last_name="Morgan"))
    store.add_user(User(user_id="P1", role=UserRole.PLAYER, first_name="Sam", last_name="Lee"))
    store.add_user(User(user_id="P2", role=UserRole.PLAYER, first_name="Jordan", last_name="Diaz"))
    store.add_key_moment(KeyMoment(
        key_moment_id="K1", game_id="G1", team_id="T1", feedback_for=("P1",), uploaded_by="X",
    ))
    store.add_key_moment(KeyMoment(
        key_moment_id="K2", game_id="G1", team_id="T1", feedback_for=("P2",), uploaded_by="X",
    ))
    store.add_key_moment(KeyMoment(
        key_moment_id="K3", game_id="G1", team_id="T1", feedback_for=(), uploaded_by="X",
    ))
    return store


@pytest.fixture
def make_builder(store):
    """
    Factory for builders over the seeded store.

    Pass user_id for the signed-in user and any collaborator override
    (games=..., users=..., comments=...) as keyword arguments.
    """
    def _make(user_id: str | None = "X", concurrency: int = 8, **overrides) -> DigestBuilder:
        directories = store.directories()
        collaborators = {
            "teams": directories.teams,
            "comments": directories.comments,
            "games": directories.games,
            "key_moments": directories.key_moments,
            "users": directories.users,
        }
        collaborators.update(overrides)
        return DigestBuilder(
            auth=RequestAuthProvider(user_id),
            clock=lambda: NOW,
            concurrency=concurrency,
            **collaborators,
        )

    return _make


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def make_comment():
    """Comment factory; ages are relative to the fixed clock."""
    return _comment


@pytest.fixture
def counting_games(store) -> CountingGames:
    return CountingGames(store.directories().games)


@pytest.fixture
def counting_users(store) -> CountingUsers:
    return CountingUsers(store.directories().users)
