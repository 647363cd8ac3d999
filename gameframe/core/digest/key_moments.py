"""
Player targeting for key-moment feedback.

A coach tags a key moment with the players the feedback is for. A
player's digest should only show comments on moments that name them.
"""

import logging
from typing import Optional

from .directories import GameDirectory, KeyMomentStore
from .errors import NotFoundError, RemoteFetchError
from .metadata import ResolutionCache, resolve_team_for_game
from .models import Comment

logger = logging.getLogger(__name__)


class KeyMomentFilter:
    """
    Decides whether a comment's key moment targets a given player.

    A key moment is stored under its team and game, but a comment only
    carries the game id. So the team has to be looked up first, and
    that lookup goes through the build's cache because the metadata
    step needs the same answer moments later.

    An empty target list means the moment was for nobody in particular.
    It is not treated as "everyone": a player only sees feedback that
    names them.
    """

    def __init__(self, games: GameDirectory, key_moments: KeyMomentStore) -> None:
        self._games = games
        self._key_moments = key_moments

    async def targets(
        self,
        player_id: str,
        comment: Comment,
        cache: Optional[ResolutionCache] = None,
    ) -> bool:
        """
        True only if the key moment exists and lists the player.

        Self-authored comments, unknown games and missing key moments
        are all answered with False. Key moments are fetched per comment;
        only the game to team lookup goes through the cache.
        """
        if comment.author_id == player_id:
            return False

        owns_cache = cache is None
        if cache is None:
            cache = ResolutionCache()
        try:
            team_id = await resolve_team_for_game(self._games, comment.game_id, cache)
        finally:
            if owns_cache:
                cache.close()
        if team_id is None:
            return False

        try:
            key_moment = await self._key_moments.get(
                team_id, comment.game_id, comment.key_moment_id
            )
        except (NotFoundError, RemoteFetchError) as e:
            logger.warning(
                "Key moment unavailable, dropping comment",
                extra={
                    "comment_id": comment.comment_id,
                    "key_moment_id": comment.key_moment_id,
                    "error": str(e),
                }
            )
            return False

        return key_moment.targets(player_id)
