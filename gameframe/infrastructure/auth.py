"""
Authenticated identity for a single request.

Sign-in happens elsewhere. By the time a request reaches us, the
caller's user id has been forwarded in a header (or hasn't, in which
case there is nobody to build a coach digest for).
"""

import logging
from typing import Optional

from ..core.digest.errors import AuthError

logger = logging.getLogger(__name__)


class RequestAuthProvider:
    """Auth provider holding the user id a request was made on behalf of."""

    def __init__(self, user_id: Optional[str]) -> None:
        self._user_id = user_id.strip() if user_id else None

    async def current_user(self) -> str:
        if not self._user_id:
            logger.warning("Request has no authenticated user")
            raise AuthError("No authenticated user")
        return self._user_id
