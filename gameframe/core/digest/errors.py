"""
Errors raised while building a digest.

Two of these are fatal for a whole build (AuthError, RemoteFetchError).
NotFoundError is expected during enrichment and is turned into a
missing map entry or a dropped comment by the caller.
"""

from typing import Optional


class DigestError(Exception):
    """Base class for digest failures."""
    pass


class AuthError(DigestError):
    """Raised when there is no authenticated user."""
    pass


class IdentityMismatchError(AuthError):
    """Raised when the authenticated user is not the coach being asked about."""

    def __init__(self, authenticated_id: str, requested_id: str) -> None:
        super().__init__(
            f"Authenticated user {authenticated_id} cannot build a digest "
            f"for coach {requested_id}"
        )
        self.authenticated_id = authenticated_id
        self.requested_id = requested_id


class RemoteFetchError(DigestError):
    """Raised when a remote store cannot be read."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.cause = cause


class NotFoundError(DigestError):
    """Raised when a single entity cannot be resolved."""

    def __init__(self, kind: str, key: str) -> None:
        super().__init__(f"{kind} not found: {key}")
        self.kind = kind
        self.key = key
