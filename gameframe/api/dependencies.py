"""
Request-scoped wiring for the digest routes.

Routes never build their own collaborators. They declare what they
need (settings, the signed-in user, a DigestBuilder) and FastAPI
resolves it per request, which is also where tests plug in fakes via
app.dependency_overrides.

In Snowflake mode a connection is opened for each request and closed
once the response is sent.
"""

import logging
from typing import Annotated, Generator, Optional

from fastapi import Depends, Header, HTTPException, Security, status
from fastapi.security import APIKeyHeader

from ..config.settings import Settings, get_settings
from ..core.digest import DigestBuilder, EntityDirectories
from ..infrastructure.auth import RequestAuthProvider
from ..infrastructure.memory import MockEntityStore
from ..infrastructure.snowflake.client import get_snowflake_connection
from ..infrastructure.snowflake.repositories import create_snowflake_directories

logger = logging.getLogger(__name__)

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)

# One store per process in mock mode, so seeded data survives between requests
_mock_entity_store: Optional[MockEntityStore] = None


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

async def verify_api_key(
    settings: Annotated[Settings, Depends(get_settings)],
    api_key: Optional[str] = Security(api_key_header),
) -> str:
    """Reject the request with 403 unless X-API-Key is a configured key."""
    if api_key and api_key in settings.api_keys_list:
        return api_key

    logger.warning(
        "Rejected API key",
        extra={"reason": "missing" if not api_key else "unknown", "key_prefix": (api_key or "")[:4]}
    )
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="A valid X-API-Key header is required.",
    )


def get_auth_provider(
    x_user_id: Annotated[Optional[str], Header()] = None,
) -> RequestAuthProvider:
    """The signed-in user, as forwarded by the client in X-User-Id."""
    return RequestAuthProvider(x_user_id)


# ---------------------------------------------------------------------------
# Store Dependencies
# ---------------------------------------------------------------------------

def get_mock_entity_store(
    settings: Annotated[Settings, Depends(get_settings)],
) -> MockEntityStore:
    """
    Provide the shared in-memory store, seeding it on first use.

    Reused across requests so data persists during a dev session.
    """
    global _mock_entity_store

    if _mock_entity_store is None:
        if settings.mock_data_path:
            _mock_entity_store = MockEntityStore.from_json(settings.mock_data_path)
        else:
            _mock_entity_store = MockEntityStore()
        logger.info("Created shared mock entity store")

    return _mock_entity_store


def get_entity_directories(
    settings: Annotated[Settings, Depends(get_settings)],
) -> Generator[EntityDirectories, None, None]:
    """
    The five entity directories for this request.

    A generator so the Snowflake connection is closed after the
    response, even when the route raised.
    """
    if settings.snowflake_mock_mode:
        store = get_mock_entity_store(settings)
        logger.debug("Using shared mock entity store")
        yield store.directories()
        return

    with get_snowflake_connection(settings.snowflake_config()) as conn:
        logger.debug("Created Snowflake entity directories")
        yield create_snowflake_directories(conn)


# ---------------------------------------------------------------------------
# Service Dependencies
# ---------------------------------------------------------------------------

def get_digest_builder(
    settings: Annotated[Settings, Depends(get_settings)],
    auth: Annotated[RequestAuthProvider, Depends(get_auth_provider)],
    directories: Annotated[EntityDirectories, Depends(get_entity_directories)],
) -> DigestBuilder:
    """
    Provide a DigestBuilder wired to this request's user and stores.

    The builder is cheap to construct and holds no state between
    builds, so we create one per request.
    """
    return DigestBuilder.from_directories(
        auth=auth,
        directories=directories,
        window_days=settings.digest_window_days,
        concurrency=settings.digest_resolution_concurrency,
    )


# ---------------------------------------------------------------------------
# Route Annotations
# ---------------------------------------------------------------------------

AuthenticatedUser = Annotated[str, Depends(verify_api_key)]
DigestBuilderDep = Annotated[DigestBuilder, Depends(get_digest_builder)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
