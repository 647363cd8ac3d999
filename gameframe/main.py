"""
ASGI entry point for the GameFrame activity service.

create_app() builds a fully wired FastAPI instance; the module-level
`app` is what the server imports. Tests call create_app() themselves
and swap dependencies through app.dependency_overrides.

Run locally against the in-memory store:
    SNOWFLAKE_MOCK_MODE=true uvicorn gameframe.main:app --reload

Run in production:
    gunicorn gameframe.main:app -w 4 -k uvicorn.workers.UvicornWorker
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .api.routes import digests, health
from .config.settings import Settings, get_settings
from .core.digest import RemoteFetchError

logger = logging.getLogger(__name__)

API_DESCRIPTION = """
Recent-activity feed for GameFrame teams.

Every digest request needs an `X-API-Key` header. Coach digests also
need `X-User-Id`, which must match the coach in the path.

- `GET /api/v1/digests/coach/{coach_id}`: the week's comments on the
  coach's teams, minus the coach's own
- `GET /api/v1/digests/player/{player_id}`: the week's comments on key
  moments tagged for the player
"""


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log the effective configuration on startup and flag gaps."""
    settings = get_settings()
    logger.info(
        "GameFrame API starting",
        extra={
            "version": __version__,
            "store": "memory" if settings.snowflake_mock_mode else "snowflake",
            "digest_window_days": settings.digest_window_days,
        }
    )

    missing = settings.validate_required_fields()
    if missing:
        # Keep serving; /health/ready reports not_ready until this is fixed
        logger.error("Configuration incomplete", extra={"missing_fields": missing})

    yield

    logger.info("GameFrame API stopped")


def _register_error_handlers(app: FastAPI) -> None:

    @app.exception_handler(RemoteFetchError)
    async def store_unavailable(request: Request, exc: RemoteFetchError):
        # Only reached when the per-request connection can't be opened;
        # routes turn their own fetch failures into 502s.
        logger.error(
            "Entity store unavailable",
            extra={"path": request.url.path, "error": str(exc)}
        )
        return JSONResponse(
            status_code=503,
            content={"detail": "Data store unavailable. Please retry."},
        )

    @app.exception_handler(Exception)
    async def unhandled(request: Request, exc: Exception):
        """Log the traceback server-side; clients only get a generic 500."""
        logger.error(
            "Unhandled exception",
            extra={"path": request.url.path, "method": request.method},
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error."},
        )


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings)

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description=API_DESCRIPTION,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    app.include_router(health.router, prefix="/health", tags=["Health"])
    app.include_router(digests.router, prefix="/api/v1/digests", tags=["Digests"])

    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "service": settings.api_title,
            "version": __version__,
            "docs": app.docs_url,
        }

    _register_error_handlers(app)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "gameframe.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=get_settings().log_level.lower(),
    )
