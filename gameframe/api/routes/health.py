"""
Liveness and readiness probes.

GET /health answers as long as the process is up. GET /health/ready
also checks configuration and, outside mock mode, opens a Snowflake
connection; it answers 503 when the service shouldn't get traffic.
"""

import asyncio
import logging
from typing import Any, Optional

from fastapi import APIRouter, Response, status
from pydantic import BaseModel, Field

from ... import __version__
from ...config.settings import Settings
from ...infrastructure.snowflake.client import (
    SnowflakeConnectionError,
    get_snowflake_connection,
)
from ..dependencies import SettingsDep

logger = logging.getLogger(__name__)

router = APIRouter()


class LivenessResponse(BaseModel):
    status: str = Field(description="Always 'ok' when the process answers")
    version: str
    details: dict[str, Any] = {}


class DependencyCheck(BaseModel):
    """Outcome of one readiness probe."""
    name: str
    ok: bool
    detail: Optional[str] = None


class ReadinessResponse(BaseModel):
    status: str = Field(description="'ready' or 'not_ready'")
    version: str
    checks: list[DependencyCheck]


@router.get(
    "",
    response_model=LivenessResponse,
    summary="Liveness probe",
    description="Answers 200 while the process runs. Touches no external service.",
)
async def health_check(settings: SettingsDep) -> LivenessResponse:
    return LivenessResponse(
        status="ok",
        version=__version__,
        details={
            "mock_mode": {"snowflake": settings.snowflake_mock_mode},
            "digest_window_days": settings.digest_window_days,
        },
    )


def _probe_snowflake(settings: Settings) -> DependencyCheck:
    """Open a connection and run a trivial query. Blocking."""
    try:
        with get_snowflake_connection(settings.snowflake_config()) as conn:
            cursor = conn.cursor()
            try:
                cursor.execute("SELECT 1")
            finally:
                cursor.close()
    except (SnowflakeConnectionError, ImportError) as e:
        return DependencyCheck(name="database", ok=False, detail=str(e))
    return DependencyCheck(name="database", ok=True)


async def _check_database(settings: Settings, config_ok: bool) -> DependencyCheck:
    if settings.snowflake_mock_mode:
        return DependencyCheck(name="database", ok=True, detail="in-memory store")
    if not config_ok:
        # No point dialing out with half a configuration
        return DependencyCheck(name="database", ok=False, detail="not configured")
    return await asyncio.to_thread(_probe_snowflake, settings)


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    summary="Readiness probe",
    description="Answers 200 when configuration is complete and the entity store is reachable.",
    responses={503: {"description": "Not ready for traffic", "model": ReadinessResponse}},
)
async def readiness_check(settings: SettingsDep, response: Response) -> ReadinessResponse:
    missing = settings.validate_required_fields()
    checks = [
        DependencyCheck(
            name="configuration",
            ok=not missing,
            detail=f"missing: {', '.join(missing)}" if missing else None,
        )
    ]
    checks.append(await _check_database(settings, config_ok=not missing))

    ready = all(c.ok for c in checks)
    if not ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        logger.warning(
            "Service not ready",
            extra={"failed": [c.name for c in checks if not c.ok]}
        )

    return ReadinessResponse(
        status="ready" if ready else "not_ready",
        version=__version__,
        checks=checks,
    )
