"""Health check endpoints for monitoring system status."""

import time
from datetime import datetime, timezone

from beartype import beartype
from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, ConfigDict, Field

from ... import __version__
from ...core.cache import Cache
from ...core.config import Settings, get_settings
from ...core.database import Database
from ...core.logging_utils import get_logger
from ..dependencies import get_cache, get_db

logger = get_logger(__name__)

router = APIRouter()

APP_START_TIME = datetime.now(timezone.utc)


class HealthStatus(BaseModel):
    """Individual component health status."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_assignment=True,
        str_strip_whitespace=True,
        validate_default=True,
    )

    status: str = Field(..., pattern=r"^(healthy|unhealthy|degraded)$")
    response_time_ms: float | None = Field(
        default=None, ge=0, description="Response time in milliseconds"
    )
    message: str | None = Field(default=None, description="Additional status message")


class HealthResponse(BaseModel):
    """Overall system health response."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_assignment=True,
        str_strip_whitespace=True,
        validate_default=True,
    )

    status: str = Field(..., pattern=r"^(healthy|unhealthy|degraded)$")
    timestamp: datetime = Field(..., description="Health check timestamp")
    version: str = Field(..., description="Application version")
    environment: str = Field(..., description="Environment name")
    components: dict[str, HealthStatus] = Field(default_factory=dict)
    uptime_seconds: float = Field(..., ge=0, description="Application uptime in seconds")


@router.get("/health/live", response_model=HealthStatus)
@beartype
async def liveness_check() -> HealthStatus:
    """Liveness probe: the process answers."""
    return HealthStatus(status="healthy", message="Application is running")


@router.get("/health", response_model=HealthResponse)
@beartype
async def health_check(
    response: Response,
    settings: Settings = Depends(get_settings),
    db: Database = Depends(get_db),
    cache: Cache = Depends(get_cache),
) -> HealthResponse:
    """Check the database and the cache.

    The database is required; a cache outage only degrades catalog reads.
    """
    components: dict[str, HealthStatus] = {}

    start = time.perf_counter()
    db_ok = await db.health_check()
    components["database"] = HealthStatus(
        status="healthy" if db_ok else "unhealthy",
        response_time_ms=(time.perf_counter() - start) * 1000,
        message=None if db_ok else "Database unreachable",
    )

    start = time.perf_counter()
    cache_ok = await cache.health_check()
    components["cache"] = HealthStatus(
        status="healthy" if cache_ok else "degraded",
        response_time_ms=(time.perf_counter() - start) * 1000,
        message=None if cache_ok else "Cache unreachable, catalog reads hit the database",
    )

    if not db_ok:
        overall = "unhealthy"
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    elif not cache_ok:
        overall = "degraded"
    else:
        overall = "healthy"

    if overall != "healthy":
        failing = sorted(
            name for name, component in components.items() if component.status != "healthy"
        )
        logger.warning("Health check reported %s: %s", overall, failing)

    now = datetime.now(timezone.utc)
    return HealthResponse(
        status=overall,
        timestamp=now,
        version=__version__,
        environment=settings.api_env,
        components=components,
        uptime_seconds=(now - APP_START_TIME).total_seconds(),
    )
