"""
Health check endpoints with dependency monitoring

Provides two endpoints:
- GET /api/v1/health - Basic health check
- GET /api/v1/health/dependencies - Detailed dependency status check
"""
import time
from datetime import datetime
from typing import Dict, Optional
from fastapi import APIRouter, status
from pydantic import BaseModel, Field
import httpx
import asyncio

from guestglow import __version__
from guestglow.config import get_settings
from guestglow.services.supabase_client import get_supabase_client
from guestglow.utils.logger import get_logger

settings = get_settings()
logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1/health", tags=["health"])

# Application start time for uptime calculation
APP_START_TIME = time.time()

# Cache for dependency check results (30 seconds TTL)
_dependency_cache: Optional["DependencyHealth"] = None
_cache_timestamp: float = 0.0
CACHE_TTL_SECONDS = 30.0
CHECK_TIMEOUT_SECONDS = 5.0


# ============================================================================
# Pydantic Models
# ============================================================================

class HealthResponse(BaseModel):
    """Basic health check response"""
    status: str = Field(..., description="Overall status: healthy, degraded, unhealthy")
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="Check timestamp")
    version: str = Field(..., description="Application version")
    uptime_seconds: float = Field(..., description="Application uptime in seconds")


class DependencyStatus(BaseModel):
    """Status of a single dependency"""
    name: str = Field(..., description="Dependency name")
    status: str = Field(..., description="Status: healthy, degraded, unhealthy")
    latency_ms: Optional[float] = Field(None, description="Response latency in milliseconds")
    error_message: Optional[str] = Field(None, description="Error message if unhealthy")


class DependencyHealth(BaseModel):
    """Dependency health check response"""
    overall_status: str = Field(..., description="Overall status: healthy, degraded, unhealthy")
    dependencies: Dict[str, DependencyStatus] = Field(..., description="Individual dependency statuses")
    checked_at: datetime = Field(default_factory=datetime.utcnow, description="Check timestamp")


# ============================================================================
# Dependency Check Functions
# ============================================================================

async def check_supabase() -> DependencyStatus:
    """
    Check Supabase database connectivity

    Returns:
        DependencyStatus with health information
    """
    try:
        if not settings.supabase_url:
            return DependencyStatus(
                name="supabase",
                status="unhealthy",
                error_message="SUPABASE_URL not configured"
            )

        start = time.time()
        client = get_supabase_client()

        await asyncio.wait_for(
            asyncio.to_thread(
                lambda: client.table("feedback").select("id").limit(1).execute()
            ),
            timeout=CHECK_TIMEOUT_SECONDS
        )

        latency = (time.time() - start) * 1000

        return DependencyStatus(
            name="supabase",
            status="healthy",
            latency_ms=round(latency, 2)
        )

    except asyncio.TimeoutError:
        logger.error("Supabase health check timed out")
        return DependencyStatus(
            name="supabase",
            status="unhealthy",
            error_message="Request timed out after 5 seconds"
        )
    except Exception as e:
        logger.error(f"Supabase health check failed: {e}")
        return DependencyStatus(
            name="supabase",
            status="unhealthy",
            error_message=str(e)
        )


async def _check_http(
    name: str,
    url: str,
    api_key: str
) -> DependencyStatus:
    """GET an authenticated provider endpoint and time it"""
    try:
        if not api_key:
            return DependencyStatus(
                name=name,
                status="degraded",
                error_message="API key not configured"
            )

        start = time.time()

        async with httpx.AsyncClient(timeout=CHECK_TIMEOUT_SECONDS) as client:
            response = await client.get(
                url,
                headers={"Authorization": f"Bearer {api_key}"}
            )
            response.raise_for_status()

        latency = (time.time() - start) * 1000

        return DependencyStatus(
            name=name,
            status="healthy",
            latency_ms=round(latency, 2)
        )

    except httpx.TimeoutException:
        logger.error(f"{name} health check timed out")
        return DependencyStatus(
            name=name,
            status="unhealthy",
            error_message="Request timed out after 5 seconds"
        )
    except httpx.HTTPStatusError as e:
        logger.error(f"{name} health check failed: {e}")
        return DependencyStatus(
            name=name,
            status="unhealthy",
            error_message=f"HTTP {e.response.status_code}: {str(e)}"
        )
    except Exception as e:
        logger.error(f"{name} health check failed: {e}")
        return DependencyStatus(
            name=name,
            status="unhealthy",
            error_message=str(e)
        )


async def check_resend_api() -> DependencyStatus:
    return await _check_http(
        "resend_api",
        f"{settings.resend_api_url.rstrip('/')}/domains",
        settings.resend_api_key
    )


async def check_openai_api() -> DependencyStatus:
    return await _check_http(
        "openai_api",
        "https://api.openai.com/v1/models",
        settings.openai_api_key
    )


async def check_all_dependencies() -> Dict[str, DependencyStatus]:
    """
    Check all external dependencies in parallel

    Returns:
        Dictionary mapping dependency names to their status
    """
    results = await asyncio.gather(
        check_supabase(),
        check_resend_api(),
        check_openai_api(),
        return_exceptions=True
    )

    dependencies = {}
    dep_names = ["supabase", "resend_api", "openai_api"]

    for name, result in zip(dep_names, results):
        if isinstance(result, Exception):
            logger.error(f"Unexpected error checking {name}: {result}")
            dependencies[name] = DependencyStatus(
                name=name,
                status="unhealthy",
                error_message=f"Unexpected error: {str(result)}"
            )
        else:
            dependencies[name] = result

    return dependencies


def determine_overall_status(dependencies: Dict[str, DependencyStatus]) -> str:
    """
    Determine overall system status based on dependency health

    Critical services: Supabase, Resend
    Non-critical services: OpenAI (responses fall back to templates)

    Rules:
    - Any critical service unhealthy → "unhealthy"
    - Any service degraded or unhealthy → "degraded"
    - All healthy → "healthy"
    """
    critical_services = ["supabase", "resend_api"]

    for service in critical_services:
        if service in dependencies:
            if dependencies[service].status == "unhealthy":
                return "unhealthy"

    degraded_count = sum(
        1 for dep in dependencies.values()
        if dep.status in ["degraded", "unhealthy"]
    )

    if degraded_count >= 1:
        return "degraded"

    return "healthy"


# ============================================================================
# API Endpoints
# ============================================================================

@router.get(
    "",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Basic health check",
    description="Returns basic application health status and uptime"
)
async def basic_health_check() -> HealthResponse:
    """
    Basic health check endpoint

    Always returns 200 OK. Does not check external dependencies.
    """
    uptime = time.time() - APP_START_TIME

    return HealthResponse(
        status="healthy",
        timestamp=datetime.utcnow(),
        version=__version__,
        uptime_seconds=round(uptime, 2)
    )


@router.get(
    "/dependencies",
    response_model=DependencyHealth,
    status_code=status.HTTP_200_OK,
    summary="Dependency health check",
    description="Checks all external dependencies and returns detailed status"
)
async def dependency_health_check() -> DependencyHealth:
    """
    Dependency health check endpoint

    Checks Supabase, Resend and OpenAI. Results are cached for 30 seconds.
    Always returns 200 OK with detailed status information.
    """
    global _dependency_cache, _cache_timestamp

    current_time = time.time()
    if _dependency_cache and (current_time - _cache_timestamp) < CACHE_TTL_SECONDS:
        logger.debug("Returning cached dependency health check results")
        return _dependency_cache

    logger.info("Performing dependency health checks")
    dependencies = await check_all_dependencies()

    response = DependencyHealth(
        overall_status=determine_overall_status(dependencies),
        dependencies=dependencies,
        checked_at=datetime.utcnow()
    )

    _dependency_cache = response
    _cache_timestamp = current_time

    # Log failures only; successful checks are too noisy
    unhealthy_deps = [
        name for name, dep in dependencies.items()
        if dep.status == "unhealthy"
    ]
    if unhealthy_deps:
        logger.warning(f"Unhealthy dependencies: {', '.join(unhealthy_deps)}")

    return response
