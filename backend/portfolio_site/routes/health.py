"""
Portfolio Site Backend — Health Check Route
============================================

What:  GET/HEAD /api/health for the uptime monitor and the container healthcheck.
How:   Reports process facts only (uptime, memory, runtime). Supabase is
       not contacted; the site pages keep working while it is down.
Who:   Docker HEALTHCHECK (HEAD), external monitoring (GET).

Status codes:
    200 → healthy
    503 → the check itself failed (e.g. psutil could not read the process)
"""

import logging
import platform
import time
from datetime import datetime, timezone

import psutil
from fastapi import APIRouter, Response
from fastapi.responses import JSONResponse

from portfolio_site import __version__
from portfolio_site.config import settings
from portfolio_site.schemas.api import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}

_start_time = time.time()


def _memory_mb() -> dict:
    info = psutil.Process().memory_info()
    return {
        "rss": round(info.rss / 1024 / 1024, 2),
        "vms": round(info.vms / 1024 / 1024, 2),
    }


def _runtime() -> dict:
    return {
        "python": platform.python_version(),
        "platform": platform.system().lower(),
        "arch": platform.machine(),
    }


@router.get(
    "/api/health",
    response_model=HealthResponse,
    responses={503: {"description": "Health check failed"}},
    summary="Service health check",
)
async def health_check():
    try:
        body = HealthResponse(
            status="healthy",
            timestamp=datetime.now(timezone.utc).isoformat(),
            version=__version__,
            environment=settings.environment,
            uptime=round(time.time() - _start_time, 2),
            memory=_memory_mb(),
            runtime=_runtime(),
        )
    except Exception as e:
        logger.error("Health check failed: %s", e, exc_info=True)
        return JSONResponse(
            status_code=503,
            content={
                "status": "unhealthy",
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "error": "Health check failed",
            },
            headers=NO_CACHE_HEADERS,
        )

    return JSONResponse(content=body.model_dump(), headers=NO_CACHE_HEADERS)


@router.head("/api/health", include_in_schema=False)
async def health_head() -> Response:
    return Response(status_code=200, headers=NO_CACHE_HEADERS)
