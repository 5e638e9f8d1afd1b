"""
MemeStudio Backend - Health Check Route
========================================

What:  GET /health for container and load balancer probes.

Status levels:
    healthy:   database reachable and asset host configured     (200)
    degraded:  database reachable, asset host unconfigured       (200)
    unhealthy: database unreachable                              (503)

The asset host is only checked for credentials; probing it would spend
API quota on every health check.
"""

import logging
import time

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text

from memestudio import __version__
from memestudio.database import engine
from memestudio.dependencies import get_asset_host
from memestudio.schemas.common import HealthResponse
from memestudio.services.asset_base import AssetHost

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"description": "Database unreachable", "model": HealthResponse}},
    summary="Service health check",
)
async def health_check(asset_host: AssetHost = Depends(get_asset_host)):
    db_status = "connected"
    overall = "healthy"

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    asset_status = "configured" if asset_host.is_configured() else "unconfigured"
    if asset_status == "unconfigured" and overall == "healthy":
        overall = "degraded"

    body = HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        asset_host=asset_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
    if overall == "unhealthy":
        return JSONResponse(status_code=503, content=body.model_dump())
    return body
