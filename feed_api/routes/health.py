"""
Feed API — Health Check Route
===============================

What:  Health check endpoint for monitoring and load balancer probes.
How:   Checks the database (SELECT 1) and that the image storage directory
       is writable.

Status levels:
    - healthy:   database reachable and storage writable
    - unhealthy: either dependency failing (posts cannot be served or created)
"""

import logging
import os
import time

from fastapi import APIRouter
from sqlalchemy import text

from feed_api import __version__
from feed_api.schemas.post import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check() -> HealthResponse:
    db_status = "connected"
    storage_status = "writable"
    overall = "healthy"

    # ── Check Database ────────────────────────────────────────────────────
    try:
        from feed_api.database import engine
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    # ── Check Storage ─────────────────────────────────────────────────────
    from feed_api.services.file_service import file_service
    root = file_service.storage_root
    if not (root.is_dir() and os.access(root, os.W_OK)):
        storage_status = "unavailable"
        overall = "unhealthy"
        logger.warning("Health check: storage not writable: %s", root)

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        storage=storage_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
