"""
Health check endpoints.
"""

import time

from fastapi import APIRouter

from workshop import __version__
from workshop.application.dto.responses import ComponentHealthResponse, HealthResponse

router = APIRouter(prefix="/api/health", tags=["health"])

# Track startup time
_start_time = time.time()


@router.get("", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Health check.

    Reports uptime, SQLite connectivity and the applied schema version.
    """
    from workshop.infrastructure.storage.sqlite import get_pool
    from workshop.infrastructure.storage.sqlite.migrations import get_current_version

    db_status = ComponentHealthResponse(status="unavailable")
    schema_version = None
    try:
        pool = await get_pool()
        start = time.time()
        async with pool.acquire() as conn:
            await conn.execute("SELECT 1")
            schema_version = await get_current_version(conn)
        db_status = ComponentHealthResponse(
            status="ok",
            detail=f"{(time.time() - start) * 1000:.1f}ms",
        )
    except Exception as e:
        db_status = ComponentHealthResponse(status="unavailable", detail=str(e))

    return HealthResponse(
        status="healthy" if db_status.status == "ok" else "unhealthy",
        version=__version__,
        uptime_seconds=time.time() - _start_time,
        database=db_status,
        schema_version=schema_version,
    )
