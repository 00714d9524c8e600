"""
Health check and engine/scheduler status endpoints
"""

from fastapi import APIRouter, Depends
from api.dependencies import get_runner, get_scheduler
from schemas.api import HealthResponse, StatusResponse, ErrorResponse
from ingestion.runner import ETLRunner
from ingestion.scheduler import ETLScheduler
import time
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["Health"])

_started_at = time.monotonic()


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Liveness probe"""
    return HealthResponse(uptime_seconds=round(time.monotonic() - _started_at, 3))


@router.get(
    "/status",
    response_model=StatusResponse,
    responses={500: {"model": ErrorResponse}}
)
async def get_status(
    runner: ETLRunner = Depends(get_runner),
    scheduler: ETLScheduler = Depends(get_scheduler)
):
    """
    Engine and scheduler status.

    Returns:
    - Whether a snapshot exists, its record count and last update
    - Whether the timed trigger is armed and a run is in flight
    - Most recent run outcomes
    """
    etl_status = await runner.get_status()
    return StatusResponse(etl=etl_status, scheduler=scheduler.status())
