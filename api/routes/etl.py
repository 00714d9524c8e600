"""
Manual ETL runs, run history and scheduler control
"""

from typing import List
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from api.dependencies import get_scheduler
from ingestion.scheduler import ETLScheduler
from schemas.api import ErrorResponse, MessageResponse
from schemas.etl import RunOutcome
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["ETL"])


@router.post(
    "/etl/run",
    response_model=RunOutcome,
    responses={
        409: {"model": ErrorResponse, "description": "A run is already in flight"},
        500: {"model": RunOutcome, "description": "The run failed"}
    }
)
async def run_etl(scheduler: ETLScheduler = Depends(get_scheduler)):
    """
    Run the pipeline now and return its outcome.

    A failed run is still returned as an outcome (with status 500) so the
    caller can inspect its duration and error message.
    """
    outcome = await scheduler.run_manual()

    if not outcome.success:
        return JSONResponse(
            status_code=500,
            content=outcome.model_dump(by_alias=True, mode="json")
        )
    return outcome


@router.get("/etl/history", response_model=List[RunOutcome])
async def get_history(scheduler: ETLScheduler = Depends(get_scheduler)):
    """Most recent run outcomes, newest first"""
    return scheduler.status().history


@router.post("/scheduler/start", response_model=MessageResponse)
async def start_scheduler(scheduler: ETLScheduler = Depends(get_scheduler)):
    scheduler.start()
    return MessageResponse(message="Scheduler started")


@router.post("/scheduler/stop", response_model=MessageResponse)
async def stop_scheduler(scheduler: ETLScheduler = Depends(get_scheduler)):
    scheduler.stop()
    return MessageResponse(message="Scheduler stopped")
