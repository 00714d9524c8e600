"""
FastAPI application initialization
"""

from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from api.routes import health, data, etl
from api.middleware import RequestContextMiddleware
from core.config import settings
from core.exceptions import ETLException, ConcurrencyError, NotFoundError
from core.logging import setup_logging
from ingestion.scheduler import ETLScheduler
from schemas.api import ErrorResponse, ServiceInfo
import logging

logger = logging.getLogger(__name__)

_STATUS_CODES = {
    NotFoundError: 404,
    ConcurrencyError: 409,
}


async def etl_exception_handler(request: Request, exc: ETLException):
    """Map engine errors to JSON error responses"""
    status_code = next(
        (code for cls, code in _STATUS_CODES.items() if isinstance(exc, cls)),
        500
    )
    if status_code == 500:
        logger.error(f"Request failed: {str(exc)}")

    body = ErrorResponse(error=exc.message)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


def create_app(
    scheduler: Optional[ETLScheduler] = None,
    autostart: Optional[bool] = None
) -> FastAPI:
    """Build the app around an engine; defaults come from settings"""
    scheduler = scheduler or ETLScheduler()
    autostart = settings.SCHEDULER_AUTOSTART if autostart is None else autostart

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting University ETL Service")
        logger.info(f"Environment: {settings.ENVIRONMENT}")
        logger.info(f"Data directory: {scheduler.runner.loader.data_dir}")

        if autostart:
            scheduler.start()

        yield

        logger.info("Shutting down University ETL Service")
        scheduler.shutdown()

    app = FastAPI(
        title="University ETL Service",
        description="Periodic extraction, normalization and export of university data",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )
    app.state.scheduler = scheduler

    app.add_middleware(RequestContextMiddleware)
    app.add_exception_handler(ETLException, etl_exception_handler)

    app.include_router(health.router)
    app.include_router(etl.router)
    app.include_router(data.router)

    @app.get("/", response_model=ServiceInfo)
    async def root():
        """Root endpoint"""
        return ServiceInfo(
            name="University ETL Service",
            version="1.0.0",
            endpoints={
                "health": "/api/health",
                "status": "/api/status",
                "runETL": "/api/etl/run",
                "history": "/api/etl/history",
                "downloadCSV": "/api/download/csv",
                "downloadJSON": "/api/download/json",
                "data": "/api/data"
            }
        )

    return app


setup_logging()
app = create_app()
