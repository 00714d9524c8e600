"""
FastAPI dependencies exposing the engine objects attached to the app
"""

from fastapi import Request
from ingestion.runner import ETLRunner
from ingestion.scheduler import ETLScheduler
from ingestion.loaders.file_loader import FileLoader


def get_scheduler(request: Request) -> ETLScheduler:
    return request.app.state.scheduler


def get_runner(request: Request) -> ETLRunner:
    return request.app.state.scheduler.runner


def get_loader(request: Request) -> FileLoader:
    return request.app.state.scheduler.runner.loader
