"""
ETL pipeline components for university data ingestion.

This package contains all components for the Extract-Transform-Load pipeline:

Modules:
    runner: ETL orchestrator that coordinates extract, transform, and load phases
    scheduler: Scheduler state machine (timed + manual runs, run history)
    triggers: APScheduler cron trigger behind a register/deregister interface

Subpackages:
    extractors: Universities API extractor with retry and backoff
    transformers: Record normalization and validation
    loaders: JSON/CSV file loader with backup-before-overwrite

Architecture:
    The ETL pipeline follows a three-phase approach:

    1. Extract - Fetch the full dataset with bounded retry
    2. Transform - Normalize records, isolating per-record failures
    3. Load - Back up the previous snapshot, then replace it

    At most one run is in flight at any time; the scheduler enforces it.

Usage:
    from ingestion.runner import ETLRunner
    from ingestion.scheduler import ETLScheduler

Example:
    runner = ETLRunner()
    result = await runner.run_once()

    print(f"Loaded {result['records_loaded']} records")

    scheduler = ETLScheduler(runner=runner)
    outcome = await scheduler.run_manual()

Error Handling:
    All components use custom exceptions from core.exceptions for
    structured error handling.
"""

__all__ = [
    "ETLRunner",
    "ETLScheduler",
    "APIExtractor",
    "UniversityNormalizer",
    "FileLoader",
]
