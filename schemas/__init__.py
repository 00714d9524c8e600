"""
Pydantic schemas for data validation and serialization.

This package defines Pydantic models used throughout the ETL engine
and the control API:

Schemas:
    normalized: Canonical university records, transform batches, snapshots
    etl: Run outcomes, trigger types, engine and scheduler status
    api: API endpoint response models

Features:
    - Automatic data validation
    - camelCase JSON aliases for the persisted snapshot
    - JSON serialization/deserialization
    - OpenAPI schema generation for FastAPI

Usage:
    from schemas.normalized import CanonicalRecord, TransformBatch
    from schemas.etl import RunOutcome, TriggerType

Example:
    record = CanonicalRecord(
        id="united-states-mit",
        name="MIT",
        country="United States",
    )

    # Serialized with public field names
    record.model_dump(by_alias=True, mode="json")["webPages"]  # []
"""

__all__ = [
    "CanonicalRecord",
    "TransformFailure",
    "TransformBatch",
    "PersistedSnapshot",
    "RunOutcome",
    "TriggerType",
    "EngineStatus",
    "SchedulerStatus",
    "HealthResponse",
    "StatusResponse",
    "DataResponse",
]
