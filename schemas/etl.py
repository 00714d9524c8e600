"""
Pydantic schemas for ETL run outcomes and engine/scheduler status
"""

import enum
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


class TriggerType(str, enum.Enum):
    """What started a pipeline run"""
    SCHEDULED = "scheduled"
    MANUAL = "manual"


class RunOutcome(BaseModel):
    """One recorded pipeline execution"""
    timestamp: datetime
    success: bool
    duration_ms: int = Field(..., ge=0, alias="durationMs")
    records_loaded: Optional[int] = Field(None, ge=0, alias="recordsLoaded")
    error_message: Optional[str] = Field(None, alias="errorMessage")
    trigger_type: TriggerType = Field(..., alias="triggerType")

    class Config:
        frozen = True
        populate_by_name = True
        use_enum_values = True
        json_schema_extra = {
            "example": {
                "timestamp": "2024-01-15T00:00:04Z",
                "success": True,
                "durationMs": 4210,
                "recordsLoaded": 2291,
                "errorMessage": None,
                "triggerType": "scheduled"
            }
        }


class EngineStatus(BaseModel):
    """State of the persisted data"""
    has_data: bool = Field(..., alias="hasData")
    record_count: int = Field(0, ge=0, alias="recordCount")
    last_update: Optional[datetime] = Field(None, alias="lastUpdate")

    class Config:
        populate_by_name = True


class SchedulerStatus(BaseModel):
    """Snapshot of the scheduler state"""
    is_running: bool = Field(..., alias="isRunning", description="Timed trigger is armed")
    is_executing: bool = Field(..., alias="isExecuting", description="A run is in flight")
    history: List[RunOutcome] = Field(default_factory=list)
    next_execution: Optional[datetime] = Field(None, alias="nextExecution")

    class Config:
        populate_by_name = True
