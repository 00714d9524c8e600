"""
Pydantic schemas for API request/response models
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict
from datetime import datetime
from schemas.normalized import CanonicalRecord, utc_now
from schemas.etl import EngineStatus, SchedulerStatus


class HealthResponse(BaseModel):
    """Liveness response"""
    status: str = "ok"
    timestamp: datetime = Field(default_factory=utc_now)
    uptime_seconds: float = Field(..., ge=0)


class StatusResponse(BaseModel):
    """Combined engine and scheduler status"""
    etl: EngineStatus
    scheduler: SchedulerStatus


class DataResponse(BaseModel):
    """Filtered slice of the current snapshot"""
    total: int = Field(..., ge=0, description="Number of matches before the limit is applied")
    data: List[CanonicalRecord]

    class Config:
        json_schema_extra = {
            "example": {
                "total": 1,
                "data": [
                    {
                        "id": "united-states-massachusetts-harvard-university",
                        "name": "Harvard University",
                        "country": "United States",
                        "alphaCode": "US",
                        "stateProvince": "Massachusetts",
                        "domains": ["harvard.edu"],
                        "webPages": ["https://www.harvard.edu/"],
                        "lastUpdated": "2024-01-15T00:00:00Z"
                    }
                ]
            }
        }


class MessageResponse(BaseModel):
    message: str


class ServiceInfo(BaseModel):
    name: str
    version: str
    endpoints: Dict[str, str]


class ErrorResponse(BaseModel):
    """Standard error response"""
    error: str
    detail: Optional[str] = None
    timestamp: datetime = Field(default_factory=utc_now)

    class Config:
        json_schema_extra = {
            "example": {
                "error": "No data available",
                "detail": None,
                "timestamp": "2024-01-15T10:30:00Z"
            }
        }
