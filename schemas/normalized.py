"""
Pydantic schemas for canonical university records and transform batches
"""

import re
from pydantic import BaseModel, Field, validator
from typing import Optional, List, Any
from datetime import datetime, timezone


SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CanonicalRecord(BaseModel):
    """
    Normalized university record.

    Ensures:
    - id is a lowercase, hyphen-separated slug
    - name and country are non-empty
    - domains and web pages are lists

    Serialized with camelCase aliases (alphaCode, stateProvince, webPages,
    lastUpdated) so the snapshot file keeps its public field names.
    """

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    country: str = Field(..., min_length=1)
    alpha_code: Optional[str] = Field(None, alias="alphaCode")
    state_province: Optional[str] = Field(None, alias="stateProvince")
    domains: List[str] = Field(default_factory=list)
    web_pages: List[str] = Field(default_factory=list, alias="webPages")
    last_updated: datetime = Field(default_factory=utc_now, alias="lastUpdated")

    @validator("id")
    def check_slug(cls, v):
        """Reject ids with leading, trailing or doubled separators"""
        if not SLUG_PATTERN.match(v):
            raise ValueError(f"id '{v}' is not a valid slug")
        return v

    @validator("name", "country")
    def check_not_blank(cls, v):
        if not v.strip():
            raise ValueError("must not be blank")
        return v

    class Config:
        frozen = True
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "id": "united-states-california-stanford-university",
                "name": "Stanford University",
                "country": "United States",
                "alphaCode": "US",
                "stateProvince": "California",
                "domains": ["stanford.edu"],
                "webPages": ["https://www.stanford.edu/"],
                "lastUpdated": "2024-01-15T00:00:00Z"
            }
        }


class TransformFailure(BaseModel):
    """A raw record that could not be normalized"""
    index: int = Field(..., ge=0)
    raw_record: Any = Field(None, alias="rawRecord")
    error_message: str = Field(..., alias="errorMessage")

    class Config:
        frozen = True
        populate_by_name = True


class TransformBatch(BaseModel):
    """
    Result of normalizing one raw batch.

    successCount + failureCount always equals totalInput, and successCount
    equals the number of records.
    """

    records: List[CanonicalRecord] = Field(default_factory=list)
    total_input: int = Field(..., ge=0, alias="totalInput")
    success_count: int = Field(..., ge=0, alias="successCount")
    failure_count: int = Field(..., ge=0, alias="failureCount")
    transformed_at: datetime = Field(default_factory=utc_now, alias="transformedAt")
    failures: List[TransformFailure] = Field(default_factory=list)

    @validator("failure_count")
    def counts_reconcile(cls, v, values):
        """Metadata totals must match the input and the records"""
        total = values.get("total_input")
        success = values.get("success_count")
        records = values.get("records")

        if total is not None and success is not None and success + v != total:
            raise ValueError(
                f"successCount ({success}) + failureCount ({v}) != totalInput ({total})"
            )
        if records is not None and success is not None and len(records) != success:
            raise ValueError(
                f"successCount ({success}) != number of records ({len(records)})"
            )
        return v

    class Config:
        populate_by_name = True


class PersistedSnapshot(TransformBatch):
    """Durable form of the most recent batch, as stored in the JSON file"""
    saved_at: datetime = Field(default_factory=utc_now, alias="savedAt")
