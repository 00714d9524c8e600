"""
Transform raw university records into canonical records with Pydantic validation
"""

import asyncio
import re
from typing import Dict, Any, Optional, List
from pydantic import ValidationError as PydanticValidationError
from schemas.normalized import (
    CanonicalRecord,
    TransformBatch,
    TransformFailure,
    utc_now
)
from core.exceptions import TransformationError, ValidationError
import logging

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_HYPHEN_RUN = re.compile(r"-+")
_WHITESPACE = re.compile(r"\s+")

# Number of failures echoed in the summary log line
_LOGGED_FAILURES = 5


def slugify(value: str) -> str:
    """Lowercase, collapse non-alphanumeric runs to '-', strip edge hyphens"""
    return _NON_ALNUM.sub("-", value.lower()).strip("-")


class UniversityNormalizer:
    """
    Normalize raw university records into the canonical schema.

    Handles:
    - Required field checks (name, country)
    - Deterministic slug ids
    - String sanitizing
    - Domain / web page cleanup and deduplication
    - Per-record failure isolation
    """

    REQUIRED_FIELDS = ("name", "country")

    async def transform(self, raw_records: List[Any]) -> TransformBatch:
        """
        Transform a raw batch.

        Individual record failures are collected into the batch and never
        abort the remaining records.

        Raises:
            TransformationError: If the input itself is not a list
        """
        if not isinstance(raw_records, list):
            raise TransformationError(
                "Input data must be an array",
                context={"received_type": type(raw_records).__name__}
            )

        logger.info(f"Starting data transformation for {len(raw_records)} records")

        records: List[CanonicalRecord] = []
        failures: List[TransformFailure] = []

        for index, raw in enumerate(raw_records):
            try:
                records.append(self.transform_record(raw, index))
            except (TransformationError, PydanticValidationError) as e:
                reason = e.message if isinstance(e, TransformationError) else _describe(e)
                failures.append(TransformFailure(index=index, raw_record=raw, error_message=reason))
                logger.warning(f"Failed to transform record at index {index}: {reason}")

            # Yield to the event loop between records
            await asyncio.sleep(0)

        logger.info(
            f"Transformation completed. Success: {len(records)}, Errors: {len(failures)}"
        )
        if failures:
            logger.warning(
                "Transformation errors encountered",
                extra={"errors": [f.model_dump(by_alias=True) for f in failures[:_LOGGED_FAILURES]]}
            )

        return TransformBatch(
            records=records,
            total_input=len(raw_records),
            success_count=len(records),
            failure_count=len(failures),
            transformed_at=utc_now(),
            failures=failures
        )

    def transform_record(self, record: Any, index: int) -> CanonicalRecord:
        """
        Transform a single raw record.

        Raises:
            ValidationError: Record is not an object or lacks a required field
            pydantic.ValidationError: Built record fails the final shape check
        """
        if not isinstance(record, dict):
            raise ValidationError(
                f"Invalid record type at index {index}: expected object",
                context={"record_index": index, "received_type": type(record).__name__}
            )

        for field in self.REQUIRED_FIELDS:
            value = record.get(field)
            if not isinstance(value, str) or not value.strip():
                raise ValidationError(
                    f"Missing or invalid required field '{field}'",
                    context={"record_index": index, "field_name": field}
                )

        return CanonicalRecord(
            id=self.generate_id(record),
            name=self.sanitize_string(record["name"]),
            country=self.sanitize_string(record["country"]),
            alpha_code=self._optional_string(record.get("alpha_two_code")),
            state_province=self._optional_string(record.get("state-province")),
            domains=self.transform_domains(record.get("domains")),
            web_pages=self.transform_web_pages(record.get("web_pages")),
            last_updated=utc_now()
        )

    @staticmethod
    def generate_id(record: Dict[str, Any]) -> str:
        """Build the slug id: country[-state]-name"""
        parts = [slugify(record["country"])]

        state = record.get("state-province")
        if state is not None and str(state).strip():
            parts.append(slugify(str(state)))

        parts.append(slugify(record["name"]))

        joined = "-".join(parts)
        return _HYPHEN_RUN.sub("-", joined).strip("-")

    @staticmethod
    def sanitize_string(value: Any) -> str:
        """Trim and collapse internal whitespace"""
        if not isinstance(value, str):
            value = str(value)
        return _WHITESPACE.sub(" ", value.strip())

    @classmethod
    def _optional_string(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        cleaned = cls.sanitize_string(value)
        return cleaned or None

    @staticmethod
    def transform_domains(domains: Any) -> List[str]:
        """Keep non-empty strings, lowercased, deduplicated in first-seen order"""
        if not isinstance(domains, list):
            return []

        cleaned = (d.strip().lower() for d in domains if isinstance(d, str))
        return list(dict.fromkeys(d for d in cleaned if d))

    @staticmethod
    def transform_web_pages(web_pages: Any) -> List[str]:
        """Keep non-empty strings, ensure an http(s) scheme, deduplicate"""
        if not isinstance(web_pages, list):
            return []

        urls = []
        for url in web_pages:
            if not isinstance(url, str):
                continue
            trimmed = url.strip()
            if not trimmed:
                continue
            if not trimmed.startswith(("http://", "https://")):
                trimmed = f"https://{trimmed}"
            urls.append(trimmed)

        return list(dict.fromkeys(urls))

    @staticmethod
    def get_transformation_stats(batch: TransformBatch) -> Dict[str, Any]:
        """Summary statistics for a transform batch"""
        total = batch.total_input
        success_rate = f"{batch.success_count / total * 100:.2f}%" if total > 0 else "0%"

        return {
            "total_records": total,
            "successful_transformations": batch.success_count,
            "failed_transformations": batch.failure_count,
            "success_rate": success_rate,
            "transformation_date": batch.transformed_at.isoformat(),
            "unique_countries": len({r.country for r in batch.records}),
            "records_with_domains": sum(1 for r in batch.records if r.domains),
            "records_with_web_pages": sum(1 for r in batch.records if r.web_pages),
        }


def _describe(error: PydanticValidationError) -> str:
    """Compact one-line summary of a pydantic validation error"""
    problems = [
        f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}"
        for err in error.errors()
    ]
    return "Transformed record failed validation: " + "; ".join(problems)
