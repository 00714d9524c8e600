"""
ETL Runner - Orchestrates Extract, Transform, Load pipeline.

This module composes one full-snapshot run:
- Extract the dataset with retry (inside the extractor)
- Fail fast if the payload does not look like university records
- Normalize every record, isolating per-record failures
- Persist the batch with backup-before-overwrite

Stage errors propagate unchanged so the caller sees which stage failed.
"""

import time
from typing import Dict, Any, Optional
import logging

from ingestion.extractors.api_extractor import APIExtractor
from ingestion.transformers.normalizer import UniversityNormalizer
from ingestion.loaders.file_loader import FileLoader
from schemas.etl import EngineStatus
from core.exceptions import DataFormatError

logger = logging.getLogger(__name__)


class ETLRunner:
    """
    ETL Orchestrator

    Responsibilities:
    - Orchestrate Extract → Transform → Load
    - Time the whole run
    - Report per-stage counts
    - Never hand a failed extraction or transform to the loader
    """

    def __init__(
        self,
        extractor: Optional[APIExtractor] = None,
        normalizer: Optional[UniversityNormalizer] = None,
        loader: Optional[FileLoader] = None
    ):
        self.extractor = extractor or APIExtractor()
        self.normalizer = normalizer or UniversityNormalizer()
        self.loader = loader or FileLoader()

    async def run_once(self) -> Dict[str, Any]:
        """
        Run the full ETL pipeline once.

        Returns:
            Dictionary with run statistics:
            - status: "success"
            - duration_ms: Wall-clock duration of the run
            - records_extracted: Number of raw records fetched
            - records_transformed: Number of canonical records produced
            - records_failed: Number of records rejected by the normalizer
            - records_loaded: Number of records persisted

        Raises:
            ExtractionError: If the API could not be read or returned bad data
            LoadError: If the snapshot could not be written
        """
        start = time.perf_counter()
        logger.info("Starting ETL process")

        try:
            # --------------------------------------------------
            # PHASE 1: EXTRACTION
            # --------------------------------------------------
            raw_records = await self.extractor.extract()

            if not self.extractor.is_well_formed(raw_records):
                raise DataFormatError(
                    "Invalid data from API",
                    context={"api_url": self.extractor.api_url}
                )

            # --------------------------------------------------
            # PHASE 2: TRANSFORMATION
            # --------------------------------------------------
            batch = await self.normalizer.transform(raw_records)

            # --------------------------------------------------
            # PHASE 3: LOAD
            # --------------------------------------------------
            load_result = await self.loader.save(batch)

        except Exception as e:
            duration_ms = _elapsed_ms(start)
            logger.error(f"ETL failed after {duration_ms}ms: {str(e)}")
            raise

        duration_ms = _elapsed_ms(start)
        result = {
            "status": "success",
            "duration_ms": duration_ms,
            "records_extracted": len(raw_records),
            "records_transformed": batch.success_count,
            "records_failed": batch.failure_count,
            "records_loaded": load_result["records_loaded"]
        }

        logger.info(
            f"ETL completed in {duration_ms}ms - "
            f"Extracted: {result['records_extracted']}, "
            f"Transformed: {result['records_transformed']}, "
            f"Loaded: {result['records_loaded']}"
        )
        return result

    async def get_status(self) -> EngineStatus:
        """Whether data exists, how many records, and when it was produced"""
        snapshot = await self.loader.read()
        if snapshot is None:
            return EngineStatus(has_data=False, record_count=0, last_update=None)

        return EngineStatus(
            has_data=True,
            record_count=len(snapshot.records),
            last_update=snapshot.transformed_at
        )


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)
