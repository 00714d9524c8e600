"""
Script to run the university ETL pipeline once
"""

import asyncio
import sys
import os
import logging

# Add current directory to path to allow imports from core, ingestion, etc.
sys.path.append(os.getcwd())

from core.logging import setup_logging
from ingestion.runner import ETLRunner

logger = logging.getLogger(__name__)


async def run_etl() -> int:
    """Run one full ETL pass; returns the process exit code"""
    runner = ETLRunner()

    try:
        result = await runner.run_once()
    except Exception as e:
        logger.error(f"ETL pipeline error: {str(e)}")
        return 1

    logger.info(
        f"ETL completed in {result['duration_ms']}ms: "
        f"Extracted={result['records_extracted']}, "
        f"Failed={result['records_failed']}, "
        f"Loaded={result['records_loaded']}"
    )
    return 0


if __name__ == "__main__":
    setup_logging()
    sys.exit(asyncio.run(run_etl()))
