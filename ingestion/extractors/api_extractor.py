"""
Universities API extractor with bounded retry and exponential backoff.

This module provides robust API extraction with:
- Exponential backoff with jitter between attempts
- Shape validation of the decoded response (must be a JSON array)
- Typed errors for HTTP status, transport and format failures
- Timeout handling with configurable limits
- Injectable HTTP client and sleep function for tests
"""

import httpx
import asyncio
import random
from typing import List, Dict, Any, Optional, Callable, Awaitable
from core.config import settings
from core.exceptions import (
    APIExtractionError,
    NetworkError,
    DataFormatError,
    error_message
)
import logging

logger = logging.getLogger(__name__)

# Upper bound (exclusive) of the random jitter added to each retry delay
MAX_JITTER_MS = 1000.0


class APIExtractor:
    """
    Extract the full universities dataset from the REST API.

    Features:
    - Full-snapshot fetch (no pagination, no incremental checkpoint)
    - Retry logic with exponential backoff and jitter
    - Response shape validation
    - Comprehensive error handling

    Attributes:
        retry_attempts: Total number of attempts (default: 3)
        retry_delay_ms: Base retry delay in milliseconds (default: 1000)
        max_retry_delay_ms: Cap on a single retry delay (default: 10000)
        timeout: Request timeout in seconds (default: 30.0)
    """

    def __init__(
        self,
        api_url: Optional[str] = None,
        timeout: Optional[float] = None,
        retry_attempts: Optional[int] = None,
        retry_delay_ms: Optional[float] = None,
        max_retry_delay_ms: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None
    ):
        self.api_url = api_url or settings.UNIVERSITIES_API_URL
        self.timeout = timeout if timeout is not None else settings.API_TIMEOUT
        self.retry_attempts = retry_attempts if retry_attempts is not None else settings.RETRY_ATTEMPTS
        self.retry_delay_ms = retry_delay_ms if retry_delay_ms is not None else settings.RETRY_DELAY_MS
        self.max_retry_delay_ms = (
            max_retry_delay_ms if max_retry_delay_ms is not None else settings.MAX_RETRY_DELAY_MS
        )
        self.client = client
        self._sleep = sleep or asyncio.sleep

        if self.retry_attempts < 1:
            raise ValueError(f"retry_attempts must be at least 1, got {self.retry_attempts}")

        self.headers = {
            "User-Agent": "University-ETL-Service/1.0.0",
            "Accept": "application/json"
        }

    async def extract(self) -> List[Dict[str, Any]]:
        """
        Fetch university data from the API with retry logic.

        Returns:
            List of raw university records

        Raises:
            APIExtractionError: After every attempt has failed
        """
        logger.info(f"Starting data extraction from {self.api_url}")

        if self.client is not None:
            return await self._extract_with_retry(self.client)

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await self._extract_with_retry(client)

    async def _extract_with_retry(self, client: httpx.AsyncClient) -> List[Dict[str, Any]]:
        last_exception: Optional[Exception] = None

        for attempt in range(1, self.retry_attempts + 1):
            try:
                logger.info(f"Extraction attempt {attempt}/{self.retry_attempts}")

                data = await self._make_request(client)

                if not isinstance(data, list):
                    raise DataFormatError(
                        "Invalid response format: expected array of universities",
                        context={
                            "api_url": self.api_url,
                            "received_type": type(data).__name__
                        }
                    )

                logger.info(f"Successfully extracted {len(data)} universities")
                return data

            except Exception as e:
                last_exception = e
                logger.warning(f"Extraction attempt {attempt} failed: {error_message(e)}")

                if attempt < self.retry_attempts:
                    delay = self.calculate_retry_delay(attempt)
                    logger.info(f"Retrying in {delay:.0f}ms...")
                    await self._sleep(delay / 1000.0)

        logger.error(
            f"All extraction attempts failed. Last error: {error_message(last_exception)}"
        )
        raise APIExtractionError(
            f"Failed to extract data after {self.retry_attempts} attempts: "
            f"{error_message(last_exception)}",
            context={
                "api_url": self.api_url,
                "retry_count": self.retry_attempts
            },
            original_exception=last_exception
        )

    async def _make_request(self, client: httpx.AsyncClient) -> Any:
        """
        Make one HTTP GET request and decode the JSON body.

        Raises:
            NetworkError: No response received (timeout, connection failure)
            APIExtractionError: Non-2xx status
            DataFormatError: Body is not valid JSON
        """
        logger.debug(f"Making API request to: {self.api_url}")

        try:
            response = await client.get(
                self.api_url,
                headers=self.headers,
                timeout=self.timeout
            )
        except httpx.TimeoutException as e:
            raise NetworkError(
                f"No response received from API: timed out after {self.timeout}s",
                context={"api_url": self.api_url, "timeout": self.timeout},
                original_exception=e
            )
        except httpx.TransportError as e:
            raise NetworkError(
                f"No response received from API: {str(e)}",
                context={"api_url": self.api_url},
                original_exception=e
            )

        if not response.is_success:
            raise APIExtractionError(
                f"API request failed with status {response.status_code}: {response.reason_phrase}",
                context={
                    "api_url": self.api_url,
                    "status_code": response.status_code,
                    "response_body": response.text[:500]  # Truncate
                }
            )

        try:
            data = response.json()
        except ValueError as e:
            raise DataFormatError(
                "Failed to parse JSON response",
                context={
                    "api_url": self.api_url,
                    "response_body": response.text[:500]
                },
                original_exception=e
            )

        logger.debug(
            f"API request successful. Status: {response.status_code}, "
            f"Data length: {len(data) if isinstance(data, list) else 0}"
        )
        return data

    def calculate_retry_delay(self, attempt: int) -> float:
        """
        Delay in milliseconds before retrying after the given attempt.

        min(base * 2^(attempt-1) + jitter, max), jitter uniform in [0, 1000).
        """
        exponential_delay = self.retry_delay_ms * (2 ** (attempt - 1))
        jitter = random.random() * MAX_JITTER_MS
        return min(exponential_delay + jitter, self.max_retry_delay_ms)

    @staticmethod
    def is_well_formed(data: Any) -> bool:
        """
        Lightweight structural check of an extracted payload.

        Only the first element is inspected as a representative sample;
        per-record validation belongs to the normalizer.
        """
        if not isinstance(data, list):
            logger.error("Extracted data is not an array")
            return False

        if len(data) == 0:
            logger.warning("Extracted data array is empty")
            return True

        sample = data[0]
        if not isinstance(sample, dict):
            logger.error("Extracted records are not objects")
            return False

        for field in ("name", "country"):
            value = sample.get(field)
            if not isinstance(value, str) or not value.strip():
                logger.error(f"Missing required field '{field}' in extracted data")
                return False

        logger.info("Extracted data validation passed")
        return True
