"""
Unit tests for the universities API extractor
"""

import pytest
import httpx
from unittest.mock import patch
from ingestion.extractors.api_extractor import APIExtractor
from core.exceptions import APIExtractionError, NetworkError, DataFormatError


API_URL = "https://api.example.com/search"


def make_extractor(api, sleep, **kwargs):
    options = dict(
        api_url=API_URL,
        timeout=5.0,
        retry_attempts=3,
        retry_delay_ms=1000,
        max_retry_delay_ms=10000,
        client=api.client(),
        sleep=sleep
    )
    options.update(kwargs)
    return APIExtractor(**options)


class TestAPIExtractor:
    """Test API extractor functionality"""

    @pytest.mark.asyncio
    async def test_extract_success(self, fake_api, no_sleep, mock_university_data):
        """Test successful API data fetch"""
        api = fake_api(mock_university_data)
        extractor = make_extractor(api, no_sleep)

        result = await extractor.extract()

        assert result == mock_university_data
        assert api.calls == 1
        assert no_sleep.calls == []

    @pytest.mark.asyncio
    async def test_request_headers(self, fake_api, no_sleep):
        api = fake_api([])
        extractor = make_extractor(api, no_sleep)

        await extractor.extract()

        request = api.requests[0]
        assert request.method == "GET"
        assert str(request.url) == API_URL
        assert request.headers["User-Agent"] == "University-ETL-Service/1.0.0"
        assert request.headers["Accept"] == "application/json"

    @pytest.mark.asyncio
    async def test_retry_then_succeed(self, fake_api, no_sleep):
        """First call fails, second succeeds"""
        data = [{"name": "Test University", "country": "United States"}]
        api = fake_api(httpx.ConnectError("Network error"), data)
        extractor = make_extractor(api, no_sleep)

        result = await extractor.extract()

        assert result == data
        assert api.calls == 2
        assert len(no_sleep.calls) == 1
        # attempt 1 backoff: 1000ms base plus < 1000ms jitter, passed in seconds
        assert 1.0 <= no_sleep.calls[0] < 2.0

    @pytest.mark.asyncio
    async def test_fail_after_max_attempts(self, fake_api, no_sleep):
        api = fake_api(httpx.ConnectError("Persistent network error"))
        extractor = make_extractor(api, no_sleep)

        with pytest.raises(APIExtractionError) as exc_info:
            await extractor.extract()

        error = exc_info.value
        assert "Failed to extract data after 3 attempts" in error.message
        assert "Persistent network error" in error.message
        assert isinstance(error.original_exception, NetworkError)
        assert error.__cause__ is error.original_exception
        assert error.context["retry_count"] == 3
        assert api.calls == 3
        # no wait after the final attempt
        assert len(no_sleep.calls) == 2

    @pytest.mark.asyncio
    async def test_non_array_response_counts_as_attempt(self, fake_api, no_sleep):
        api = fake_api({"error": "invalid request"})
        extractor = make_extractor(api, no_sleep)

        with pytest.raises(APIExtractionError) as exc_info:
            await extractor.extract()

        assert "Invalid response format: expected array of universities" in exc_info.value.message
        assert isinstance(exc_info.value.original_exception, DataFormatError)
        assert api.calls == 3

    @pytest.mark.asyncio
    async def test_shape_failure_then_success(self, fake_api, no_sleep):
        api = fake_api("invalid response", [])
        extractor = make_extractor(api, no_sleep)

        assert await extractor.extract() == []
        assert api.calls == 2

    @pytest.mark.asyncio
    async def test_http_error_status(self, fake_api, no_sleep):
        api = fake_api(httpx.Response(503))
        extractor = make_extractor(api, no_sleep, retry_attempts=2)

        with pytest.raises(APIExtractionError) as exc_info:
            await extractor.extract()

        assert "after 2 attempts" in exc_info.value.message
        assert "API request failed with status 503: Service Unavailable" in exc_info.value.message
        assert exc_info.value.original_exception.context["status_code"] == 503
        assert api.calls == 2

    @pytest.mark.asyncio
    async def test_timeout_is_network_error(self, fake_api, no_sleep):
        api = fake_api(httpx.ReadTimeout("timed out"))
        extractor = make_extractor(api, no_sleep, retry_attempts=1)

        with pytest.raises(APIExtractionError) as exc_info:
            await extractor.extract()

        assert isinstance(exc_info.value.original_exception, NetworkError)
        assert "No response received from API" in exc_info.value.message
        assert no_sleep.calls == []

    @pytest.mark.asyncio
    async def test_invalid_json_body(self, fake_api, no_sleep):
        api = fake_api(httpx.Response(200, content=b"<html>oops</html>"))
        extractor = make_extractor(api, no_sleep, retry_attempts=1)

        with pytest.raises(APIExtractionError) as exc_info:
            await extractor.extract()

        assert "Failed to parse JSON response" in exc_info.value.message

    def test_rejects_zero_attempts(self, fake_api, no_sleep):
        with pytest.raises(ValueError):
            make_extractor(fake_api([]), no_sleep, retry_attempts=0)


class TestRetryDelay:
    """Exponential backoff with jitter"""

    @pytest.mark.parametrize("attempt, low", [(1, 1000), (2, 2000), (3, 4000), (4, 8000)])
    def test_delay_within_bounds(self, fake_api, no_sleep, attempt, low):
        extractor = make_extractor(fake_api([]), no_sleep)

        for _ in range(50):
            delay = extractor.calculate_retry_delay(attempt)
            assert low <= delay <= min(low + 1000, 10000)

    def test_delay_capped_at_max(self, fake_api, no_sleep):
        extractor = make_extractor(fake_api([]), no_sleep)

        assert extractor.calculate_retry_delay(5) == 10000
        assert extractor.calculate_retry_delay(10) == 10000

    def test_jitter_added(self, fake_api, no_sleep):
        extractor = make_extractor(fake_api([]), no_sleep)

        with patch("ingestion.extractors.api_extractor.random.random", return_value=0.5):
            assert extractor.calculate_retry_delay(1) == 1500
            assert extractor.calculate_retry_delay(2) == 2500


class TestIsWellFormed:
    """Structural validation of extracted payloads"""

    def test_valid_data(self):
        assert APIExtractor.is_well_formed([{"name": "Test University", "country": "United States"}])

    def test_rejects_non_array(self):
        assert not APIExtractor.is_well_formed({"name": "Test University"})
        assert not APIExtractor.is_well_formed("universities")
        assert not APIExtractor.is_well_formed(None)

    def test_rejects_missing_required_field(self):
        assert not APIExtractor.is_well_formed([{"name": "Test University"}])
        assert not APIExtractor.is_well_formed([{"name": "", "country": "United States"}])

    def test_rejects_non_object_elements(self):
        assert not APIExtractor.is_well_formed(["Test University"])

    def test_accepts_empty_array(self):
        assert APIExtractor.is_well_formed([])

    def test_only_first_element_is_sampled(self):
        """Later malformed records are left for the normalizer to reject"""
        data = [
            {"name": "Test University", "country": "United States"},
            {"unexpected": "shape"},
            "not even an object"
        ]
        assert APIExtractor.is_well_formed(data)
