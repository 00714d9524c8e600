"""
Pytest configuration and fixtures
"""

import pytest
import httpx
from typing import Any, List

from ingestion.extractors.api_extractor import APIExtractor
from ingestion.loaders.file_loader import FileLoader
from ingestion.runner import ETLRunner
from ingestion.triggers import JobTrigger

TEST_API_URL = "https://api.test/search?country=United+States"


class FakeUniversityAPI:
    """
    Scripted upstream API behind httpx.MockTransport.

    Each request consumes the next scripted response; the last one repeats.
    A response may be JSON-able data, an httpx.Response or an exception.
    """

    def __init__(self, *responses: Any):
        self.responses = list(responses)
        self.requests: List[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses[min(len(self.requests), len(self.responses)) - 1]

        if isinstance(response, Exception):
            raise response
        if isinstance(response, httpx.Response):
            return response
        return httpx.Response(200, json=response)

    @property
    def calls(self) -> int:
        return len(self.requests)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


class RecordingSleep:
    """Zero-delay replacement for asyncio.sleep that remembers its arguments"""

    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class FakeTrigger(JobTrigger):
    """In-memory trigger; tests fire the callback by hand"""

    def __init__(self):
        self.callbacks = {}
        self.registered = 0
        self.deregistered = 0
        self.shut_down = False

    def register(self, callback, schedule):
        self.registered += 1
        handle = f"job-{self.registered}"
        self.callbacks[handle] = callback
        return handle

    def deregister(self, handle):
        self.deregistered += 1
        self.callbacks.pop(handle, None)

    def shutdown(self):
        self.shut_down = True

    async def fire(self):
        for callback in list(self.callbacks.values()):
            await callback()


@pytest.fixture
def mock_university_data():
    """Mock universities API response data"""
    return [
        {
            "name": "Harvard University",
            "country": "United States",
            "alpha_two_code": "US",
            "state-province": "Massachusetts",
            "domains": ["harvard.edu", "HARVARD.edu"],
            "web_pages": ["https://www.harvard.edu/"]
        },
        {
            "name": "  Massachusetts   Institute of Technology ",
            "country": "United States",
            "alpha_two_code": "US",
            "state-province": None,
            "domains": ["mit.edu"],
            "web_pages": ["web.mit.edu", "http://web.mit.edu"]
        },
        {
            "name": "",
            "country": "United States",
            "domains": ["broken.edu"],
            "web_pages": []
        }
    ]


@pytest.fixture
def fake_api():
    return FakeUniversityAPI


@pytest.fixture
def no_sleep():
    return RecordingSleep()


@pytest.fixture
def fake_trigger():
    return FakeTrigger()


@pytest.fixture
def loader(tmp_path):
    """File loader rooted in a temporary directory"""
    return FileLoader(
        data_dir=str(tmp_path / "data"),
        backup_dir=str(tmp_path / "data" / "backups"),
        json_file="universities.json",
        csv_file="universities.csv",
        backup_retention=30
    )


@pytest.fixture
def make_runner(loader, no_sleep):
    """Build a runner whose extractor talks to a FakeUniversityAPI"""
    def factory(api: FakeUniversityAPI, retry_attempts: int = 3) -> ETLRunner:
        extractor = APIExtractor(
            api_url=TEST_API_URL,
            timeout=5.0,
            retry_attempts=retry_attempts,
            retry_delay_ms=1000,
            max_retry_delay_ms=10000,
            client=api.client(),
            sleep=no_sleep
        )
        return ETLRunner(extractor=extractor, loader=loader)

    return factory
