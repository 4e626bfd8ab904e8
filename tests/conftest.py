"""Pytest configuration and shared fixtures for tests."""

from collections.abc import Callable
from decimal import Decimal
from unittest.mock import AsyncMock

import httpx
import pytest

from src.tax.models import BracketTable

SAMPLE_BRACKETS_PAYLOAD = {
    "tax_brackets": [
        {"min": 0, "max": 50197, "rate": 0.15},
        {"min": 50197, "max": 100392, "rate": 0.205},
        {"min": 100392, "rate": 0.33},
    ]
}


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio backend for async tests.

    Returns:
        Backend name string.
    """
    return "asyncio"


@pytest.fixture
def sample_table() -> BracketTable:
    """Three-bracket table with an open-ended top bracket."""
    return BracketTable.from_dicts(SAMPLE_BRACKETS_PAYLOAD["tax_brackets"], tax_year=2022)


@pytest.fixture
def sample_payload() -> dict:
    return SAMPLE_BRACKETS_PAYLOAD


class RecordingSleep:
    """Stand-in for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)

    @property
    def total(self) -> Decimal:
        return sum((Decimal(str(delay)) for delay in self.delays), Decimal("0"))


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


class RequestLog:
    """MockTransport handler wrapper that records every request."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.handler = handler
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    @property
    def count(self) -> int:
        return len(self.requests)


@pytest.fixture
def make_client() -> Callable[[Callable[[httpx.Request], httpx.Response]], tuple[httpx.AsyncClient, RequestLog]]:
    """Build an AsyncClient backed by a recording MockTransport."""

    def _make(handler: Callable[[httpx.Request], httpx.Response]) -> tuple[httpx.AsyncClient, RequestLog]:
        log = RequestLog(handler)
        return httpx.AsyncClient(transport=httpx.MockTransport(log)), log

    return _make


@pytest.fixture
def mock_redis() -> AsyncMock:
    """Create a mock Redis connection that succeeds.

    Returns:
        AsyncMock configured to simulate healthy Redis.
    """
    redis_mock = AsyncMock()
    redis_mock.ping.return_value = True
    return redis_mock


@pytest.fixture
def mock_redis_failing() -> AsyncMock:
    """Create a mock Redis connection that fails.

    Returns:
        AsyncMock configured to raise exception on ping.
    """
    redis_mock = AsyncMock()
    redis_mock.ping.side_effect = Exception("Redis connection refused")
    return redis_mock
