"""Pytest configuration and shared fixtures."""

import logging
from typing import Any, Dict, List, Optional, Union
from unittest.mock import AsyncMock

import pytest

from kline_fetcher.config.settings import KlineFetcherSettings
from kline_fetcher.models import Kline
from kline_fetcher.utils.logging import ServiceContextFilter


class FakeResponse:
    """Minimal stand-in for aiohttp.ClientResponse used as an async context manager."""

    def __init__(
        self,
        status: int = 200,
        payload: Any = None,
        headers: Optional[Dict[str, str]] = None,
        text: str = ""
    ):
        self.status = status
        self.payload = payload
        self.headers = headers or {}
        self._text = text

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return False

    async def json(self, content_type=None):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload

    async def text(self):
        return self._text


class FakeSession:
    """Returns queued responses (or raises queued exceptions) for each GET."""

    def __init__(self, responses: List[Union[FakeResponse, Exception]]):
        self.responses = list(responses)
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    def get(self, url, params=None):
        self.calls.append({'url': url, 'params': dict(params or {})})
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    async def close(self):
        self.closed = True


def kline_payload(rows: List[List[str]], ret_code: int = 0, ret_msg: str = "OK") -> Dict[str, Any]:
    """Build a Bybit kline response body."""
    result: Dict[str, Any] = {'category': 'linear', 'symbol': 'SOLUSDT', 'list': rows} if ret_code == 0 else {}
    return {'retCode': ret_code, 'retMsg': ret_msg, 'result': result, 'time': 1700000000000}


@pytest.fixture
def test_settings() -> KlineFetcherSettings:
    """Create test configuration."""
    return KlineFetcherSettings(
        service_name="test-kline-fetcher",
        environment="local",
        bybit={
            'rest_base_url': "https://api.example.test",
            'symbol': "SOLUSDT",
            'interval': "5",
        },
        logging={'level': "DEBUG", 'format': "text", 'output': "stdout"}
    )


@pytest.fixture
def fake_sleep() -> AsyncMock:
    """Awaitable sleep that records requested delays without waiting."""
    return AsyncMock(return_value=None)


@pytest.fixture
def sample_rows() -> List[List[str]]:
    """Raw kline rows as Bybit returns them (newest first, with turnover)."""
    return [
        ["1700000600000", "56.12", "56.40", "55.98", "56.31", "1520.7", "85590.1"],
        ["1700000300000", "56.00", "56.20", "55.90", "56.12", "1210.3", "67899.4"],
        ["1700000000000", "55.80", "56.05", "55.75", "56.00", "998.25", "55853.2"],
    ]


@pytest.fixture
def sample_klines() -> List[Kline]:
    return [
        Kline(start=1700000000000, open=55.8, high=56.05, low=55.75, close=56.0, volume=998.25),
        Kline(start=1700000300000, open=56.0, high=56.2, low=55.9, close=56.12, volume=1210.3),
        Kline(start=1700000600000, open=56.12, high=56.4, low=55.98, close=56.31, volume=1520.7),
    ]


@pytest.fixture(autouse=True)
def remove_service_log_handlers():
    """Detach and close handlers installed by setup_logging during a test."""
    root = logging.getLogger()
    level = root.level
    yield
    for handler in list(root.handlers):
        if any(isinstance(f, ServiceContextFilter) for f in handler.filters):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
