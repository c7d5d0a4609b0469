# PATH: tests/conftest.py
"""
Pytest configuration and fixtures for Portal client tests.
"""

import sys
from pathlib import Path
from typing import Any, List

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))
# Test modules import the fakes below with `from conftest import ...`
sys.path.insert(0, str(Path(__file__).parent))

from core.time import ManualClock  # noqa: E402
from portal.client import RetryingClient  # noqa: E402
from portal.transport import RawOutcome  # noqa: E402

PORTAL_URL = "https://portal.test"


def pytest_configure(config):
    """Configure pytest."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )


# =============================================================================
# FAKES
# =============================================================================

class ScriptedTransport:
    """
    Transport double returning queued outcomes.

    Each queued item is a RawOutcome or an exception to raise.
    """

    def __init__(self, outcomes: List[Any] | None = None):
        self.outcomes = list(outcomes or [])
        self.calls: List[dict] = []

    def queue(self, *outcomes: Any) -> None:
        self.outcomes.extend(outcomes)

    async def execute(self, url, method="GET", body=None, timeout_ms=10_000, stream=False):
        self.calls.append({
            "url": url,
            "method": method,
            "body": body,
            "timeout_ms": timeout_ms,
            "stream": stream,
        })
        item = self.outcomes.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    async def close(self) -> None:
        pass


class SleepRecorder:
    """Async sleep replacement that records requested delays."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def ok(payload: Any, url: str = PORTAL_URL, status: int = 200) -> RawOutcome:
    return RawOutcome(url=url, status=status, payload=payload)


def failed(status: int, body: str = "", url: str = PORTAL_URL, headers: dict | None = None) -> RawOutcome:
    return RawOutcome(url=url, status=status, body_text=body, headers=headers or {})


def timed_out(url: str = PORTAL_URL) -> RawOutcome:
    return RawOutcome(url=url, timed_out=True)


class RoutedClient:
    """
    Client double answering fetch_json by URL suffix.

    Values may be payloads or exceptions; callables are invoked per call.
    """

    def __init__(self, routes: dict):
        self.routes = routes
        self.calls: List[str] = []

    async def fetch_json(self, url: str, timeout_ms=None):
        self.calls.append(url)
        for suffix, value in self.routes.items():
            if url.endswith(suffix):
                if callable(value):
                    value = value()
                if isinstance(value, Exception):
                    raise value
                return value
        raise AssertionError(f"unexpected url {url}")

    async def close(self) -> None:
        pass


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def sleep_recorder():
    return SleepRecorder()


@pytest.fixture
def transport():
    return ScriptedTransport()


@pytest.fixture
def client(transport, sleep_recorder):
    return RetryingClient(transport, max_retries=2, sleep=sleep_recorder)


@pytest.fixture
def clock():
    return ManualClock(start=1_000.0)


@pytest.fixture
def datasets_payload():
    return [
        {"dataset": "ethereum-mainnet", "aliases": ["ethereum"], "real_time": True},
        {"dataset": "ethereum-holesky", "aliases": [], "real_time": False},
        {"dataset": "base-mainnet", "aliases": ["base"], "real_time": True},
        {"dataset": "binance-mainnet", "aliases": [], "real_time": True},
        {"dataset": "arbitrum-one", "aliases": [], "real_time": True},
        {"dataset": "solana-mainnet", "aliases": ["solana"], "real_time": True},
    ]
