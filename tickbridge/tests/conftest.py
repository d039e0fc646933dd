"""
TICKBRIDGE — Test Configuration & Fixtures
Shared fixtures: a scripted stand-in for aiohttp.ClientSession, TwelveData
payload builders and zero-wait pacing.
"""
import json
import pytest
import numpy as np
from datetime import datetime, timezone, timedelta
from typing import Any, Dict, List, Optional

from tickbridge.config.settings import ProviderSettings
from tickbridge.data.adapters.twelvedata_adapter import TwelveDataAdapter
from tickbridge.data.events import RecordingEventSink
from tickbridge.data.orchestrator import PacingPolicy
from tickbridge.data.synthetic import SyntheticCandleGenerator

FIXED_NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeResponse:
    def __init__(self, payload: Any = None, status: int = 200, reason: str = "OK"):
        self.payload = payload
        self.status = status
        self.reason = reason

    async def json(self, content_type=None):
        if isinstance(self.payload, str):
            return json.loads(self.payload)
        return self.payload

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class _RaisingContext:
    def __init__(self, error: BaseException):
        self.error = error

    async def __aenter__(self):
        raise self.error

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    """Answers GETs from a per-interval script; each entry is a FakeResponse or an exception."""

    def __init__(self, routes: Optional[Dict[str, Any]] = None, default: Any = None):
        self.routes = routes or {}
        self.default = default
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    def get(self, url, params=None, headers=None):
        params = params or {}
        self.calls.append({"url": url, "params": dict(params), "headers": headers})
        reply = self.routes.get(params.get("interval"), self.default)
        if reply is None:
            reply = FakeResponse({"code": 500, "message": "unscripted request", "status": "error"})
        if isinstance(reply, BaseException):
            return _RaisingContext(reply)
        return reply

    async def close(self):
        self.closed = True

    @property
    def intervals(self) -> List[str]:
        return [c["params"].get("interval") for c in self.calls]


class RecordingSleep:
    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def make_values(count: int, base: float = 1.1, step: timedelta = timedelta(minutes=5),
                with_volume: bool = True) -> List[Dict[str, str]]:
    """TwelveData-style 'values' list, newest first, prices as strings."""
    rows = []
    newest = FIXED_NOW
    for i in range(count):
        price = base + i * 0.001
        row = {
            "datetime": (newest - step * i).strftime("%Y-%m-%d %H:%M:%S"),
            "open": f"{price:.5f}",
            "high": f"{price + 0.002:.5f}",
            "low": f"{price - 0.002:.5f}",
            "close": f"{price + 0.001:.5f}",
        }
        if with_volume:
            row["volume"] = str(1000 + i)
        rows.append(row)
    return rows


def series_payload(count: int, symbol: str = "EUR/USD", interval: str = "5min", **kwargs) -> Dict[str, Any]:
    return {
        "meta": {"symbol": symbol, "interval": interval, "type": "Physical Currency"},
        "values": make_values(count, **kwargs),
        "status": "ok",
    }


def error_payload(code: int, message: str = "error") -> Dict[str, Any]:
    return {"code": code, "message": message, "status": "error"}


@pytest.fixture
def provider_settings():
    return ProviderSettings(twelve_data_api_key="test-key", pacing_seconds=0.0, max_candles=50)


@pytest.fixture
def unconfigured_settings():
    return ProviderSettings(twelve_data_api_key="your_api_key", pacing_seconds=0.0)


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def adapter(provider_settings, fake_session):
    return TwelveDataAdapter(provider_settings, session=fake_session, rng=np.random.default_rng(7))


@pytest.fixture
def generator():
    return SyntheticCandleGenerator(rng=np.random.default_rng(42), clock=lambda: FIXED_NOW)


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def pacing(recording_sleep):
    # Frozen clock: every gap is waited out in full, but nothing really sleeps.
    return PacingPolicy(min_interval=1.2, sleep=recording_sleep, clock=lambda: 0.0)


@pytest.fixture
def events():
    return RecordingEventSink()


@pytest.fixture
def payloads():
    """Builders for provider JSON shapes and scripted responses."""
    class _Payloads:
        series = staticmethod(series_payload)
        error = staticmethod(error_payload)
        values = staticmethod(make_values)
        response = FakeResponse
        session = FakeSession

    return _Payloads
