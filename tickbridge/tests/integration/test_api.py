"""
TICKBRIDGE — Integration Tests for the HTTP API
"""
import pytest
from datetime import timedelta
from fastapi.testclient import TestClient

from tickbridge.api.app import app
from tickbridge.config.settings import ProviderSettings
from tickbridge.data.adapters.twelvedata_adapter import TwelveDataAdapter
from tickbridge.services.market_data import MarketDataService, set_market_data_service


@pytest.fixture
def client():
    yield TestClient(app)
    set_market_data_service(None)


@pytest.fixture
def live_service(provider_settings, adapter, generator, pacing, events):
    service = MarketDataService(provider_settings, adapter=adapter, generator=generator,
                                pacing=pacing, events=events)
    set_market_data_service(service)
    return service


@pytest.fixture
def unconfigured_service(unconfigured_settings, payloads, generator, pacing, events):
    session = payloads.session()
    adapter = TwelveDataAdapter(unconfigured_settings, session=session)
    service = MarketDataService(unconfigured_settings, adapter=adapter, generator=generator,
                                pacing=pacing, events=events)
    set_market_data_service(service)
    return service, session


class TestAPIEndpoints:
    def test_healthz(self, client):
        response = client.get("/healthz")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_pairs(self, client, live_service):
        response = client.get("/api/v1/pairs")
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 13
        assert data["pairs"][1]["provider_code"] == "EUR/USD"

    def test_live_market_data(self, client, live_service, fake_session, payloads):
        steps = {"5min": 5, "15min": 15, "1h": 60, "4h": 240}
        fake_session.routes = {
            tf: payloads.response(payloads.series(20, interval=tf, step=timedelta(minutes=m)))
            for tf, m in steps.items()
        }
        fake_session.routes["4h"] = payloads.response(payloads.error(429, "slow down"))

        response = client.get("/api/v1/market-data/EURUSD", params={"count": 20})
        assert response.status_code == 200
        data = response.json()
        assert data["is_live"] is True
        snapshot = data["snapshot"]
        assert snapshot["origin"] == "partial"
        assert snapshot["degraded"] == ["4h"]
        assert {tf: len(rows) for tf, rows in snapshot["timeframes"].items()} == {
            "5min": 20, "15min": 20, "1h": 20, "4h": 20,
        }

    def test_market_data_falls_back_to_demo(self, client, unconfigured_service):
        _, session = unconfigured_service
        response = client.get("/api/v1/market-data/XAUUSD")
        assert response.status_code == 200
        data = response.json()
        assert data["is_live"] is False
        assert data["notice"] == "api_not_configured"
        assert data["snapshot"]["origin"] == "demo"
        assert session.calls == []

    def test_demo_endpoint(self, client, live_service, fake_session):
        response = client.get("/api/v1/market-data/BTCUSD/demo", params={"count": 10})
        assert response.status_code == 200
        snapshot = response.json()["snapshot"]
        assert snapshot["degraded_count"] == 4
        assert all(len(rows) == 10 for rows in snapshot["timeframes"].values())
        assert fake_session.calls == []

    def test_demo_endpoint_uses_default_count(self, client, adapter, generator, pacing, events):
        settings = ProviderSettings(twelve_data_api_key="test-key", pacing_seconds=0.0, default_candle_count=8)
        set_market_data_service(MarketDataService(settings, adapter=adapter, generator=generator,
                                                  pacing=pacing, events=events))
        snapshot = client.get("/api/v1/market-data/EURUSD/demo").json()["snapshot"]
        assert all(len(rows) == 8 for rows in snapshot["timeframes"].values())

    def test_count_validation(self, client, live_service):
        response = client.get("/api/v1/market-data/EURUSD", params={"count": 0})
        assert response.status_code == 422

    def test_status_reports_unconfigured(self, client, unconfigured_service):
        response = client.get("/api/v1/status")
        assert response.status_code == 200
        data = response.json()
        assert data["connected"] is False
        assert data["status"] == "error"

    def test_status_connected(self, client, live_service, fake_session, payloads):
        fake_session.default = payloads.response(payloads.series(1, interval="1h"))
        data = client.get("/api/v1/status").json()
        assert data["connected"] is True
        assert data["status"] == "connected"

    def test_usage_unavailable(self, client, unconfigured_service):
        response = client.get("/api/v1/usage")
        assert response.status_code == 503
