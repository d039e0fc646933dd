"""
TICKBRIDGE — FastAPI Application
Market data endpoints for the dashboard: trading pairs, provider status,
multi-timeframe snapshots with demo fallback, and quota usage.
"""
import uuid
from typing import Dict, Any, Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import JSONResponse

from tickbridge.config.settings import get_settings
from tickbridge.data.errors import InvalidSymbolError
from tickbridge.services.market_data import get_market_data_service
from tickbridge.utils.logger import get_logger, setup_logging
from tickbridge.utils.helpers import utc_timestamp

logger = get_logger("api")

# Application state
app_state: Dict[str, Any] = {
    "instance_id": str(uuid.uuid4())[:8],
    "started_at": None,
    "snapshots_served": 0,
    "demo_snapshots_served": 0,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan — startup and shutdown."""
    setup_logging()
    settings = get_settings()
    app_state["started_at"] = utc_timestamp()

    logger.info("tickbridge_starting",
                version=settings.version,
                instance=app_state["instance_id"],
                api_configured=settings.provider.is_configured)

    service = get_market_data_service()
    await service.start()
    logger.info("tickbridge_ready")

    yield

    logger.info("tickbridge_shutting_down")
    await service.close()


app = FastAPI(
    title="TICKBRIDGE",
    description="Multi-timeframe market data with synthetic fallback",
    version="1.0.0",
    lifespan=lifespan,
)


def _clamp_count(count: Optional[int]) -> int:
    provider = get_market_data_service().settings
    if count is None:
        count = provider.default_candle_count
    return min(count, provider.max_candles)


# ─── Health ─────────────────────────────────────────────────────

@app.get("/healthz", tags=["System"])
async def health_check():
    """Fast health check endpoint for load balancers and monitoring."""
    return JSONResponse(
        status_code=200,
        content={
            "status": "healthy",
            "instance": app_state["instance_id"],
            "uptime_since": app_state["started_at"],
            "timestamp": utc_timestamp(),
        },
    )


@app.get("/api/v1/status", tags=["System"])
async def api_status():
    """Probe the quote provider and report live vs. demo availability."""
    service = get_market_data_service()
    connected = await service.test_api_connection()
    return {
        "connected": connected,
        "status": service.api_status.value,
        "error": service.probe.last_error,
        "checked_at": service.probe.last_checked_at.isoformat() if service.probe.last_checked_at else None,
    }


@app.get("/api/v1/usage", tags=["System"])
async def api_usage():
    usage = await get_market_data_service().get_api_usage()
    if usage is None:
        raise HTTPException(status_code=503, detail="Usage information unavailable")
    return usage


# ─── Market Data ────────────────────────────────────────────────

@app.get("/api/v1/pairs", tags=["Market Data"])
async def list_pairs():
    pairs = get_market_data_service().list_trading_pairs()
    return {"pairs": [p.model_dump() for p in pairs], "total": len(pairs)}


@app.get("/api/v1/market-data/{symbol}", tags=["Market Data"])
async def market_data(symbol: str, count: Optional[int] = Query(default=None, ge=1)):
    """Multi-timeframe snapshot; falls back to demo data instead of failing."""
    service = get_market_data_service()
    try:
        result = await service.get_market_data(symbol, _clamp_count(count))
    except InvalidSymbolError as e:
        raise HTTPException(status_code=400, detail=str(e))

    app_state["snapshots_served"] += 1
    if not result.is_live:
        app_state["demo_snapshots_served"] += 1
    return {
        "is_live": result.is_live,
        "notice": result.notice,
        "snapshot": result.snapshot.to_payload(),
    }


@app.get("/api/v1/market-data/{symbol}/demo", tags=["Market Data"])
async def demo_market_data(symbol: str, count: Optional[int] = Query(default=None, ge=1)):
    service = get_market_data_service()
    snapshot = service.generate_mock_multi_timeframe_data(symbol, _clamp_count(count))
    app_state["demo_snapshots_served"] += 1
    return {"is_live": False, "notice": None, "snapshot": snapshot.to_payload()}
