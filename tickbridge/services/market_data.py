"""
TICKBRIDGE — Market Data Service
Outbound facade used by the dashboard and by downstream signal generation.
Wires one provider configuration into the fetcher, probe and orchestrator,
and applies the live-or-demo fallback: callers always get a snapshot plus a
flag saying whether it came from the provider.
"""
from typing import Any, Dict, List, Optional

from tickbridge.config.settings import ProviderSettings, get_settings
from tickbridge.data.adapters.base import BaseDataAdapter
from tickbridge.data.adapters.twelvedata_adapter import TwelveDataAdapter
from tickbridge.data.errors import (
    AllTimeframesFailed,
    ConfigurationError,
    DataUnavailable,
    FailureKind,
)
from tickbridge.data.events import EventSink, StructlogEventSink
from tickbridge.data.models import ApiStatus, MarketDataResult, MultiTimeframeSnapshot, SymbolSpec
from tickbridge.data.orchestrator import MultiTimeframeOrchestrator, PacingPolicy
from tickbridge.data.probe import ConnectivityProbe
from tickbridge.data.symbols import SymbolResolver
from tickbridge.data.synthetic import SyntheticCandleGenerator
from tickbridge.utils.logger import get_logger

logger = get_logger("market_data_service")

NOTICE_API_NOT_CONFIGURED = "api_not_configured"
NOTICE_RATE_LIMIT = "rate_limit_reached"
NOTICE_SYMBOL_NOT_FOUND = "symbol_not_found"
NOTICE_UNAVAILABLE = "market_data_unavailable"


def notice_for(error: Exception) -> str:
    """Map a total-failure error to the short notice code shown next to demo data."""
    if isinstance(error, ConfigurationError):
        return NOTICE_API_NOT_CONFIGURED
    if isinstance(error, AllTimeframesFailed):
        kinds = {err.kind for err in error.failures.values()}
        if FailureKind.UNAUTHORIZED in kinds:
            return NOTICE_API_NOT_CONFIGURED
        if FailureKind.RATE_LIMITED in kinds:
            return NOTICE_RATE_LIMIT
        if FailureKind.BAD_SYMBOL in kinds:
            return NOTICE_SYMBOL_NOT_FOUND
    return NOTICE_UNAVAILABLE


class MarketDataService:
    def __init__(
        self,
        settings: ProviderSettings,
        adapter: Optional[BaseDataAdapter] = None,
        resolver: Optional[SymbolResolver] = None,
        generator: Optional[SyntheticCandleGenerator] = None,
        pacing: Optional[PacingPolicy] = None,
        events: Optional[EventSink] = None,
    ):
        self.settings = settings
        self.adapter = adapter or TwelveDataAdapter(settings)
        self.resolver = resolver or SymbolResolver()
        self.generator = generator or SyntheticCandleGenerator()
        self.orchestrator = MultiTimeframeOrchestrator(
            fetcher=self.adapter,
            resolver=self.resolver,
            generator=self.generator,
            pacing=pacing or PacingPolicy(settings.pacing_seconds),
            events=events or StructlogEventSink(),
            max_candles=settings.max_candles,
        )
        self.probe = ConnectivityProbe(self.adapter)

    async def start(self) -> None:
        await self.adapter.connect()

    async def close(self) -> None:
        await self.adapter.disconnect()

    async def __aenter__(self) -> "MarketDataService":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _count(self, count: Optional[int]) -> int:
        return self.settings.default_candle_count if count is None else count

    @property
    def api_status(self) -> ApiStatus:
        return self.probe.last_status

    async def fetch_multi_timeframe_data(
        self, symbol: str, count: Optional[int] = None, timeout: Optional[float] = None
    ) -> MultiTimeframeSnapshot:
        """Real snapshot; raises DataUnavailable when no timeframe could be fetched."""
        return await self.orchestrator.fetch_all(symbol, self._count(count), timeout=timeout)

    def generate_mock_multi_timeframe_data(
        self, symbol: str, count: Optional[int] = None
    ) -> MultiTimeframeSnapshot:
        count = self._count(count)
        snapshot = self.orchestrator.synthesize(symbol, count)
        logger.info(
            "demo_data_generated",
            symbol=snapshot.symbol,
            base_price=self.resolver.base_price(snapshot.symbol),
            count=count,
        )
        return snapshot

    async def test_api_connection(self) -> bool:
        return await self.probe.check()

    async def get_market_data(
        self, symbol: str, count: Optional[int] = None, timeout: Optional[float] = None
    ) -> MarketDataResult:
        """Live snapshot when possible, otherwise a full demo snapshot plus a notice code."""
        count = self._count(count)
        try:
            snapshot = await self.fetch_multi_timeframe_data(symbol, count, timeout=timeout)
        except (DataUnavailable, ConfigurationError) as e:
            notice = notice_for(e)
            self.probe.record(False, str(e))
            logger.warning("falling_back_to_demo_data", symbol=symbol, notice=notice, error=str(e))
            demo = self.generate_mock_multi_timeframe_data(symbol, min(count, self.settings.max_candles))
            return MarketDataResult(snapshot=demo, is_live=False, notice=notice)

        self.probe.record(True)
        return MarketDataResult(snapshot=snapshot, is_live=True)

    def list_trading_pairs(self) -> List[SymbolSpec]:
        return self.resolver.pairs()

    async def get_api_usage(self) -> Optional[Dict[str, Any]]:
        return await self.adapter.get_api_usage()


# Singleton
_service: Optional[MarketDataService] = None


def get_market_data_service() -> MarketDataService:
    global _service
    if _service is None:
        _service = MarketDataService(get_settings().provider)
    return _service


def set_market_data_service(service: Optional[MarketDataService]) -> None:
    """Replace the process-wide service (tests, alternative wiring)."""
    global _service
    _service = service
