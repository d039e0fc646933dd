"""
TICKBRIDGE — Multi-Timeframe Orchestrator
Drives the candle fetcher across the four snapshot timeframes, strictly in
order and paced to stay under the provider's per-key rate limit. Failed
slots are filled with synthetic candles; only a snapshot with every slot
degraded is escalated as AllTimeframesFailed.
"""
import asyncio
import time
from typing import Awaitable, Callable, List, Optional

from tickbridge.data.adapters.base import BaseDataAdapter
from tickbridge.data.errors import (
    AllTimeframesFailed,
    ConfigurationError,
    FetchError,
    InvalidSymbolError,
    OrchestrationTimeout,
    UnauthorizedError,
)
from tickbridge.data.events import (
    EventSink,
    StructlogEventSink,
    FETCH_DEGRADED,
    FETCH_FAILED,
    FETCH_STARTED,
    FETCH_SUCCEEDED,
)
from tickbridge.data.models import (
    DataOrigin,
    MultiTimeframeSnapshot,
    SlotResult,
    SNAPSHOT_TIMEFRAMES,
    Timeframe,
)
from tickbridge.data.symbols import SymbolResolver
from tickbridge.data.synthetic import SyntheticCandleGenerator
from tickbridge.utils.helpers import clean_symbol, utc_now

DEFAULT_CANDLE_COUNT = 50


class PacingPolicy:
    """Minimum gap between the starts of consecutive provider calls."""

    def __init__(
        self,
        min_interval: float = 1.2,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.min_interval = max(0.0, min_interval)
        self._sleep = sleep
        self._clock = clock

    def now(self) -> float:
        return self._clock()

    async def wait(self, previous_call_at: Optional[float]) -> float:
        """Sleep out the rest of the gap since ``previous_call_at``; returns seconds slept."""
        if previous_call_at is None or self.min_interval == 0:
            return 0.0
        remaining = self.min_interval - (self._clock() - previous_call_at)
        if remaining <= 0:
            return 0.0
        await self._sleep(remaining)
        return remaining


class MultiTimeframeOrchestrator:
    """Sequential, paced fetch of the four snapshot timeframes with per-slot fallback."""

    def __init__(
        self,
        fetcher: BaseDataAdapter,
        resolver: Optional[SymbolResolver] = None,
        generator: Optional[SyntheticCandleGenerator] = None,
        pacing: Optional[PacingPolicy] = None,
        events: Optional[EventSink] = None,
        max_candles: int = DEFAULT_CANDLE_COUNT,
    ):
        self.fetcher = fetcher
        self.resolver = resolver or SymbolResolver()
        self.generator = generator or SyntheticCandleGenerator()
        self.pacing = pacing or PacingPolicy()
        self.events = events or StructlogEventSink()
        self.max_candles = max_candles

    def _validate(self, platform_symbol: str, count: int) -> str:
        symbol = clean_symbol(platform_symbol)
        if not symbol:
            raise InvalidSymbolError("Symbol parameter is required")
        if count < 1:
            raise ValueError(f"count must be positive, got {count}")
        return symbol

    async def fetch_all(
        self, platform_symbol: str, count: int = DEFAULT_CANDLE_COUNT, timeout: Optional[float] = None
    ) -> MultiTimeframeSnapshot:
        """Fetch every snapshot timeframe for ``platform_symbol``.

        Returns a snapshot with zero to three synthetic slots. Raises
        ConfigurationError before any request when the key is missing,
        AllTimeframesFailed when no slot produced real data, and
        OrchestrationTimeout when ``timeout`` seconds elapse first.
        """
        symbol = self._validate(platform_symbol, count)
        if not self.fetcher.is_configured:
            raise ConfigurationError("TwelveData API key is not configured")

        if timeout is None:
            return await self._run(symbol, count)
        try:
            return await asyncio.wait_for(self._run(symbol, count), timeout)
        except asyncio.TimeoutError as e:
            self.events.emit(FETCH_FAILED, symbol=symbol, reason="timeout", timeout=timeout)
            raise OrchestrationTimeout(symbol, timeout) from e

    async def _run(self, symbol: str, count: int) -> MultiTimeframeSnapshot:
        provider_symbol = self.resolver.resolve(symbol)
        base_price = self.resolver.base_price(symbol)
        slot_count = min(count, self.max_candles)

        self.events.emit(
            FETCH_STARTED,
            symbol=symbol,
            provider_symbol=provider_symbol,
            count=slot_count,
            timeframes=[tf.value for tf in SNAPSHOT_TIMEFRAMES],
        )

        results: List[SlotResult] = []
        last_call_at: Optional[float] = None
        revoked: Optional[UnauthorizedError] = None
        for timeframe in SNAPSHOT_TIMEFRAMES:
            if revoked is not None:
                # A rejected key fails every remaining slot the same way.
                results.append(self._degrade(symbol, timeframe, slot_count, base_price, revoked, attempted=False))
                continue

            await self.pacing.wait(last_call_at)
            last_call_at = self.pacing.now()
            result = await self._fetch_slot(symbol, provider_symbol, timeframe, slot_count, base_price)
            if isinstance(result.error, UnauthorizedError):
                revoked = result.error
            results.append(result)

        return self._assemble(symbol, results)

    async def _fetch_slot(
        self, symbol: str, provider_symbol: str, timeframe: Timeframe, count: int, base_price: float
    ) -> SlotResult:
        try:
            candles = await self.fetcher.fetch_candles(provider_symbol, timeframe.value, count)
        except FetchError as e:
            return self._degrade(symbol, timeframe, count, base_price, e)
        return SlotResult(timeframe=timeframe, candles=candles)

    def _degrade(
        self,
        symbol: str,
        timeframe: Timeframe,
        count: int,
        base_price: float,
        error: FetchError,
        attempted: bool = True,
    ) -> SlotResult:
        self.events.emit(
            FETCH_DEGRADED,
            symbol=symbol,
            timeframe=timeframe.value,
            kind=error.kind.value,
            error=error.message,
            attempted=attempted,
        )
        candles = self.generator.generate(count, base_price, timeframe)
        return SlotResult(timeframe=timeframe, candles=candles, error=error)

    def _assemble(self, symbol: str, results: List[SlotResult]) -> MultiTimeframeSnapshot:
        failures = {r.timeframe: r.error for r in results if r.is_degraded}
        if len(failures) == len(results):
            exc = AllTimeframesFailed(symbol, failures)
            self.events.emit(FETCH_FAILED, symbol=symbol, kinds=exc.kinds, persistent=exc.persistent)
            raise exc

        snapshot = MultiTimeframeSnapshot(
            symbol=symbol,
            timeframes={r.timeframe: r.candles for r in results},
            degraded=list(failures),
            origin=DataOrigin.PARTIAL if failures else DataOrigin.LIVE,
            generated_at=utc_now(),
        )
        self.events.emit(
            FETCH_SUCCEEDED,
            symbol=symbol,
            degraded_count=snapshot.degraded_count,
            counts=snapshot.candle_counts(),
        )
        return snapshot

    def synthesize(self, platform_symbol: str, count: int = DEFAULT_CANDLE_COUNT) -> MultiTimeframeSnapshot:
        """Full demo snapshot; never touches the provider.

        Total over symbols: a blank or unknown code gets the default base price.
        """
        if count < 1:
            raise ValueError(f"count must be positive, got {count}")
        symbol = clean_symbol(platform_symbol)
        base_price = self.resolver.base_price(symbol)
        return MultiTimeframeSnapshot(
            symbol=symbol,
            timeframes={tf: self.generator.generate(count, base_price, tf) for tf in SNAPSHOT_TIMEFRAMES},
            degraded=list(SNAPSHOT_TIMEFRAMES),
            origin=DataOrigin.DEMO,
            generated_at=utc_now(),
        )
