"""
TICKBRIDGE — Data Models for Market Data
Canonical data structures shared by the fetcher, the synthetic generator,
the orchestrator and the API layer.
"""
from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Optional, List, Dict, Any
from datetime import datetime, timedelta
from enum import Enum
import math

import pandas as pd


class Timeframe(str, Enum):
    M5 = "5min"
    M15 = "15min"
    H1 = "1h"
    H4 = "4h"

    @property
    def cadence(self) -> timedelta:
        """Nominal spacing between consecutive candles."""
        return TIMEFRAME_CADENCE[self]


TIMEFRAME_CADENCE: Dict[Timeframe, timedelta] = {
    Timeframe.M5: timedelta(minutes=5),
    Timeframe.M15: timedelta(minutes=15),
    Timeframe.H1: timedelta(hours=1),
    Timeframe.H4: timedelta(hours=4),
}

# Fixed iteration order for every snapshot.
SNAPSHOT_TIMEFRAMES: List[Timeframe] = [Timeframe.M5, Timeframe.M15, Timeframe.H1, Timeframe.H4]


class DataOrigin(str, Enum):
    LIVE = "live"
    PARTIAL = "partial"
    DEMO = "demo"


class ApiStatus(str, Enum):
    UNKNOWN = "unknown"
    CONNECTED = "connected"
    ERROR = "error"


class Candle(BaseModel):
    """Single OHLCV candle. Construction fails if the OHLC envelope is broken."""
    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float = Field(ge=0)

    @model_validator(mode="after")
    def _check_envelope(self) -> "Candle":
        for name in ("open", "high", "low", "close", "volume"):
            if not math.isfinite(getattr(self, name)):
                raise ValueError(f"{name} must be finite")
        if self.high < max(self.open, self.close):
            raise ValueError(f"high {self.high} below body max {max(self.open, self.close)}")
        if self.low > min(self.open, self.close):
            raise ValueError(f"low {self.low} above body min {min(self.open, self.close)}")
        return self


TimeframeSeries = List[Candle]


def candles_to_dataframe(candles: List[Candle]) -> pd.DataFrame:
    """Convert a candle series to a timestamp-indexed pandas DataFrame."""
    if not candles:
        return pd.DataFrame(columns=["open", "high", "low", "close", "volume", "timestamp"])
    data = [
        {
            "open": c.open,
            "high": c.high,
            "low": c.low,
            "close": c.close,
            "volume": c.volume,
            "timestamp": c.timestamp,
        }
        for c in candles
    ]
    df = pd.DataFrame(data)
    df.set_index("timestamp", inplace=True)
    df.sort_index(inplace=True)
    return df


class SymbolSpec(BaseModel):
    """Static lookup data for one tradable instrument."""
    platform_code: str
    provider_code: str
    base_price: float
    name: Optional[str] = None
    category: Optional[str] = None


class MultiTimeframeSnapshot(BaseModel):
    """Complete multi-timeframe result for one symbol.

    All four timeframes are always present; slots listed in ``degraded``
    hold synthetic candles instead of provider data.
    """
    symbol: str
    timeframes: Dict[Timeframe, List[Candle]]
    degraded: List[Timeframe] = Field(default_factory=list)
    origin: DataOrigin = DataOrigin.LIVE
    generated_at: datetime

    @model_validator(mode="after")
    def _check_timeframes(self) -> "MultiTimeframeSnapshot":
        missing = [tf.value for tf in SNAPSHOT_TIMEFRAMES if tf not in self.timeframes]
        if missing:
            raise ValueError(f"snapshot missing timeframes: {missing}")
        return self

    @property
    def degraded_count(self) -> int:
        return len(self.degraded)

    @property
    def is_live(self) -> bool:
        return self.origin != DataOrigin.DEMO

    def candle_counts(self) -> Dict[str, int]:
        return {tf.value: len(self.timeframes[tf]) for tf in SNAPSHOT_TIMEFRAMES}

    def to_dataframes(self) -> Dict[str, pd.DataFrame]:
        """One timestamp-indexed OHLCV DataFrame per timeframe."""
        return {tf.value: candles_to_dataframe(self.timeframes[tf]) for tf in SNAPSHOT_TIMEFRAMES}

    def to_payload(self) -> Dict[str, Any]:
        """JSON-ready dict in the shape downstream consumers expect."""
        return {
            "symbol": self.symbol,
            "timeframes": {
                tf.value: [c.model_dump(mode="json") for c in self.timeframes[tf]]
                for tf in SNAPSHOT_TIMEFRAMES
            },
            "degraded": [tf.value for tf in self.degraded],
            "degraded_count": self.degraded_count,
            "origin": self.origin.value,
            "generated_at": self.generated_at.isoformat(),
        }


class SlotResult(BaseModel):
    """Outcome of one timeframe slot: provider candles, or synthetic ones plus the cause."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    timeframe: Timeframe
    candles: List[Candle]
    error: Optional[Exception] = None

    @property
    def is_degraded(self) -> bool:
        return self.error is not None


class MarketDataResult(BaseModel):
    """Snapshot plus the live/demo indicator and an optional user-facing notice code."""
    snapshot: MultiTimeframeSnapshot
    is_live: bool
    notice: Optional[str] = None
