"""
TICKBRIDGE — Synthetic Candle Generator
Random-walk fallback series used when provider data for a slot is
unavailable. Output obeys the same Candle envelope as real data, so a
synthetic slot can stand in for a real one anywhere in a snapshot.
"""
from datetime import datetime
from typing import Callable, List, Optional

import numpy as np

from tickbridge.data.models import Candle, Timeframe
from tickbridge.utils.helpers import price_decimals, utc_now

STEP_PCT = 0.02   # max close move per candle, fraction of base price
WICK_PCT = 0.01   # max wick beyond the body, fraction of base price
VOLUME_MIN = 1000
VOLUME_MAX = 11000


class SyntheticCandleGenerator:
    """Builds invariant-respecting OHLCV series anchored at a base price."""

    def __init__(
        self,
        rng: Optional[np.random.Generator] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._rng = rng if rng is not None else np.random.default_rng()
        self._clock = clock

    def generate(
        self, count: int, base_price: float = 100.0, timeframe: Timeframe = Timeframe.M5
    ) -> List[Candle]:
        if count < 1:
            raise ValueError(f"count must be positive, got {count}")
        if base_price <= 0:
            raise ValueError(f"base_price must be positive, got {base_price}")

        timeframe = Timeframe(timeframe)
        decimals = price_decimals(base_price)
        cadence = timeframe.cadence
        now = self._clock()

        steps = self._rng.uniform(-STEP_PCT, STEP_PCT, count) * base_price
        upper_wicks = self._rng.uniform(0.0, WICK_PCT, count) * base_price
        lower_wicks = self._rng.uniform(0.0, WICK_PCT, count) * base_price
        volumes = self._rng.integers(VOLUME_MIN, VOLUME_MAX, count)

        candles: List[Candle] = []
        price = round(base_price, decimals)
        for i in range(count):
            open_ = price
            close = round(open_ + float(steps[i]), decimals)
            # round() is monotonic, so rounding after widening keeps the envelope
            high = round(max(open_, close) + float(upper_wicks[i]), decimals)
            low = round(min(open_, close) - float(lower_wicks[i]), decimals)
            candles.append(
                Candle(
                    timestamp=now - cadence * (count - 1 - i),
                    open=open_,
                    high=high,
                    low=low,
                    close=close,
                    volume=float(volumes[i]),
                )
            )
            price = close
        return candles
