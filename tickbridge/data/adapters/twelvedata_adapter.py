"""
TICKBRIDGE — TwelveData Adapter
Fetches and validates one time series per call from the TwelveData REST API.
A call either returns a complete ascending series or raises a FetchError;
it never returns a mix of valid and invalid candles.
"""
import asyncio
from typing import Any, Callable, Dict, List, Optional

import aiohttp
import numpy as np
from pydantic import ValidationError

from tickbridge.config.settings import ProviderSettings
from tickbridge.data.adapters.base import BaseDataAdapter
from tickbridge.data.errors import (
    BadSymbolError,
    ConfigurationError,
    FetchError,
    InvalidSymbolError,
    MalformedDataError,
    NoDataError,
    ProviderError,
    RateLimitedError,
    TransportError,
    UnauthorizedError,
)
from tickbridge.data.models import Candle
from tickbridge.utils.helpers import parse_provider_datetime, to_finite_float, utc_now
from tickbridge.utils.logger import get_logger

logger = get_logger("twelvedata_adapter")

QUOTA_MESSAGE = "API calls quota"
SINGLE_QUOTE_VOLUME = 1000.0


def raise_for_payload(data: Dict[str, Any], symbol: str, interval: Optional[str] = None) -> None:
    """Raise the matching ProviderError when ``data`` is an error-shaped payload."""
    message = str(data.get("message") or "")
    code = data.get("code")
    if code is None and data.get("status") != "error":
        if QUOTA_MESSAGE in message:
            raise RateLimitedError(
                "API rate limit exceeded. Upgrade the TwelveData plan or wait for quota reset.",
                symbol, interval,
            )
        return

    try:
        code = int(code) if code is not None else None
    except (TypeError, ValueError):
        code = None

    if code == 401:
        raise UnauthorizedError("Invalid API key. Check the TwelveData API key.", symbol, interval, code)
    if code == 429 or QUOTA_MESSAGE in message:
        raise RateLimitedError(
            "API rate limit exceeded. Wait before making more requests.", symbol, interval, code
        )
    if code == 400:
        raise BadSymbolError(f"Invalid symbol or parameters: {message}", symbol, interval, code)
    detail = message or "API returned error status"
    label = "API Error" if code is None else f"API Error {code}"
    raise ProviderError(f"{label}: {detail}", symbol, interval, code)


def _parse_candle(raw: Any, index: int, symbol: str, fill_volume: Callable[[], float]) -> Candle:
    if not isinstance(raw, dict):
        raise MalformedDataError(f"Invalid candle data at index {index} for {symbol}: not an object", symbol)

    timestamp = parse_provider_datetime(raw.get("datetime"))
    if timestamp is None:
        raise MalformedDataError(
            f"Invalid candle data at index {index} for {symbol}: bad datetime {raw.get('datetime')!r}", symbol
        )

    prices = {name: to_finite_float(raw.get(name)) for name in ("open", "high", "low", "close")}
    bad = [name for name, value in prices.items() if value is None]
    if bad:
        raise MalformedDataError(
            f"Invalid candle data at index {index} for {symbol}: non-numeric {', '.join(bad)}", symbol
        )

    raw_volume = raw.get("volume")
    if raw_volume is None or raw_volume == "":
        volume = fill_volume()
    else:
        volume = to_finite_float(raw_volume)
        if volume is None:
            raise MalformedDataError(
                f"Invalid candle data at index {index} for {symbol}: non-numeric volume", symbol
            )

    try:
        return Candle(timestamp=timestamp, volume=volume, **prices)
    except ValidationError as e:
        raise MalformedDataError(f"Invalid candle data at index {index} for {symbol}: {e}", symbol) from e


def parse_time_series(
    data: Dict[str, Any],
    symbol: str,
    interval: str,
    fill_volume: Callable[[], float],
) -> List[Candle]:
    """Turn a non-error TwelveData payload into an ascending candle series.

    Handles both the ``values`` series shape (newest first on the wire) and
    the single ``price`` quote some symbols return instead.
    """
    values = data.get("values")
    if not isinstance(values, list):
        if data.get("price") is not None:
            price = to_finite_float(data.get("price"))
            if price is None:
                raise MalformedDataError(f"Invalid quote price for {symbol}: {data.get('price')!r}", symbol, interval)
            return [
                Candle(
                    timestamp=utc_now(),
                    open=price,
                    high=price,
                    low=price,
                    close=price,
                    volume=SINGLE_QUOTE_VOLUME,
                )
            ]
        raise NoDataError(
            f"No candlestick data available for {symbol}. "
            f"This symbol might not support the {interval} timeframe.",
            symbol, interval,
        )

    if not values:
        raise NoDataError(f"No historical data available for {symbol} on {interval} timeframe", symbol, interval)

    candles = []
    for index, raw in enumerate(values):
        try:
            candles.append(_parse_candle(raw, index, symbol, fill_volume))
        except MalformedDataError as e:
            e.interval = interval
            raise
    candles.sort(key=lambda c: c.timestamp)
    return candles


class TwelveDataAdapter(BaseDataAdapter):
    """TwelveData REST adapter — the single live source."""

    def __init__(
        self,
        settings: ProviderSettings,
        session: Optional[aiohttp.ClientSession] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        super().__init__(source="twelvedata")
        self.settings = settings
        self.api_key = settings.twelve_data_api_key.strip()
        self.base_url = settings.twelve_data_base_url.rstrip("/")
        self._session = session
        self._owns_session = session is None
        self._rng = rng if rng is not None else np.random.default_rng()
        self._headers = {
            "Accept": "application/json",
            "User-Agent": settings.user_agent,
        }

    @property
    def is_configured(self) -> bool:
        return self.settings.is_configured

    def _require_key(self) -> None:
        if not self.is_configured:
            raise ConfigurationError("TwelveData API key is not configured")

    async def connect(self) -> None:
        if self._session is not None:
            return
        timeout = aiohttp.ClientTimeout(total=self.settings.request_timeout_seconds)
        self._session = aiohttp.ClientSession(headers=self._headers, timeout=timeout)
        self._owns_session = True
        logger.info("twelvedata_adapter_connected")

    async def disconnect(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None
        logger.info("twelvedata_adapter_disconnected")

    def _random_volume(self) -> float:
        # The API omits volume for FX and metals; fill with a plausible size.
        return float(self._rng.integers(1000, 11000))

    async def _raise_for_error_body(self, resp, symbol: Optional[str], interval: Optional[str]) -> None:
        """Classify a non-2xx reply by its {code, message} body when it carries one."""
        try:
            body = await resp.json(content_type=None)
        except ValueError:
            return
        if isinstance(body, dict):
            raise_for_payload(body, symbol or "", interval)

    async def _get_json(
        self, path: str, params: Dict[str, str], symbol: Optional[str] = None, interval: Optional[str] = None
    ) -> Dict[str, Any]:
        if self._session is None:
            await self.connect()

        url = f"{self.base_url}/{path}"
        try:
            async with self._session.get(url, params=params, headers=self._headers) as resp:
                if resp.status == 401:
                    raise UnauthorizedError("HTTP 401: Unauthorized", symbol, interval, 401)
                if resp.status == 429:
                    raise RateLimitedError("HTTP 429: Too Many Requests", symbol, interval, 429)
                if not 200 <= resp.status < 300:
                    await self._raise_for_error_body(resp, symbol, interval)
                    raise TransportError(f"HTTP {resp.status}: {resp.reason}", symbol, interval, resp.status)
                try:
                    data = await resp.json(content_type=None)
                except ValueError as e:
                    raise TransportError(f"Response body is not JSON: {e}", symbol, interval) from e
        except FetchError:
            raise
        except asyncio.TimeoutError as e:
            raise TransportError("Request timed out", symbol, interval) from e
        except aiohttp.ClientError as e:
            raise TransportError(f"Network error: {e}", symbol, interval) from e

        if not isinstance(data, dict):
            raise MalformedDataError(f"Unexpected response shape: {type(data).__name__}", symbol, interval)
        return data

    async def fetch_candles(self, symbol: str, interval: str, count: int) -> List[Candle]:
        """Fetch ``count`` candles for a provider ticker, oldest first."""
        self._require_key()
        if not symbol or not symbol.strip():
            raise InvalidSymbolError("Symbol parameter is required")

        params = {
            "symbol": symbol,
            "interval": interval,
            "outputsize": str(count),
            "apikey": self.api_key,
            "format": "json",
        }
        logger.debug("twelvedata_fetch", symbol=symbol, interval=interval, count=count)
        try:
            data = await self._get_json("time_series", params, symbol, interval)
            raise_for_payload(data, symbol, interval)
            candles = parse_time_series(data, symbol, interval, self._random_volume)
        except FetchError as e:
            logger.warning(
                "twelvedata_fetch_error",
                symbol=symbol,
                interval=interval,
                kind=e.kind.value,
                error=e.message,
            )
            raise

        candles = candles[-count:]
        logger.info("twelvedata_fetch_ok", symbol=symbol, interval=interval, count=len(candles))
        return candles

    async def ping(self) -> Dict[str, Any]:
        """One-candle request against a liquid reference symbol."""
        self._require_key()
        symbol = self.settings.probe_symbol
        interval = self.settings.probe_interval
        params = {
            "symbol": symbol,
            "interval": interval,
            "outputsize": "1",
            "apikey": self.api_key,
            "format": "json",
        }
        data = await self._get_json("time_series", params, symbol, interval)
        raise_for_payload(data, symbol, interval)
        # Only a payload that parses into candles counts as reachable.
        parse_time_series(data, symbol, interval, self._random_volume)
        return data

    async def get_api_usage(self) -> Optional[Dict[str, Any]]:
        """Current plan usage from /usage; None when unavailable."""
        if not self.is_configured:
            return None
        try:
            data = await self._get_json("usage", {"apikey": self.api_key})
            raise_for_payload(data, "usage")
        except FetchError as e:
            logger.warning("twelvedata_usage_error", kind=e.kind.value, error=e.message)
            return None
        return data
