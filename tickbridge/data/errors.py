"""
TICKBRIDGE — Market Data Error Taxonomy
Per-timeframe failures (FetchError and subclasses) are recovered locally by
the orchestrator; only DataUnavailable and ConfigurationError reach callers.
"""
from enum import Enum
from typing import Dict, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from tickbridge.data.models import Timeframe


class FailureKind(str, Enum):
    UNAUTHORIZED = "unauthorized"
    RATE_LIMITED = "rate_limited"
    BAD_SYMBOL = "bad_symbol"
    NO_DATA = "no_data"
    PROVIDER = "provider"
    TRANSPORT = "transport"
    MALFORMED = "malformed"


class MarketDataError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(MarketDataError):
    """Provider API key is unset or still the placeholder value."""


class InvalidSymbolError(MarketDataError, ValueError):
    """Empty or blank symbol passed by the caller."""


class FetchError(MarketDataError):
    """One (symbol, interval) request failed. Never partial."""
    kind: FailureKind = FailureKind.PROVIDER

    def __init__(self, message: str, symbol: Optional[str] = None,
                 interval: Optional[str] = None, code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.symbol = symbol
        self.interval = interval
        self.code = code

    def to_dict(self) -> Dict[str, object]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "symbol": self.symbol,
            "interval": self.interval,
            "code": self.code,
        }


class ProviderError(FetchError):
    """Provider answered with an error payload."""
    kind = FailureKind.PROVIDER


class UnauthorizedError(ProviderError):
    kind = FailureKind.UNAUTHORIZED


class RateLimitedError(ProviderError):
    kind = FailureKind.RATE_LIMITED


class BadSymbolError(ProviderError):
    kind = FailureKind.BAD_SYMBOL


class NoDataError(ProviderError):
    kind = FailureKind.NO_DATA


class TransportError(FetchError):
    """Network or HTTP-level failure before a usable payload arrived."""
    kind = FailureKind.TRANSPORT


class MalformedDataError(FetchError):
    """Series contained a non-numeric, non-finite or inconsistent candle."""
    kind = FailureKind.MALFORMED


class DataUnavailable(MarketDataError):
    """No real market data could be produced for the request."""


class AllTimeframesFailed(DataUnavailable):
    """Every timeframe slot degraded; the partial snapshot was discarded."""

    def __init__(self, symbol: str, failures: Dict["Timeframe", FetchError]):
        self.symbol = symbol
        self.failures = failures
        causes = "; ".join(f"{tf.value}: {err.message}" for tf, err in failures.items())
        super().__init__(f"Failed to fetch any real data for {symbol}: {causes}")

    @property
    def persistent(self) -> bool:
        """True when every slot failed on credentials, which retrying will not fix."""
        return bool(self.failures) and all(
            isinstance(err, UnauthorizedError) for err in self.failures.values()
        )

    @property
    def kinds(self) -> Dict[str, str]:
        return {tf.value: err.kind.value for tf, err in self.failures.items()}


class OrchestrationTimeout(DataUnavailable):
    """Caller deadline expired before all timeframe slots were resolved."""

    def __init__(self, symbol: str, timeout: float):
        self.symbol = symbol
        self.timeout = timeout
        super().__init__(f"Timed out after {timeout:.1f}s fetching {symbol}")
