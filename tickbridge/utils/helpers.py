"""
TICKBRIDGE — Common Utility Functions
"""
from datetime import datetime, timezone
from typing import Any, Optional
import math


def utc_now() -> datetime:
    """Return current UTC datetime."""
    return datetime.now(timezone.utc)


def utc_timestamp() -> str:
    """Return current UTC timestamp as ISO string."""
    return utc_now().isoformat()


def clean_symbol(symbol: Optional[str]) -> str:
    """Normalize a platform code: ' eurusd ' -> 'EURUSD'."""
    if symbol is None:
        return ""
    return symbol.strip().upper()


def to_finite_float(value: Any) -> Optional[float]:
    """Parse a provider field as a finite float, or None when it is not one."""
    if value is None or isinstance(value, bool):
        return None
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(parsed):
        return None
    return parsed


def price_decimals(base_price: float) -> int:
    """Display precision for a price level: 2 for large quotes, 4 for FX-sized ones."""
    return 2 if base_price > 100 else 4


def parse_provider_datetime(raw: Any) -> Optional[datetime]:
    """Parse TwelveData 'datetime' values ('2024-01-01' or '2024-01-01 10:05:00') as UTC."""
    if isinstance(raw, datetime):
        return raw if raw.tzinfo else raw.replace(tzinfo=timezone.utc)
    if not isinstance(raw, str) or not raw.strip():
        return None
    try:
        parsed = datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
