"""
TICKBRIDGE — Symbol Resolution
Maps platform instrument codes to TwelveData tickers and supplies the
reference price used to scale synthetic candles.
"""
from typing import Dict, List, Tuple

from tickbridge.data.models import SymbolSpec
from tickbridge.utils.helpers import clean_symbol

# Platform code -> TwelveData ticker
SYMBOL_MAP: Dict[str, str] = {
    "XAUUSD": "XAU/USD",
    "EURUSD": "EUR/USD",
    "GBPUSD": "GBP/USD",
    "USDJPY": "USD/JPY",
    "USDCHF": "USD/CHF",
    "AUDUSD": "AUD/USD",
    "USDCAD": "USD/CAD",
    "NZDUSD": "NZD/USD",
    "SPX": "SPX",
    "NDX": "NDX",
    "DJI": "DJI",
    "BTCUSD": "BTC/USD",
    "ETHUSD": "ETH/USD",
}

# (code, display name, category) for the selector shown to users
TRADING_PAIRS: List[Tuple[str, str, str]] = [
    ("XAUUSD", "Gold (XAU/USD)", "Metals"),
    ("EURUSD", "EUR/USD", "Forex"),
    ("GBPUSD", "GBP/USD", "Forex"),
    ("USDJPY", "USD/JPY", "Forex"),
    ("USDCHF", "USD/CHF", "Forex"),
    ("AUDUSD", "AUD/USD", "Forex"),
    ("USDCAD", "USD/CAD", "Forex"),
    ("NZDUSD", "NZD/USD", "Forex"),
    ("SPX", "S&P 500", "Indices"),
    ("NDX", "NASDAQ 100", "Indices"),
    ("DJI", "Dow Jones", "Indices"),
    ("BTCUSD", "Bitcoin", "Crypto"),
    ("ETHUSD", "Ethereum", "Crypto"),
]

# Checked in order; first substring hit wins.
BASE_PRICE_RULES: List[Tuple[Tuple[str, ...], float]] = [
    (("XAU",), 2000.0),
    (("BTC",), 45000.0),
    (("ETH",), 3000.0),
    (("EUR", "GBP", "AUD"), 1.1),
    (("JPY",), 150.0),
    (("SPX",), 4500.0),
    (("NDX",), 15000.0),
    (("DJI",), 35000.0),
]
DEFAULT_BASE_PRICE = 100.0


class SymbolResolver:
    """Static symbol lookups. Every method is total: unknown codes never raise."""

    def __init__(self, mapping: Dict[str, str] = None):
        self._mapping = dict(SYMBOL_MAP if mapping is None else mapping)

    def resolve(self, platform_symbol: str) -> str:
        """Provider ticker for a platform code; unmapped input is returned unchanged."""
        return self._mapping.get(clean_symbol(platform_symbol), platform_symbol)

    def base_price(self, platform_symbol: str) -> float:
        code = clean_symbol(platform_symbol)
        for needles, price in BASE_PRICE_RULES:
            if any(n in code for n in needles):
                return price
        return DEFAULT_BASE_PRICE

    def spec(self, platform_symbol: str) -> SymbolSpec:
        code = clean_symbol(platform_symbol)
        names = {c: (name, category) for c, name, category in TRADING_PAIRS}
        name, category = names.get(code, (None, None))
        return SymbolSpec(
            platform_code=code,
            provider_code=self.resolve(code),
            base_price=self.base_price(code),
            name=name,
            category=category,
        )

    def pairs(self) -> List[SymbolSpec]:
        return [self.spec(code) for code, _, _ in TRADING_PAIRS]
