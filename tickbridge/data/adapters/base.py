"""
TICKBRIDGE — Base Data Adapter Interface
All quote provider adapters must implement this interface.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from tickbridge.data.models import Candle


class BaseDataAdapter(ABC):
    """Abstract base class for quote provider adapters."""

    def __init__(self, source: str):
        self.source = source
        self._session = None

    @property
    @abstractmethod
    def is_configured(self) -> bool:
        """Whether credentials are present; unconfigured adapters must not hit the network."""

    @abstractmethod
    async def connect(self) -> None:
        """Initialize connection / session."""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Clean up connection / session."""
        pass

    @abstractmethod
    async def fetch_candles(self, symbol: str, interval: str, count: int) -> List[Candle]:
        """Fetch one validated, ascending candle series or raise a FetchError."""
        pass

    @abstractmethod
    async def ping(self) -> Dict[str, Any]:
        """Smallest possible real request; returns the raw payload or raises a FetchError."""
        pass

    async def get_api_usage(self) -> Optional[Dict[str, Any]]:
        """Provider quota information, when the provider exposes it."""
        return None

    async def __aenter__(self) -> "BaseDataAdapter":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.disconnect()
