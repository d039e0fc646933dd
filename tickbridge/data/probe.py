"""
TICKBRIDGE — Provider Connectivity Probe
Cheap reachability check for the status indicator. Its result is advisory:
the orchestrator never consults it before attempting a real fetch.
"""
from datetime import datetime
from typing import Callable, Optional

from tickbridge.data.adapters.base import BaseDataAdapter
from tickbridge.data.errors import FetchError
from tickbridge.data.models import ApiStatus
from tickbridge.utils.helpers import utc_now
from tickbridge.utils.logger import get_logger

logger = get_logger("connectivity_probe")


class ConnectivityProbe:
    """Minimal live request that drives the connected/error status indicator."""

    def __init__(self, adapter: BaseDataAdapter, clock: Callable[[], datetime] = utc_now):
        self.adapter = adapter
        self._clock = clock
        self.last_status: ApiStatus = ApiStatus.UNKNOWN
        self.last_checked_at: Optional[datetime] = None
        self.last_error: Optional[str] = None

    async def check(self) -> bool:
        """True when the provider answered a minimal request with usable data."""
        if not self.adapter.is_configured:
            logger.error("api_test_failed", source=self.adapter.source, reason="api_key_not_configured")
            return self.record(False, "API key not configured")

        logger.info("api_test_started", source=self.adapter.source)
        try:
            await self.adapter.ping()
        except FetchError as e:
            logger.error("api_test_failed", source=self.adapter.source, kind=e.kind.value, error=e.message)
            return self.record(False, e.message)

        logger.info("api_test_succeeded", source=self.adapter.source)
        return self.record(True)

    def record(self, connected: bool, error: Optional[str] = None) -> bool:
        """Update the status indicator; also used when a real fetch reveals the state."""
        self.last_status = ApiStatus.CONNECTED if connected else ApiStatus.ERROR
        self.last_checked_at = self._clock()
        self.last_error = error
        return connected
