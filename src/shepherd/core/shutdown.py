"""In-flight request tracking for graceful shutdown."""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from src.shepherd.core.logging import get_logger

logger = get_logger(__name__)


class RequestTracker:
    """Counts requests in progress so shutdown can wait for them to finish."""

    def __init__(self) -> None:
        self._in_flight = 0
        self._shutting_down = False
        self._drained = asyncio.Event()
        self._drained.set()

    @property
    def is_shutting_down(self) -> bool:
        return self._shutting_down

    @property
    def in_flight_count(self) -> int:
        return self._in_flight

    @asynccontextmanager
    async def track_request(self) -> AsyncGenerator[None]:
        self._in_flight += 1
        self._drained.clear()
        try:
            yield
        finally:
            self._in_flight -= 1
            if self._in_flight == 0:
                self._drained.set()

    def start_shutdown(self) -> None:
        self._shutting_down = True
        logger.info("Shutdown started", in_flight=self._in_flight)

    async def wait_for_drain(self, timeout: float) -> bool:
        """Wait for in-flight requests. Returns False if ``timeout`` ran out first."""
        try:
            await asyncio.wait_for(self._drained.wait(), timeout=timeout)
        except TimeoutError:
            logger.warning("Requests still in flight at shutdown", in_flight=self._in_flight)
            return False
        return True

    def reset(self) -> None:
        """Reset tracker state (tests)."""
        self._in_flight = 0
        self._shutting_down = False
        self._drained.set()


request_tracker = RequestTracker()
