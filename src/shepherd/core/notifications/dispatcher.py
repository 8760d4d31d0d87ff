"""Best-effort, idempotent notification dispatcher.

``emit`` is fire-and-forget: it never raises and never waits on delivery. A
background worker drains a bounded queue, skips event ids that were already
claimed, and hands each event to the transport under a timeout. Delivery
failures are logged and swallowed; they never affect the transaction that
produced the event, which has already committed by the time it is emitted.
"""

import asyncio
import contextlib
from collections.abc import Iterable

from src.shepherd.core.logging import get_logger
from src.shepherd.core.notifications.dedup import EventDeduplicator
from src.shepherd.core.notifications.events import NotificationEvent
from src.shepherd.core.notifications.transports import NotificationTransport

logger = get_logger(__name__)


class NotificationDispatcher:
    def __init__(
        self,
        transport: NotificationTransport,
        deduplicator: EventDeduplicator,
        queue_size: int = 1000,
        send_timeout: float = 10.0,
    ):
        self.transport = transport
        self.deduplicator = deduplicator
        self.send_timeout = send_timeout
        self._queue: asyncio.Queue[NotificationEvent] = asyncio.Queue(maxsize=queue_size)
        self._worker: asyncio.Task[None] | None = None
        self.delivered_count = 0
        self.dropped_count = 0

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def start(self) -> None:
        if self.running:
            return
        self._worker = asyncio.create_task(self._run(), name="notification-dispatcher")
        logger.info("Notification dispatcher started")

    async def stop(self, timeout: float | None = None) -> None:
        """Drain what is queued (bounded by ``timeout``), then stop the worker."""
        if self._worker is None:
            return
        try:
            await asyncio.wait_for(self._queue.join(), timeout=timeout)
        except TimeoutError:
            logger.warning(
                "Notification queue not drained before shutdown",
                pending=self._queue.qsize(),
            )
        self._worker.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._worker
        self._worker = None
        logger.info("Notification dispatcher stopped")

    def emit(self, event: NotificationEvent) -> None:
        """Enqueue one event. Never raises; a full queue drops the event."""
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped_count += 1
            logger.warning(
                "Notification queue full, event dropped",
                event_id=str(event.id),
                event_type=event.type.value,
            )

    def emit_many(self, events: Iterable[NotificationEvent]) -> None:
        for event in events:
            self.emit(event)

    async def drain(self) -> None:
        """Wait until every queued event has been processed."""
        await self._queue.join()

    async def _run(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                await self.deliver(event)
            finally:
                self._queue.task_done()

    async def deliver(self, event: NotificationEvent) -> bool:
        """Deliver one event now. Returns True if the transport accepted it."""
        try:
            if not await self.deduplicator.claim(event.id):
                logger.debug("Duplicate notification skipped", event_id=str(event.id))
                return False
        except Exception as e:
            # Without a working claim store we cannot promise idempotency; skip.
            logger.error("Notification dedup failed", event_id=str(event.id), error=str(e))
            return False

        try:
            async with asyncio.timeout(self.send_timeout):
                await self.transport.send(event)
        except Exception as e:
            logger.error(
                "Notification delivery failed",
                event_id=str(event.id),
                event_type=event.type.value,
                error=str(e) or type(e).__name__,
            )
            with contextlib.suppress(Exception):
                await self.deduplicator.release(event.id)
            return False

        self.delivered_count += 1
        return True
