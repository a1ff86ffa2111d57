# bintrack/services/event_dispatcher.py
"""
Routes live events to their handlers on a single asyncio task.

The MQTT network thread and the WebSocket endpoint never touch the registry
or the subscriber set directly: they submit events here, and run() applies
them one at a time. A subscriber that connects while a broadcast is in
flight is therefore only registered once that broadcast is done.

Telemetry that piles up behind a slow broadcast is capped: past
max_pending_telemetry the oldest waiting message is discarded, so the
backlog stays bounded and the freshest readings win. Subscriber events are
never discarded.
"""

import asyncio
from collections import deque
from dataclasses import dataclass
from typing import Optional

from starlette.websockets import WebSocket

from bintrack.exceptions import TelemetryDecodeError
from bintrack.services.bin_registry import BinRegistry
from bintrack.services.fanout_hub import LiveFanoutHub
from bintrack.services.telemetry_parser import parse_telemetry
from bintrack.services.telemetry_service import apply_telemetry
from bintrack.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class TelemetryReceived:
    topic: str
    payload: bytes


@dataclass(eq=False)
class SubscriberConnected:
    connection: WebSocket


@dataclass(eq=False)
class SubscriberDisconnected:
    connection: WebSocket


class LiveEventDispatcher:
    def __init__(self, registry: BinRegistry, hub: LiveFanoutHub, max_pending_telemetry: int = 100):
        if max_pending_telemetry < 1:
            raise ValueError("max_pending_telemetry must be at least 1")
        self.registry = registry
        self.hub = hub
        self._queue: asyncio.Queue = asyncio.Queue()
        # Telemetry still waiting in _queue, oldest first
        self._pending_telemetry: deque = deque()
        self._max_pending_telemetry = max_pending_telemetry
        self._task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def pending_telemetry(self) -> int:
        return len(self._pending_telemetry)

    def submit(self, event):
        """Enqueue an event. Must be called from the event loop thread."""
        if isinstance(event, TelemetryReceived):
            if len(self._pending_telemetry) >= self._max_pending_telemetry:
                stale = self._pending_telemetry.popleft()
                logger.warning(f"[MQTT] Telemetry backlog full, dropped oldest payload on {stale.topic}")
            self._pending_telemetry.append(event)
        self._queue.put_nowait(event)

    async def dispatch(self, event):
        if isinstance(event, TelemetryReceived):
            await self.handle_telemetry(event)
        elif isinstance(event, SubscriberConnected):
            self.hub.register(event.connection)
        elif isinstance(event, SubscriberDisconnected):
            self.hub.unregister(event.connection)
        else:
            logger.warning(f"Unknown live event ignored: {event!r}")

    async def handle_telemetry(self, event: TelemetryReceived) -> bool:
        """Decode, apply and broadcast one message. Returns False if it was dropped."""
        try:
            update = parse_telemetry(event.payload, self.registry.telemetry_fields())
        except TelemetryDecodeError as e:
            logger.warning(f"[MQTT] Dropped payload on {event.topic}: {e}")
            return False

        logger.info(f"[MQTT] Telemetry on {event.topic}: {update}")
        apply_telemetry(self.registry, update)
        # Always broadcast, even when the message changed nothing.
        await self.hub.broadcast(self.registry.serialize())
        return True

    async def drain(self):
        """Dispatch everything currently queued. Used by tests and shutdown."""
        while not self._queue.empty():
            await self._dispatch_next()

    async def run(self):
        logger.info("Live event dispatcher started")
        while True:
            await self._dispatch_next()

    async def _dispatch_next(self):
        event = await self._queue.get()
        try:
            if isinstance(event, TelemetryReceived):
                if not self._pending_telemetry or self._pending_telemetry[0] is not event:
                    # evicted by submit() while waiting
                    return
                self._pending_telemetry.popleft()
            await self.dispatch(event)
        except Exception as e:
            logger.error(f"Live event handling error: {e}", exc_info=True)
        finally:
            self._queue.task_done()

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run(), name="live-event-dispatcher")
        return self._task

    async def stop(self):
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Live event dispatcher stopped")
