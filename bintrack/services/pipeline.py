# bintrack/services/pipeline.py
"""
Owns the live telemetry pipeline: registry, fanout hub, event dispatcher and
MQTT subscriber. One instance is created at startup and kept on app.state.
"""

import asyncio
from typing import Optional

from bintrack.config import Settings
from bintrack.exceptions import TransportError
from bintrack.services.bin_registry import BinRegistry
from bintrack.services.bus_subscriber import BusSubscriber
from bintrack.services.event_dispatcher import LiveEventDispatcher
from bintrack.services.fanout_hub import LiveFanoutHub
from bintrack.utils.logger import get_logger

logger = get_logger(__name__)


class TelemetryPipeline:
    def __init__(self, settings: Settings):
        self.settings = settings
        self.registry = BinRegistry.from_provisioning(settings.BINS)
        self.hub = LiveFanoutHub(send_timeout=settings.WS_SEND_TIMEOUT_SECONDS)
        self.dispatcher = LiveEventDispatcher(
            self.registry, self.hub,
            max_pending_telemetry=settings.MAX_PENDING_TELEMETRY,
        )
        self.subscriber: Optional[BusSubscriber] = None

    async def start(self):
        """Start the dispatcher task and, if enabled, the MQTT subscriber."""
        self.dispatcher.start()
        logger.info(f"🗑️  Tracking bins: {self.registry.ids()}")

        if not self.settings.MQTT_ENABLED:
            logger.warning("MQTT disabled — no telemetry will be received")
            return

        self.subscriber = BusSubscriber(
            self.settings,
            asyncio.get_running_loop(),
            self.dispatcher.submit,
        )
        try:
            self.subscriber.start()
        except TransportError as e:
            logger.error(f"MQTT subscriber not started: {e}")

    async def stop(self):
        if self.subscriber is not None:
            self.subscriber.stop()
        await self.dispatcher.stop()
