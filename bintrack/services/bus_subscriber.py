# bintrack/services/bus_subscriber.py
"""
MQTT bus subscriber — receives bin telemetry from the broker.

Runs paho-mqtt's network loop on its own thread. Reconnects are left to
paho (connect_async + reconnect_delay_set); this class only reacts to
connect / message / disconnect callbacks and hands each payload to the
asyncio loop, where the dispatcher decodes and applies it.

State machine:
    DISCONNECTED → CONNECTING → SUBSCRIBED → DISCONNECTED
                       ↑                         │
                       └──── (paho reconnect) ───┘
"""

import asyncio
import enum
import threading
from typing import Any, Callable

import paho.mqtt.client as mqtt

from bintrack.config import Settings
from bintrack.exceptions import TransportError
from bintrack.services.event_dispatcher import TelemetryReceived
from bintrack.utils.logger import get_logger

logger = get_logger(__name__)


class BusState(str, enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    SUBSCRIBED = "subscribed"


def _default_client_factory(client_id: str) -> mqtt.Client:
    return mqtt.Client(
        callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
        client_id=client_id,
        protocol=mqtt.MQTTv311,
    )


class BusSubscriber:
    def __init__(
        self,
        settings: Settings,
        loop: asyncio.AbstractEventLoop,
        on_telemetry: Callable[[TelemetryReceived], None],
        client_factory: Callable[[str], Any] = _default_client_factory,
    ):
        self._settings = settings
        self._loop = loop
        self._on_telemetry = on_telemetry
        self._client_factory = client_factory
        self._client = None
        self._state = BusState.DISCONNECTED
        self._state_lock = threading.Lock()
        self._running = False

    @property
    def topic(self) -> str:
        return self._settings.MQTT_TOPIC

    @property
    def state(self) -> BusState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._running

    def _set_state(self, state: BusState):
        with self._state_lock:
            if self._state != state:
                logger.debug(f"[MQTT] {self._state.value} → {state.value}")
            self._state = state

    # ── Lifecycle ─────────────────────────────────────────────────────────
    def start(self):
        """Begin connecting in the background. Raises TransportError on bad broker settings."""
        if self._running:
            return
        s = self._settings
        client = self._client_factory(s.MQTT_CLIENT_ID)
        client.enable_logger(logger)
        client.reconnect_delay_set(min_delay=s.MQTT_RECONNECT_MIN_DELAY,
                                   max_delay=s.MQTT_RECONNECT_MAX_DELAY)
        client.on_connect = self._on_connect
        client.on_subscribe = self._on_subscribe
        client.on_message = self._on_message
        client.on_disconnect = self._on_disconnect

        self._client = client
        self._running = True
        self._set_state(BusState.CONNECTING)
        logger.info(f"📡 Connecting to MQTT broker {s.MQTT_BROKER_HOST}:{s.MQTT_BROKER_PORT}")
        try:
            client.connect_async(s.MQTT_BROKER_HOST, s.MQTT_BROKER_PORT, keepalive=s.MQTT_KEEPALIVE)
            client.loop_start()
        except (OSError, ValueError) as e:
            self._client = None
            self._running = False
            self._set_state(BusState.DISCONNECTED)
            raise TransportError(f"Cannot start MQTT client: {e}") from e

    def stop(self):
        client = self._client
        self._client = None
        self._running = False
        if client is None:
            return
        try:
            client.disconnect()
        finally:
            client.loop_stop()
            self._set_state(BusState.DISCONNECTED)
            logger.info("🛑 MQTT subscriber stopped")

    # ── paho callbacks (network thread) ───────────────────────────────────
    def _on_connect(self, client, _userdata, _flags, reason_code, _properties):
        if reason_code.is_failure:
            # paho keeps retrying on its own
            logger.warning(f"[MQTT] Connect refused: {reason_code}")
            self._set_state(BusState.CONNECTING)
            return

        logger.info(f"✅ Connected to MQTT broker {self._settings.MQTT_BROKER_HOST}")
        self._set_state(BusState.SUBSCRIBED)
        result, _mid = client.subscribe(self.topic, qos=0)
        if result != mqtt.MQTT_ERR_SUCCESS:
            logger.error(f"[MQTT] Subscription request for {self.topic} failed: {mqtt.error_string(result)}")

    def _on_subscribe(self, _client, _userdata, _mid, reason_code_list, _properties):
        failed = [rc for rc in reason_code_list if rc.is_failure]
        if failed:
            logger.error(f"[MQTT] Subscription to {self.topic} rejected: {failed}")
        else:
            logger.info(f"Successfully subscribed to topic: {self.topic}")

    def _on_message(self, _client, _userdata, msg):
        if msg.topic != self.topic:
            logger.debug(f"[MQTT] Ignoring message on {msg.topic}")
            return
        event = TelemetryReceived(topic=msg.topic, payload=bytes(msg.payload))
        try:
            self._loop.call_soon_threadsafe(self._on_telemetry, event)
        except RuntimeError:
            logger.warning("[MQTT] Event loop closed, telemetry dropped")

    def _on_disconnect(self, _client, _userdata, _flags, reason_code, _properties):
        self._set_state(BusState.DISCONNECTED)
        if not self._running:
            return
        logger.warning(f"❌ MQTT disconnected ({reason_code}) — reconnecting")
        self._set_state(BusState.CONNECTING)


__all__ = ["BusState", "BusSubscriber"]
