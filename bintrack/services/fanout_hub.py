# bintrack/services/fanout_hub.py
"""
Live fanout hub — pushes the bin snapshot to every connected WebSocket.

Best-effort broadcast: the snapshot is serialized once and the same text is
sent to every open connection. A connection that is closed, raises on send,
or is too slow to accept the frame is dropped from the set and closed in
the background, so its client sees the disconnect and can reconnect.
Nothing is retried or buffered per client.
"""

import asyncio
import json

from starlette.websockets import WebSocket, WebSocketState

from bintrack.exceptions import SubscriberSendError
from bintrack.utils.logger import get_logger

logger = get_logger(__name__)


class LiveFanoutHub:
    def __init__(self, send_timeout: float = 5.0):
        self._connections: set[WebSocket] = set()
        self._send_timeout = send_timeout
        self._closing: set[asyncio.Task] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._connections)

    def is_registered(self, connection: WebSocket) -> bool:
        return connection in self._connections

    def register(self, connection: WebSocket):
        self._connections.add(connection)
        logger.info(f"[LIVE] Subscriber connected ({self.subscriber_count} total)")

    def unregister(self, connection: WebSocket):
        if connection in self._connections:
            self._connections.discard(connection)
            logger.info(f"[LIVE] Subscriber disconnected ({self.subscriber_count} total)")

    async def broadcast(self, snapshot: list[dict]) -> int:
        """
        Send `snapshot` to every subscriber registered when the call starts.
        Returns how many subscribers received it.
        """
        targets = list(self._connections)
        if not targets:
            return 0

        payload = json.dumps(snapshot)
        results = await asyncio.gather(
            *(self._send(conn, payload) for conn in targets),
            return_exceptions=True,
        )

        delivered = 0
        for conn, result in zip(targets, results):
            if result is True:
                delivered += 1
                continue
            self._connections.discard(conn)
            logger.info(f"[LIVE] Dropped subscriber: {result}")
            self._schedule_close(conn)

        logger.debug(f"[LIVE] Broadcast {len(payload)} bytes to {delivered}/{len(targets)} subscribers")
        return delivered

    def _schedule_close(self, conn: WebSocket):
        # Fire-and-forget; keep a reference until the task finishes
        task = asyncio.create_task(self._close(conn))
        self._closing.add(task)
        task.add_done_callback(self._closing.discard)

    async def _close(self, conn: WebSocket):
        try:
            await conn.close()
        except Exception as e:
            logger.debug(f"[LIVE] Close of dropped subscriber failed: {e}")

    async def _send(self, conn: WebSocket, payload: str) -> bool:
        if conn.client_state != WebSocketState.CONNECTED or conn.application_state != WebSocketState.CONNECTED:
            raise SubscriberSendError("connection is not open")
        try:
            await asyncio.wait_for(conn.send_text(payload), timeout=self._send_timeout)
        except asyncio.TimeoutError as e:
            raise SubscriberSendError(f"send timed out after {self._send_timeout}s") from e
        except Exception as e:
            raise SubscriberSendError(f"send failed: {e}") from e
        return True
