# bintrack/routers/bins.py
"""
Bin snapshot endpoints.
GET /data — current state of every bin, in provisioning order.
WS  /ws   — live stream; the full snapshot is pushed after every telemetry message.
"""

from fastapi import APIRouter, Depends, Request, WebSocket

from bintrack.schemas.bin import BinRecordOut
from bintrack.services.bin_registry import BinRegistry
from bintrack.services.event_dispatcher import SubscriberConnected, SubscriberDisconnected
from bintrack.services.pipeline import TelemetryPipeline
from bintrack.utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)


def get_pipeline(request: Request) -> TelemetryPipeline:
    return request.app.state.pipeline


def get_registry(pipeline: TelemetryPipeline = Depends(get_pipeline)) -> BinRegistry:
    return pipeline.registry


@router.get("/data", response_model=list[BinRecordOut], summary="Current bin snapshot")
def get_bin_data(registry: BinRegistry = Depends(get_registry)):
    """Served straight from memory. No side effects."""
    return registry.serialize()


async def live_updates(websocket: WebSocket):
    """
    Registers the client for snapshot pushes. Clients are not expected to send
    anything; incoming frames are read only to notice the disconnect.
    """
    dispatcher = websocket.app.state.pipeline.dispatcher
    await websocket.accept()
    dispatcher.submit(SubscriberConnected(websocket))
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
    finally:
        dispatcher.submit(SubscriberDisconnected(websocket))
