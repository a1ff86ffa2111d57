# bintrack/routers/health.py
"""
System health check endpoint.
Returns status of backend + DB + MQTT subscription + live subscribers.
"""

from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from bintrack.database import get_db
from bintrack.routers.bins import get_pipeline
from bintrack.services.bus_subscriber import BusState
from bintrack.services.pipeline import TelemetryPipeline

router = APIRouter()


@router.get("/health", summary="System health check")
def health_check(db: Session = Depends(get_db), pipeline: TelemetryPipeline = Depends(get_pipeline)):
    """
    Returns:
    - Database connectivity
    - MQTT subscriber state ("disabled" when MQTT_ENABLED is off)
    - Live subscriber count and tracked bins
    """
    result = {
        "status": "ok",
        "timestamp": datetime.utcnow().isoformat(),
        "database": "unknown",
        "bus": "disabled",
        "subscribers": pipeline.hub.subscriber_count,
        "bins": pipeline.registry.ids(),
    }

    try:
        db.execute(text("SELECT 1"))
        result["database"] = "ok"
    except Exception as e:
        result["database"] = f"error: {str(e)}"
        result["status"] = "degraded"

    if pipeline.subscriber is not None:
        result["bus"] = pipeline.subscriber.state.value
        if pipeline.subscriber.state != BusState.SUBSCRIBED:
            result["status"] = "degraded"

    return result
