# bintrack/services/telemetry_service.py
"""
State updater — applies decoded telemetry to the bin registry and derives
"last emptied" transitions.

Levels are applied verbatim (no smoothing or clamping). A bin is marked
emptied the first time its level drops below its low threshold; the
timestamp is sticky and is never cleared.
"""

from datetime import datetime
from typing import Optional

from bintrack.services.bin_registry import BinRegistry
from bintrack.services.telemetry_parser import TelemetryUpdate
from bintrack.utils.logger import get_logger

logger = get_logger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def current_timestamp(now: Optional[datetime] = None) -> str:
    """Local wall-clock time as YYYY-MM-DD HH:MM:SS."""
    return (now or datetime.now()).strftime(TIMESTAMP_FORMAT)


def apply_telemetry(registry: BinRegistry, update: TelemetryUpdate,
                    now: Optional[datetime] = None) -> list[str]:
    """
    Apply every level in `update`, in registry order.
    Returns the ids of bins whose last_empty was set by this update.
    """
    observed_at = current_timestamp(now)
    emptied = []

    for bin_id in registry.ids():
        if bin_id not in update:
            continue
        level = update[bin_id]
        before = registry.get(bin_id).last_empty
        previous = registry.update(bin_id, level, observed_at)
        logger.debug(f"{bin_id}: level {previous} → {level}")

        if before is None and registry.get(bin_id).last_empty is not None:
            emptied.append(bin_id)
            logger.info(f"[EMPTIED] {bin_id} dropped to {level} at {observed_at}")

    return emptied
