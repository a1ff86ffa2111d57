# bintrack/services/telemetry_parser.py
"""
Parses raw MQTT telemetry payloads into per-bin level updates.

Reference payload: {"bin1_level": 45, "bin2_level": 80}
Known fields map to a bin; unknown fields are ignored; absent fields mean
"no change for that bin". Any known field with a non-numeric value rejects
the whole message so a bad publish never half-applies.
"""

import json
import math
from typing import Mapping

from bintrack.exceptions import TelemetryDecodeError
from bintrack.services.bin_registry import Level
from bintrack.utils.logger import get_logger

logger = get_logger(__name__)

TelemetryUpdate = dict[str, Level]


def _is_level(value) -> bool:
    # bool is an int subclass; true/false are not fill levels
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        # int too large for a float
        return False


def parse_telemetry(payload: bytes, fields: Mapping[str, str]) -> TelemetryUpdate:
    """
    Decode one payload against the registry's field map (field → bin id).
    Returns bin id → level for every known field present (possibly empty).
    Raises TelemetryDecodeError on malformed JSON, a non-object body,
    or a non-numeric level.
    """
    try:
        data = json.loads(payload.decode("utf-8"))
    except ValueError as e:
        # JSONDecodeError, UnicodeDecodeError, and the int digit limit
        raise TelemetryDecodeError(f"Payload is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise TelemetryDecodeError(f"Expected a JSON object, got {type(data).__name__}")

    update: TelemetryUpdate = {}
    ignored = []
    for key, value in data.items():
        bin_id = fields.get(key)
        if bin_id is None:
            ignored.append(key)
            continue
        if not _is_level(value):
            raise TelemetryDecodeError(f"Field '{key}' is not a finite number: {value!r}")
        update[bin_id] = value

    if ignored:
        logger.debug(f"Ignored telemetry fields: {ignored}")
    return update
