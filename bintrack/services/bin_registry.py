# bintrack/services/bin_registry.py
"""
In-memory bin registry — the authoritative state of every provisioned bin.

Bins are provisioned once at startup (see settings.BINS) and never added or
removed by telemetry. Only `level` and `last_empty` change, and only through
update(). Every read hands out copies, so callers can serialize or send a
snapshot without holding the lock.
"""

import threading
from dataclasses import dataclass, replace
from typing import Iterable, Optional, Union

from bintrack.exceptions import BinNotFoundError

Level = Union[int, float]


@dataclass
class BinRecord:
    bin_id: str                  # "BIN 1" — identity, serialized as "bin"
    telemetry_field: str         # payload key carrying this bin's level, e.g. "bin1_level"
    latitude: float
    longitude: float
    address: str
    low_threshold: Level         # level strictly below this counts as emptied
    level: Level = 0
    last_empty: Optional[str] = None   # "YYYY-MM-DD HH:MM:SS", local time

    def as_dict(self) -> dict:
        """Wire shape shared by GET /api/data and the live stream."""
        return {
            "bin": self.bin_id,
            "level": self.level,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "address": self.address,
            "lastEmpty": self.last_empty,
        }


class BinRegistry:
    """Ordered, fixed-size table of BinRecord guarded by a single lock."""

    def __init__(self, records: Iterable[BinRecord]):
        self._records: list[BinRecord] = list(records)
        self._index: dict[str, BinRecord] = {}
        fields = set()
        for record in self._records:
            if record.bin_id in self._index:
                raise ValueError(f"Duplicate bin id '{record.bin_id}'")
            if record.telemetry_field in fields:
                raise ValueError(f"Duplicate telemetry field '{record.telemetry_field}'")
            self._index[record.bin_id] = record
            fields.add(record.telemetry_field)
        self._lock = threading.Lock()

    @classmethod
    def from_provisioning(cls, bins: list[dict]) -> "BinRegistry":
        return cls(
            BinRecord(
                bin_id=b["bin"],
                telemetry_field=b["field"],
                latitude=b["latitude"],
                longitude=b["longitude"],
                address=b["address"],
                low_threshold=b["low_threshold"],
                level=b.get("level", 0),
            )
            for b in bins
        )

    def __len__(self):
        return len(self._records)

    def ids(self) -> list[str]:
        return [r.bin_id for r in self._records]

    def telemetry_fields(self) -> dict[str, str]:
        """Map of payload field → bin id, in registry order."""
        return {r.telemetry_field: r.bin_id for r in self._records}

    def snapshot(self) -> list[BinRecord]:
        with self._lock:
            return [replace(r) for r in self._records]

    def serialize(self) -> list[dict]:
        return [r.as_dict() for r in self.snapshot()]

    def get(self, bin_id: str) -> BinRecord:
        with self._lock:
            record = self._index.get(bin_id)
            if record is None:
                raise BinNotFoundError(bin_id)
            return replace(record)

    def update(self, bin_id: str, level: Level, observed_at: str) -> Level:
        """
        Set a bin's level and apply the last-emptied rule atomically.
        Returns the previous level.

        last_empty is set to `observed_at` the first time the level drops below
        the bin's threshold. Nothing ever clears it again, so it stays frozen at
        the first low reading for the life of the process.
        """
        with self._lock:
            record = self._index.get(bin_id)
            if record is None:
                raise BinNotFoundError(bin_id)
            previous = record.level
            record.level = level
            if level < record.low_threshold and record.last_empty is None:
                record.last_empty = observed_at
            return previous
