# bintrack/exceptions.py
"""
Error taxonomy for the ingest/fanout pipeline and the account boundary.
Every error here is contained by the component that detects it; none of them
is allowed to terminate the process.
"""


class BinTrackError(Exception):
    """Base class for all service errors."""


class TransportError(BinTrackError):
    """MQTT connection dropped or refused. Recovered by the client's reconnect loop."""


class TelemetryDecodeError(BinTrackError):
    """Telemetry payload could not be decoded. The message is dropped."""


class SubscriberSendError(BinTrackError):
    """A live connection could not be written to. The subscriber is dropped."""


class PersistenceError(BinTrackError):
    """Account/ticket store failure. Surfaced to the client as a 500."""


class BinNotFoundError(BinTrackError, KeyError):
    def __init__(self, bin_id: str):
        super().__init__(bin_id)
        self.bin_id = bin_id

    def __str__(self):
        return f"Unknown bin '{self.bin_id}'"
