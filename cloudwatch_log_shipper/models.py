"""
Core data types for the log shipper.

Defines the log event record that is persisted locally and uploaded,
and the snapshot of logger preferences kept in the token store.
"""

from dataclasses import dataclass, replace
from typing import Any

# Defaults used when no group/stream has been configured
DEFAULT_GROUP_NAME = "default_log_group"
DEFAULT_STREAM_NAME = "default_log_stream"


@dataclass(frozen=True)
class LogEvent:
    """A single log line waiting to be uploaded.

    Serialized in the CloudWatch ``InputLogEvent`` shape so a stored line
    can be passed straight to ``PutLogEvents``.

    Attributes:
        message: Fully formatted log message
        timestamp: Event time in milliseconds since the epoch
    """

    message: str
    timestamp: int

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {"message": self.message, "timestamp": self.timestamp}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LogEvent":
        """Deserialize from dictionary.

        Accepts ``timestampMillis`` as an alias of ``timestamp``.
        """
        timestamp = data.get("timestamp", data.get("timestampMillis"))
        if timestamp is None:
            raise ValueError("Log event is missing a timestamp")
        return cls(message=str(data.get("message", "")), timestamp=int(timestamp))

    def with_timestamp(self, timestamp: int) -> "LogEvent":
        """Return a copy of this event stamped with a new time."""
        return replace(self, timestamp=timestamp)


# A contiguous run of events uploaded in one PutLogEvents call
Batch = list[LogEvent]


@dataclass
class LoggerPreferences:
    """Snapshot of the values held by the token store."""

    sequence_token: str | None = None
    group_name: str = DEFAULT_GROUP_NAME
    stream_name: str = DEFAULT_STREAM_NAME
    app_version: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "sequence_token": self.sequence_token,
            "group_name": self.group_name,
            "stream_name": self.stream_name,
            "app_version": self.app_version,
        }
