"""
CloudWatch Log Shipper

Client-side log shipping to Amazon CloudWatch Logs.

Provides:
- Durable local buffering of log lines (JSONL, atomic rewrites)
- Size- and time-bounded batching for PutLogEvents
- Sequence-token tracking with automatic recovery from stale tokens,
  duplicate submissions, missing streams and out-of-order timestamps

Usage:

    >>> from cloudwatch_log_shipper import CloudWatchLogger, ShipperConfig
    >>> async with CloudWatchLogger(ShipperConfig.from_env()) as cw:
    ...     await cw.create_log_stream("device-1234")
    ...     cw.log("user signed in", label="INFO", module="auth")
    ...     result = await cw.upload_logs()
    ...     print(result.uploaded_events)
"""

from .config import ShipperConfig
from .device import DeviceInfo, collect_device_info
from .exceptions import (
    ConfigurationError,
    LoggerClosedError,
    LogQueueFullError,
    LogShipperError,
    RemoteConnectionError,
    RemoteRequestError,
    StorageIOError,
    UploadError,
)
from .formatting import LogFormatter
from .local import EventWriter, LocalEventStore, TokenStore
from .logging_utils import configure_structured_logging
from .models import DEFAULT_GROUP_NAME, DEFAULT_STREAM_NAME, Batch, LogEvent, LoggerPreferences
from .remote import (
    Accepted,
    AlreadyAccepted,
    CloudWatchConfig,
    CloudWatchLogsClient,
    Failed,
    InvalidOrdering,
    InvalidToken,
    LogIngestionClient,
    StreamNotFound,
    UploadOutcome,
)
from .shipper import CloudWatchLogger
from .upload import BATCH_SIZE, BATCH_WINDOW_MS, UploadEngine, UploadResult, split_into_batches

__version__ = "0.1.0"

__all__ = [
    # Facade
    "CloudWatchLogger",
    "ShipperConfig",
    # Data types
    "LogEvent",
    "Batch",
    "LoggerPreferences",
    "DeviceInfo",
    "DEFAULT_GROUP_NAME",
    "DEFAULT_STREAM_NAME",
    # Components
    "LocalEventStore",
    "EventWriter",
    "TokenStore",
    "LogFormatter",
    "UploadEngine",
    "UploadResult",
    "split_into_batches",
    "BATCH_SIZE",
    "BATCH_WINDOW_MS",
    "collect_device_info",
    # Remote
    "LogIngestionClient",
    "CloudWatchLogsClient",
    "CloudWatchConfig",
    "UploadOutcome",
    "Accepted",
    "InvalidToken",
    "AlreadyAccepted",
    "StreamNotFound",
    "InvalidOrdering",
    "Failed",
    # Logging
    "configure_structured_logging",
    # Exceptions
    "LogShipperError",
    "StorageIOError",
    "LogQueueFullError",
    "LoggerClosedError",
    "UploadError",
    "ConfigurationError",
    "RemoteConnectionError",
    "RemoteRequestError",
]
