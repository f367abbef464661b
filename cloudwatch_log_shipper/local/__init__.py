"""
Local durable storage for the log shipper.

Uses JSONL files for efficient append operations and atomic writes
for data integrity.

Key classes:
- LocalEventStore: Pending log events waiting for upload
- EventWriter: Bounded queue with a single task appending to the store
- TokenStore: Sequence token, destination names and app version
"""

from .event_store import LOG_FILE_NAME, TEMP_LOG_FILE_NAME, LocalEventStore
from .file_ops import (
    append_jsonl,
    count_jsonl,
    read_json,
    read_jsonl,
    write_json_atomic,
    write_jsonl_atomic,
)
from .token_store import PREFERENCES_FILE_NAME, TokenStore
from .writer import DEFAULT_QUEUE_MAXSIZE, EventWriter

__all__ = [
    "LocalEventStore",
    "EventWriter",
    "TokenStore",
    "LOG_FILE_NAME",
    "TEMP_LOG_FILE_NAME",
    "PREFERENCES_FILE_NAME",
    "DEFAULT_QUEUE_MAXSIZE",
    # Low-level file operations
    "read_json",
    "write_json_atomic",
    "read_jsonl",
    "write_jsonl_atomic",
    "append_jsonl",
    "count_jsonl",
]
