"""
Batching and upload of pending log events.

- split_into_batches: size- and time-bounded partitioning
- UploadEngine: sequential batch upload with rejection recovery
"""

from .batching import BATCH_SIZE, BATCH_WINDOW_MS, split_into_batches
from .engine import DEFAULT_MAX_ORDERING_RESTARTS, UploadEngine, UploadResult, WorkingSet

__all__ = [
    "UploadEngine",
    "UploadResult",
    "WorkingSet",
    "split_into_batches",
    "BATCH_SIZE",
    "BATCH_WINDOW_MS",
    "DEFAULT_MAX_ORDERING_RESTARTS",
]
