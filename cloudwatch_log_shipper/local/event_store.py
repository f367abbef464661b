"""
Durable store of log events waiting to be uploaded.

Events live in a single JSONL file, one ``{"message", "timestamp"}``
object per line, in the order they were logged:

    {storage_dir}/cloudwatch_logs.jsonl      - pending events
    {storage_dir}/cloudwatch_logs.tmp.jsonl  - staging file used by replace()

Appends go straight to the primary file. Removing uploaded events
rewrites the file through the staging file and an atomic rename, so the
store is never missing or half written.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Sequence
from pathlib import Path

from ..exceptions import StorageIOError
from ..models import LogEvent
from .file_ops import (
    append_jsonl,
    count_jsonl,
    iter_jsonl,
    read_jsonl,
    remove_file,
    write_jsonl_atomic,
)

logger = logging.getLogger(__name__)

LOG_FILE_NAME = "cloudwatch_logs.jsonl"
TEMP_LOG_FILE_NAME = "cloudwatch_logs.tmp.jsonl"


class LocalEventStore:
    """Append-only JSONL store of pending log events.

    Appends and replaces are serialized by an internal lock. ``replace``
    can carry over records appended after a reader took its snapshot, so a
    concurrent ``log()`` is never lost when an upload cycle rewrites the
    file.
    """

    def __init__(self, storage_dir: Path):
        """Initialize the event store.

        Args:
            storage_dir: Directory holding the store files
        """
        self.storage_dir = Path(storage_dir)
        self.path = self.storage_dir / LOG_FILE_NAME
        self.temp_path = self.storage_dir / TEMP_LOG_FILE_NAME
        self._lock = asyncio.Lock()

    async def append(self, event: LogEvent) -> None:
        """Durably append one event, creating the store if absent.

        Raises:
            StorageIOError: If the record could not be written
        """
        async with self._lock:
            await append_jsonl(self.path, event.to_dict())

    async def iter_events(self) -> AsyncIterator[LogEvent]:
        """Iterate over stored events in append order."""
        async for data in iter_jsonl(self.path):
            yield self._parse(data)

    async def read_all(self) -> list[LogEvent]:
        """Read every stored event in append order."""
        async with self._lock:
            return [event async for event in self.iter_events()]

    async def replace(
        self,
        remaining: Sequence[LogEvent],
        consumed: int | None = None,
        appended_timestamp: int | None = None,
    ) -> int:
        """Atomically swap the store's contents for ``remaining``.

        Args:
            remaining: Events that must stay pending, in order
            consumed: Number of leading records the caller read and is
                      accounting for in ``remaining``. Records past that
                      point were appended afterwards and are kept after
                      ``remaining``. When omitted the store holds exactly
                      ``remaining`` afterwards.
            appended_timestamp: If given, carried-over records are stored
                      with this timestamp

        Returns:
            Number of records carried over from concurrent appends
        """
        async with self._lock:
            appended: list[dict] = []
            if consumed is not None:
                current = await read_jsonl(self.path)
                appended = current[consumed:]
                if appended_timestamp is not None:
                    appended = [
                        self._parse(data).with_timestamp(appended_timestamp).to_dict()
                        for data in appended
                    ]

            records = [event.to_dict() for event in remaining]
            records.extend(appended)
            await write_jsonl_atomic(self.path, records, temp_path=self.temp_path)

        if appended:
            logger.debug(f"Kept {len(appended)} events appended during upload")
        return len(appended)

    async def count(self) -> int:
        """Number of events currently stored."""
        async with self._lock:
            return await count_jsonl(self.path)

    async def clear(self) -> None:
        """Remove every stored event."""
        async with self._lock:
            await remove_file(self.path)

    def _parse(self, data: dict) -> LogEvent:
        try:
            return LogEvent.from_dict(data)
        except (TypeError, ValueError) as e:
            raise StorageIOError("parse_event", str(self.path), e) from e
