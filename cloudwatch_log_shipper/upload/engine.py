"""
Upload engine for pending log events.

Runs one upload cycle at a time:
1. Read every pending event from the local store
2. Split them into ordered batches
3. Submit the batches one by one, carrying the sequence token forward
4. Remove confirmed batches from the store as soon as they are confirmed

Rejections are recovered according to their kind:
- Stale token: store the expected token and resend the batch once
- Already accepted: store the expected token, treat the batch as confirmed
- Missing stream: recreate the stream and stop the cycle
- Bad ordering: restamp every pending event with the current time and
  start the cycle over
Anything else ends the cycle with UploadError; unconfirmed events stay
in the store for the next cycle.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from ..exceptions import UploadError
from ..local import LocalEventStore, TokenStore
from ..logging_utils import ShipperLoggerAdapter
from ..models import Batch, LogEvent
from ..remote import (
    Accepted,
    AlreadyAccepted,
    Failed,
    InvalidOrdering,
    InvalidToken,
    LogIngestionClient,
    StreamNotFound,
    UploadOutcome,
)
from .batching import BATCH_SIZE, BATCH_WINDOW_MS, split_into_batches

logger = logging.getLogger(__name__)

DEFAULT_MAX_ORDERING_RESTARTS = 1


def _now_millis() -> int:
    return time.time_ns() // 1_000_000


@dataclass
class UploadResult:
    """Result of one upload cycle."""

    uploaded_events: int = 0
    batches_attempted: int = 0
    batches_confirmed: int = 0
    token_retries: int = 0
    ordering_restarts: int = 0
    stream_recreated: bool = False
    aborted: bool = False
    cancelled: bool = False
    remaining_events: int = 0
    duration_ms: int = 0

    @property
    def success(self) -> bool:
        """True when every batch of the cycle was confirmed."""
        return not self.aborted and not self.cancelled


@dataclass
class WorkingSet:
    """Events owned by a running cycle.

    ``persisted`` is the number of leading records of the store file that
    ``events`` accounts for; records after it were appended during the
    cycle and are left alone.
    """

    events: list[LogEvent]
    persisted: int = field(default=0)


class UploadEngine:
    """Drives batch uploads and the sequence-token lifecycle.

    Batches are submitted strictly one after another because the sequence
    token is a single cursor per stream.
    """

    def __init__(
        self,
        store: LocalEventStore,
        tokens: TokenStore,
        client: LogIngestionClient,
        batch_size: int = BATCH_SIZE,
        window_ms: int = BATCH_WINDOW_MS,
        max_ordering_restarts: int = DEFAULT_MAX_ORDERING_RESTARTS,
        clock: Callable[[], int] = _now_millis,
    ):
        """Initialize the upload engine.

        Args:
            store: Local store of pending events
            tokens: Store for sequence token and destination names
            client: Remote ingestion client
            batch_size: Maximum events per batch
            window_ms: Maximum timestamp span of one batch
            max_ordering_restarts: Restamp-and-restart attempts per cycle
            clock: Returns the current time in epoch milliseconds
        """
        self.store = store
        self.tokens = tokens
        self.client = client
        self.batch_size = batch_size
        self.window_ms = window_ms
        self.max_ordering_restarts = max_ordering_restarts
        self.clock = clock

        self._lock = asyncio.Lock()
        self._cancel_requested = False

    @property
    def is_uploading(self) -> bool:
        """Whether a cycle is currently running."""
        return self._lock.locked()

    def cancel(self) -> None:
        """Ask the running cycle to stop before its next batch."""
        self._cancel_requested = True

    async def create_log_stream(self, stream_name: str) -> None:
        """Remember ``stream_name`` and create it in the configured group.

        Safe to call when the stream already exists.
        """
        await self.tokens.set_stream_name(stream_name)
        group_name = await self.tokens.get_group_name()
        await self.client.create_stream(group_name, stream_name)

    async def create_log_group(self, group_name: str) -> None:
        """Remember ``group_name`` and create it remotely.

        Safe to call when the group already exists.
        """
        await self.tokens.set_group_name(group_name)
        await self.client.create_group(group_name)

    async def upload_logs(self, cancel_event: asyncio.Event | None = None) -> UploadResult:
        """Run one upload cycle over every pending event.

        Args:
            cancel_event: When set, the cycle stops before the next batch

        Returns:
            Counters describing what the cycle did

        Raises:
            UploadError: On a failure the cycle cannot recover from
            StorageIOError: If the local store cannot be read or rewritten
        """
        async with self._lock:
            self._cancel_requested = False
            started = time.monotonic()
            result = UploadResult()

            events = await self.store.read_all()
            working = WorkingSet(events=events, persisted=len(events))

            try:
                if events:
                    working = await self._run_cycle(working, result, cancel_event)
            finally:
                result.remaining_events = len(working.events)
                result.duration_ms = int((time.monotonic() - started) * 1000)

            if result.uploaded_events:
                logger.info(
                    f"Uploaded {result.uploaded_events} log events in "
                    f"{result.batches_confirmed} batches, {result.remaining_events} pending"
                )
            return result

    async def _run_cycle(
        self,
        working: WorkingSet,
        result: UploadResult,
        cancel_event: asyncio.Event | None,
    ) -> WorkingSet:
        """Partition and upload ``working``; returns the unconfirmed residue."""
        prefs = await self.tokens.snapshot()
        log = ShipperLoggerAdapter(
            logger, {"log_group": prefs.group_name, "log_stream": prefs.stream_name}
        )

        while True:
            batches = split_into_batches(working.events, self.batch_size, self.window_ms)
            restart = False

            for batch in batches:
                if self._cancel_requested or (cancel_event is not None and cancel_event.is_set()):
                    log.info(f"Upload cancelled with {len(working.events)} events pending")
                    result.cancelled = True
                    return working

                outcome = await self._submit(batch, result, log)

                match outcome:
                    case Accepted(next_token=next_token):
                        if next_token is not None:
                            await self.tokens.set_sequence_token(next_token)
                        await self._confirm(working, batch, result)

                    case AlreadyAccepted(expected_token=expected_token):
                        log.warning(f"Batch of {len(batch)} events was already accepted")
                        await self.tokens.set_sequence_token(expected_token)
                        await self._confirm(working, batch, result)

                    case StreamNotFound():
                        stream_name = await self.tokens.get_stream_name()
                        log.warning(f"Log stream missing, recreating {stream_name}")
                        try:
                            await self.create_log_stream(stream_name)
                        except Exception as e:
                            raise UploadError(
                                f"Could not recreate log stream {stream_name}",
                                kind="stream_not_found",
                                cause=e,
                            ) from e
                        result.stream_recreated = True
                        result.aborted = True
                        return working

                    case InvalidOrdering(reason=reason):
                        if result.ordering_restarts >= self.max_ordering_restarts:
                            log.error(f"Events still rejected after restamping: {reason}")
                            raise UploadError(
                                f"Log events rejected as out of order: {reason}",
                                kind="invalid_ordering",
                            )
                        log.warning(
                            f"Events rejected as out of order, restamping {len(working.events)} events"
                        )
                        await self._restamp(working)
                        result.ordering_restarts += 1
                        restart = True
                        break

                    case InvalidToken():
                        log.error("Sequence token rejected again after retry")
                        raise UploadError(
                            "Sequence token rejected after retry", kind="invalid_token"
                        )

                    case Failed(error=error):
                        log.error(f"Batch upload failed: {error}")
                        raise UploadError("Log upload failed", kind="failed", cause=error)

            if not restart:
                return working

    async def _submit(
        self,
        batch: Batch,
        result: UploadResult,
        log: ShipperLoggerAdapter,
    ) -> UploadOutcome:
        """Send a batch, resending once with the expected token if it was stale."""
        outcome = await self._put(batch)
        result.batches_attempted += 1

        if isinstance(outcome, InvalidToken):
            log.warning("Sequence token was stale, retrying batch with expected token")
            await self.tokens.set_sequence_token(outcome.expected_token)
            result.token_retries += 1
            outcome = await self._put(batch)

        return outcome

    async def _put(self, batch: Batch) -> UploadOutcome:
        prefs = await self.tokens.snapshot()
        try:
            return await self.client.put_events(
                prefs.group_name, prefs.stream_name, prefs.sequence_token, batch
            )
        except Exception as e:
            return Failed(e)

    async def _confirm(self, working: WorkingSet, batch: Batch, result: UploadResult) -> None:
        """Drop a confirmed batch from the working set and the store."""
        confirmed = {id(event) for event in batch}
        working.events = [event for event in working.events if id(event) not in confirmed]
        await self._persist(working)
        result.uploaded_events += len(batch)
        result.batches_confirmed += 1

    async def _restamp(self, working: WorkingSet) -> None:
        """Give every pending event the same, current timestamp.

        Events appended to the store during the cycle are restamped too.
        """
        now = self.clock()
        working.events = [event.with_timestamp(now) for event in working.events]
        await self._persist(working, appended_timestamp=now)

    async def _persist(self, working: WorkingSet, appended_timestamp: int | None = None) -> None:
        await self.store.replace(
            working.events, consumed=working.persisted, appended_timestamp=appended_timestamp
        )
        working.persisted = len(working.events)
