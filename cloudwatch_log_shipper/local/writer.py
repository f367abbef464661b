"""
Background writer feeding the local event store.

``log()`` calls must not block on disk I/O, so formatted events are put on
a bounded queue and a single task appends them to the store in the order
they were queued. An event whose append fails is held back and retried;
nothing newer is taken off the queue until it is written, so a failing
disk fills the queue and callers see LogQueueFullError instead of the
writer buffering without limit.
"""

import asyncio
import logging
from collections.abc import Callable

from ..exceptions import LoggerClosedError, LogQueueFullError, StorageIOError
from ..models import LogEvent
from .event_store import LocalEventStore

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_MAXSIZE = 10000
DEFAULT_RETRY_INTERVAL_S = 1.0


class EventWriter:
    """Single-writer queue in front of a LocalEventStore."""

    def __init__(
        self,
        store: LocalEventStore,
        maxsize: int = DEFAULT_QUEUE_MAXSIZE,
        on_write_error: Callable[[StorageIOError], None] | None = None,
        retry_interval_s: float = DEFAULT_RETRY_INTERVAL_S,
    ):
        """Initialize the writer.

        Args:
            store: Store that receives the events
            maxsize: Maximum number of queued, unwritten events
            on_write_error: Callback when an append fails
            retry_interval_s: Pause between attempts to write a held-back event
        """
        self.store = store
        self.maxsize = maxsize
        self.on_write_error = on_write_error
        self.retry_interval_s = retry_interval_s

        self._queue: asyncio.Queue[LogEvent] = asyncio.Queue(maxsize=maxsize)
        # Every append goes through this lock, from the task or from flush()
        self._write_lock = asyncio.Lock()
        self._held: LogEvent | None = None
        self._write_failed = asyncio.Event()
        self._task: asyncio.Task[None] | None = None
        self._closed = False
        self.last_error: StorageIOError | None = None

    @property
    def pending(self) -> int:
        """Events accepted but not yet written."""
        return self._queue.qsize() + (1 if self._held is not None else 0)

    def start(self) -> None:
        """Start the writer task on the running loop."""
        if self._closed:
            raise LoggerClosedError()
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run())

    def submit(self, event: LogEvent) -> None:
        """Queue an event without waiting.

        Raises:
            LoggerClosedError: If the writer was closed
            LogQueueFullError: If the queue is at capacity
        """
        if self._closed:
            raise LoggerClosedError()
        self.start()
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            raise LogQueueFullError(self.maxsize) from None

    async def submit_wait(self, event: LogEvent) -> None:
        """Queue an event, waiting for room if the queue is full."""
        if self._closed:
            raise LoggerClosedError()
        self.start()
        await self._queue.put(event)

    async def flush(self) -> None:
        """Wait until every queued event has been handed to the store.

        A held-back event gets one more write attempt here before giving up.

        Raises:
            LoggerClosedError: If the writer was closed
            StorageIOError: If some events could not be written
        """
        if self._closed:
            raise LoggerClosedError()

        while True:
            await self._write_held()
            if self._held is not None:
                raise StorageIOError("flush", str(self.store.path), self.last_error)

            drained = asyncio.ensure_future(self._queue.join())
            failed = asyncio.ensure_future(self._write_failed.wait())
            done, waiting = await asyncio.wait(
                {drained, failed}, return_when=asyncio.FIRST_COMPLETED
            )
            for task in waiting:
                task.cancel()
            if drained in done and self._held is None:
                return

    async def close(self) -> None:
        """Flush what can be written, then stop the writer task."""
        if self._closed:
            return
        try:
            await self.flush()
        except StorageIOError as e:
            logger.error(f"Closing with {self.pending} unwritten log events: {e}")
        finally:
            self._closed = True
            if self._task is not None:
                self._task.cancel()
                try:
                    await self._task
                except asyncio.CancelledError:
                    pass
                self._task = None

    async def _run(self) -> None:
        while True:
            if self._held is not None:
                await asyncio.sleep(self.retry_interval_s)
                await self._write_held()
                continue

            event = await self._queue.get()
            try:
                async with self._write_lock:
                    await self._write(event)
            finally:
                self._queue.task_done()

    async def _write_held(self) -> None:
        async with self._write_lock:
            if self._held is None:
                return
            try:
                await self.store.append(self._held)
            except StorageIOError as e:
                self._report(e)
                return
            self._held = None
            self._write_failed.clear()

    async def _write(self, event: LogEvent) -> None:
        try:
            await self.store.append(event)
        except StorageIOError as e:
            self._held = event
            self._write_failed.set()
            self._report(e)

    def _report(self, error: StorageIOError) -> None:
        self.last_error = error
        logger.error(f"Failed to persist log event, {self.pending} waiting: {error}")
        if self.on_write_error:
            try:
                self.on_write_error(error)
            except Exception as e:
                logger.error(f"on_write_error callback raised: {e}")
