"""
CloudWatch logger facade.

Ties the pieces together for applications:

    >>> config = ShipperConfig.from_env()
    >>> async with CloudWatchLogger(config) as cw:
    ...     await cw.set_log_group_name("my-app")
    ...     await cw.create_log_stream("device-1234")
    ...     cw.log("payment failed", label="ERROR", module="checkout")
    ...     result = await cw.upload_logs()

``log()`` only formats and queues the line; a background writer persists
it. ``upload_logs()`` ships whatever is persisted, and
``start_auto_upload()`` does so periodically.
"""

import asyncio
import logging
from collections.abc import Callable

from .config import ShipperConfig
from .device import DeviceInfo, collect_device_info
from .exceptions import StorageIOError
from .formatting import LogFormatter
from .local import EventWriter, LocalEventStore, TokenStore
from .models import LogEvent, LoggerPreferences
from .remote import CloudWatchLogsClient, LogIngestionClient
from .upload import UploadEngine, UploadResult

logger = logging.getLogger(__name__)


class CloudWatchLogger:
    """Durable log shipping to Amazon CloudWatch Logs.

    Log lines are stored locally first and uploaded in batches later, so
    nothing is lost while the device is offline.
    """

    def __init__(
        self,
        config: ShipperConfig | None = None,
        client: LogIngestionClient | None = None,
        device: DeviceInfo | None = None,
        on_write_error: Callable[[StorageIOError], None] | None = None,
    ):
        """Initialize the logger.

        Args:
            config: Shipper configuration (defaults to ShipperConfig())
            client: Ingestion client; a CloudWatchLogsClient is built from
                    the config when omitted
            device: Device metadata; collected from the host when omitted
            on_write_error: Callback when persisting a log line fails
        """
        self.config = config or ShipperConfig()
        self.client = client or CloudWatchLogsClient(self.config.cloudwatch_config())

        self.store = LocalEventStore(self.config.storage_dir)
        self.tokens = TokenStore(
            self.config.storage_dir,
            default_group_name=self.config.default_group_name,
            default_stream_name=self.config.default_stream_name,
        )
        self.writer = EventWriter(
            self.store,
            maxsize=self.config.queue_maxsize,
            on_write_error=on_write_error,
        )
        self.formatter = LogFormatter(device or collect_device_info(self.config.storage_dir))
        self.engine = UploadEngine(
            self.store,
            self.tokens,
            self.client,
            batch_size=self.config.batch_size,
            window_ms=self.config.batch_window_ms,
            max_ordering_restarts=self.config.max_ordering_restarts,
        )

        # Cached so log() can stay synchronous
        self._app_version: str | None = None
        self._auto_upload_task: asyncio.Task[None] | None = None

    async def start(self) -> "CloudWatchLogger":
        """Load preferences and start the background writer."""
        self._app_version = await self.tokens.get_app_version()
        self.writer.start()
        return self

    async def close(self) -> None:
        """Stop auto upload, flush pending writes and release the client."""
        await self.stop_auto_upload()
        await self.writer.close()
        await self.client.close()

    async def __aenter__(self) -> "CloudWatchLogger":
        return await self.start()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # =========================================================================
    # Logging
    # =========================================================================

    def _format(
        self,
        message: str,
        label: str | None,
        phase: str | None,
        module: str | None,
    ) -> LogEvent:
        return self.formatter.format(
            message, label=label, phase=phase, module=module, app_version=self._app_version
        )

    def log(
        self,
        message: str,
        label: str | None = None,
        phase: str | None = None,
        module: str | None = None,
    ) -> None:
        """Record a log line without waiting for it to be written.

        Must be called from the event loop thread.

        Args:
            message: The log message
            label: Priority label
            phase: Phase of the project
            module: Module of the project

        Raises:
            LogQueueFullError: If too many lines are waiting to be written
            LoggerClosedError: If the logger was closed
        """
        self.writer.submit(self._format(message, label, phase, module))

    async def log_async(
        self,
        message: str,
        label: str | None = None,
        phase: str | None = None,
        module: str | None = None,
    ) -> None:
        """Record a log line, waiting for queue room instead of failing."""
        await self.writer.submit_wait(self._format(message, label, phase, module))

    async def flush(self) -> None:
        """Wait until every logged line is persisted."""
        await self.writer.flush()

    # =========================================================================
    # Preferences
    # =========================================================================

    async def set_log_group_name(self, name: str) -> None:
        await self.tokens.set_group_name(name)

    async def set_app_version(self, version: str) -> None:
        await self.tokens.set_app_version(version)
        self._app_version = version

    async def get_preferences(self) -> LoggerPreferences:
        return await self.tokens.snapshot()

    async def reset_logger_preferences(self) -> None:
        """Forget the sequence token, destination names and app version."""
        await self.tokens.reset_preferences()
        self._app_version = None

    async def create_log_stream(self, name: str) -> None:
        """Use ``name`` as the destination stream and create it remotely."""
        await self.engine.create_log_stream(name)

    async def create_log_group(self, name: str) -> None:
        """Use ``name`` as the destination group and create it remotely."""
        await self.engine.create_log_group(name)

    # =========================================================================
    # Upload
    # =========================================================================

    async def upload_logs(self, cancel_event: asyncio.Event | None = None) -> UploadResult:
        """Persist queued lines, then run one upload cycle.

        Raises:
            UploadError: If the cycle hit an unrecoverable remote failure
            StorageIOError: If local storage failed
        """
        await self.writer.flush()
        return await self.engine.upload_logs(cancel_event)

    def cancel_upload(self) -> None:
        """Stop the running upload cycle at the next batch boundary."""
        self.engine.cancel()

    async def get_saved_logs_count(self) -> int:
        """Number of lines persisted and not yet uploaded."""
        await self.writer.flush()
        return await self.store.count()

    async def start_auto_upload(self, interval_s: float | None = None) -> None:
        """Upload periodically in the background.

        Args:
            interval_s: Seconds between cycles (defaults to config)
        """
        if self._auto_upload_task is not None:
            return

        interval = interval_s or self.config.upload_interval_s

        async def upload_loop() -> None:
            while True:
                try:
                    await asyncio.sleep(interval)
                    await self.upload_logs()
                except asyncio.CancelledError:
                    break
                except Exception as e:
                    # Events stay in the store; the next tick retries them
                    logger.error(f"Automatic log upload failed: {e}")

        self._auto_upload_task = asyncio.create_task(upload_loop())

    async def stop_auto_upload(self) -> None:
        """Stop the background upload loop."""
        if self._auto_upload_task is not None:
            self._auto_upload_task.cancel()
            try:
                await self._auto_upload_task
            except asyncio.CancelledError:
                pass
            self._auto_upload_task = None
