"""
Log line formatting.

Builds the message stored for each ``log()`` call. Fields are joined with
``|`` in a fixed order:

    [label|]model|manufacturer|os_version|device_id|app_version|[phase|][module|]datetime|message
"""

import time
from collections.abc import Callable
from datetime import datetime

from .device import DeviceInfo
from .models import LogEvent

LOG_SEPARATOR = "|"
DATE_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def _now_millis() -> int:
    return time.time_ns() // 1_000_000


class LogFormatter:
    """Turns a raw message and optional tags into a LogEvent.

    Formatting does no I/O; the clock is injectable so tests can pin time.
    """

    def __init__(
        self,
        device: DeviceInfo,
        clock: Callable[[], int] = _now_millis,
    ):
        """Initialize the formatter.

        Args:
            device: Device metadata included in every line
            clock: Returns the current time in epoch milliseconds
        """
        self.device = device
        self.clock = clock

    def device_details(self, app_version: str | None = None) -> str:
        """Pipe-joined device block."""
        return LOG_SEPARATOR.join(
            [
                self.device.model,
                self.device.manufacturer,
                self.device.os_version,
                self.device.device_id,
                app_version or "",
            ]
        )

    def format(
        self,
        message: str,
        label: str | None = None,
        phase: str | None = None,
        module: str | None = None,
        app_version: str | None = None,
    ) -> LogEvent:
        """Build the LogEvent for one log call.

        Args:
            message: Raw log message
            label: Optional priority label, placed first
            phase: Optional project phase
            module: Optional module name
            app_version: Host application version for the device block

        Returns:
            LogEvent stamped with the current time
        """
        timestamp = self.clock()

        parts: list[str] = []
        if label is not None:
            parts.append(label)
        parts.append(self.device_details(app_version))
        if phase is not None:
            parts.append(phase)
        if module is not None:
            parts.append(module)
        parts.append(datetime.fromtimestamp(timestamp / 1000).strftime(DATE_TIME_FORMAT))
        parts.append(message)

        return LogEvent(message=LOG_SEPARATOR.join(parts), timestamp=timestamp)
