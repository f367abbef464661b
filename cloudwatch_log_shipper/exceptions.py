"""
Custom exceptions for the log shipper.

Storage, queueing and upload components raise these exceptions
so callers can tell recoverable local failures from remote ones.
"""


class LogShipperError(Exception):
    """Base exception for all log shipper errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class StorageIOError(LogShipperError):
    """Raised when a local storage I/O operation fails."""

    def __init__(self, operation: str, path: str | None = None, cause: Exception | None = None):
        details = {"operation": operation}
        if path:
            details["path"] = path
        if cause:
            details["cause"] = str(cause)
        message = f"Storage I/O error during {operation}"
        if path:
            message += f": {path}"
        super().__init__(message, details)
        self.operation = operation
        self.path = path
        self.cause = cause


class LogQueueFullError(LogShipperError):
    """Raised when the pending-write queue cannot accept another record."""

    def __init__(self, maxsize: int):
        super().__init__(
            f"Log write queue is full ({maxsize} records pending)",
            {"maxsize": maxsize},
        )
        self.maxsize = maxsize


class LoggerClosedError(LogShipperError):
    """Raised when logging or flushing after the logger was closed."""

    def __init__(self) -> None:
        super().__init__("Logger is closed")


class UploadError(LogShipperError):
    """Raised when an upload cycle fails in a way it cannot recover from.

    Events that were not confirmed stay in the local store and are
    retried by the next cycle.
    """

    def __init__(self, message: str, kind: str = "failed", cause: Exception | None = None):
        details: dict = {"kind": kind}
        if cause:
            details["cause"] = str(cause)
        super().__init__(message, details)
        self.kind = kind
        self.cause = cause


class ConfigurationError(LogShipperError):
    """Raised when shipper configuration is invalid."""

    def __init__(self, field: str, reason: str, value: str | None = None):
        details = {"field": field, "reason": reason}
        if value is not None:
            details["value"] = value
        super().__init__(f"Invalid configuration for {field}: {reason}", details)
        self.field = field
        self.reason = reason
        self.value = value


class RemoteConnectionError(LogShipperError):
    """Raised when the log ingestion service cannot be reached.

    Note: Named RemoteConnectionError to avoid shadowing the builtin ConnectionError.
    """

    def __init__(self, endpoint: str, cause: Exception | None = None):
        details = {"endpoint": endpoint}
        if cause:
            details["cause"] = str(cause)
        super().__init__(f"Connection failed to {endpoint}", details)
        self.endpoint = endpoint
        self.cause = cause


class RemoteRequestError(LogShipperError):
    """Raised when the log ingestion service rejects a management request.

    ``code`` is the service's error code, e.g. ``AccessDeniedException``.
    """

    def __init__(self, operation: str, code: str, cause: Exception | None = None):
        details = {"operation": operation, "code": code}
        if cause:
            details["cause"] = str(cause)
        super().__init__(f"{operation} failed: {code or cause}", details)
        self.operation = operation
        self.code = code
        self.cause = cause
