"""
Log ingestion client interface and upload outcomes.

A client submits one batch and reports what the service said as an
``UploadOutcome`` value instead of raising. The upload engine matches on
the outcome to pick a recovery action.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass

from ..models import LogEvent


@dataclass(frozen=True)
class Accepted:
    """The batch was stored; ``next_token`` goes with the next submission."""

    next_token: str | None


@dataclass(frozen=True)
class InvalidToken:
    """The sequence token was stale; the service expects ``expected_token``."""

    expected_token: str | None


@dataclass(frozen=True)
class AlreadyAccepted:
    """The batch had already been stored by an earlier submission."""

    expected_token: str | None


@dataclass(frozen=True)
class StreamNotFound:
    """The destination group or stream does not exist."""

    message: str = ""


@dataclass(frozen=True)
class InvalidOrdering:
    """The service rejected the batch's timestamps or ordering."""

    reason: str = ""


@dataclass(frozen=True)
class Failed:
    """Any other failure, including timeouts and connection errors."""

    error: Exception


UploadOutcome = Accepted | InvalidToken | AlreadyAccepted | StreamNotFound | InvalidOrdering | Failed


class LogIngestionClient(ABC):
    """Abstract client for a remote log ingestion service."""

    @abstractmethod
    async def put_events(
        self,
        group_name: str,
        stream_name: str,
        sequence_token: str | None,
        events: Sequence[LogEvent],
    ) -> UploadOutcome:
        """Submit one batch of events.

        Args:
            group_name: Destination log group
            stream_name: Destination log stream
            sequence_token: Token from the previous accepted call, if any
            events: Events in timestamp order

        Returns:
            Outcome describing acceptance or the kind of rejection
        """

    @abstractmethod
    async def create_stream(self, group_name: str, stream_name: str) -> None:
        """Create a log stream; succeeds if it already exists."""

    @abstractmethod
    async def create_group(self, group_name: str) -> None:
        """Create a log group; succeeds if it already exists."""

    async def close(self) -> None:
        """Release client resources."""
