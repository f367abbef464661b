"""
Splitting pending events into upload batches.

PutLogEvents accepts at most 10,000 events per call and rejects a call
whose events span more than 24 hours. Pending events are therefore cut
into windows anchored at the oldest remaining event, and each window into
chunks of ``batch_size`` events.
"""

from collections.abc import Sequence

from ..models import Batch, LogEvent

BATCH_SIZE = 5000
BATCH_WINDOW_MS = 24 * 60 * 60 * 1000


def split_into_batches(
    events: Sequence[LogEvent],
    batch_size: int = BATCH_SIZE,
    window_ms: int = BATCH_WINDOW_MS,
) -> list[Batch]:
    """Partition events into ordered, size- and time-bounded batches.

    The first remaining event anchors a window ``[start, start + window_ms]``.
    Every remaining event inside the window is taken, in order, and chunked
    into batches of at most ``batch_size``. The rest is partitioned the same
    way until nothing is left.

    Args:
        events: Pending events, oldest first
        batch_size: Maximum events per batch
        window_ms: Maximum timestamp span of one batch

    Returns:
        Batches in upload order; empty if there are no events
    """
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")

    batches: list[Batch] = []
    remaining = list(events)

    while remaining:
        window_end = remaining[0].timestamp + window_ms

        within: list[LogEvent] = []
        beyond: list[LogEvent] = []
        for event in remaining:
            (within if event.timestamp <= window_end else beyond).append(event)

        for start in range(0, len(within), batch_size):
            batches.append(within[start : start + batch_size])

        remaining = beyond

    return batches
