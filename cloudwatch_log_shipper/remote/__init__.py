"""
Remote log ingestion clients.

- LogIngestionClient: interface the upload engine talks to
- CloudWatchLogsClient: Amazon CloudWatch Logs implementation (boto3)
- UploadOutcome: result of one batch submission
"""

from .base import (
    Accepted,
    AlreadyAccepted,
    Failed,
    InvalidOrdering,
    InvalidToken,
    LogIngestionClient,
    StreamNotFound,
    UploadOutcome,
)
from .cloudwatch import CloudWatchConfig, CloudWatchLogsClient, expected_sequence_token

__all__ = [
    "LogIngestionClient",
    "CloudWatchLogsClient",
    "CloudWatchConfig",
    "expected_sequence_token",
    # Outcomes
    "UploadOutcome",
    "Accepted",
    "InvalidToken",
    "AlreadyAccepted",
    "StreamNotFound",
    "InvalidOrdering",
    "Failed",
]
