"""
Amazon CloudWatch Logs client.

Wraps the blocking boto3 ``logs`` client:
- Calls run in a worker thread so the event loop is never blocked
- PutLogEvents rejections are mapped to UploadOutcome values
- Stream and group creation tolerate already-existing resources
"""

import asyncio
import logging
import os
import re
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError, EndpointConnectionError

from ..exceptions import RemoteConnectionError, RemoteRequestError
from ..models import LogEvent
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

logger = logging.getLogger(__name__)

# Error codes returned by the CloudWatch Logs API
RESOURCE_ALREADY_EXISTS = "ResourceAlreadyExistsException"

_EXPECTED_TOKEN_RE = re.compile(r"sequenceToken(?: is)?:\s*(\S+)")


@dataclass
class CloudWatchConfig:
    """Configuration for the CloudWatch Logs connection.

    Attributes:
        region: AWS region name
        endpoint_url: Override endpoint (e.g. a local emulator)
        profile: Named AWS credentials profile
        timeout: Connect/read timeout in seconds
        max_attempts: botocore retry attempts for throttling and 5xx errors
    """

    region: str | None = None
    endpoint_url: str | None = None
    profile: str | None = None
    timeout: float = 30.0
    max_attempts: int = 3

    @classmethod
    def from_env(cls) -> "CloudWatchConfig":
        """Create config from environment variables.

        Reads AWS_REGION (or AWS_DEFAULT_REGION), CW_SHIPPER_ENDPOINT_URL
        and AWS_PROFILE. Credentials follow the usual boto3 chain.
        """
        return cls(
            region=os.environ.get("AWS_REGION") or os.environ.get("AWS_DEFAULT_REGION"),
            endpoint_url=os.environ.get("CW_SHIPPER_ENDPOINT_URL"),
            profile=os.environ.get("AWS_PROFILE"),
        )


def _error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "")


def expected_sequence_token(error: ClientError) -> str | None:
    """Extract the service's expected sequence token from a rejection.

    botocore copies modeled error fields to the top of the response; older
    responses only carry the token inside the message text.
    """
    token = error.response.get("expectedSequenceToken")
    if token:
        return token
    message = error.response.get("Error", {}).get("Message", "")
    match = _EXPECTED_TOKEN_RE.search(message)
    if match and match.group(1) != "null":
        return match.group(1)
    return None


class CloudWatchLogsClient(LogIngestionClient):
    """LogIngestionClient backed by boto3's CloudWatch Logs client."""

    def __init__(self, config: CloudWatchConfig | None = None, client: Any | None = None):
        """Initialize the client.

        Args:
            config: Connection configuration
            client: Pre-built boto3 ``logs`` client (mainly for tests)
        """
        self.config = config or CloudWatchConfig()
        self._client = client

    def _get_client(self) -> Any:
        """Get or create the boto3 client."""
        if self._client is None:
            session = boto3.Session(
                profile_name=self.config.profile,
                region_name=self.config.region,
            )
            self._client = session.client(
                "logs",
                endpoint_url=self.config.endpoint_url,
                config=BotoConfig(
                    connect_timeout=self.config.timeout,
                    read_timeout=self.config.timeout,
                    retries={"max_attempts": self.config.max_attempts, "mode": "standard"},
                ),
            )
        return self._client

    @property
    def endpoint(self) -> str:
        return self.config.endpoint_url or f"logs.{self.config.region or 'default'}"

    async def put_events(
        self,
        group_name: str,
        stream_name: str,
        sequence_token: str | None,
        events: Sequence[LogEvent],
    ) -> UploadOutcome:
        request: dict[str, Any] = {
            "logGroupName": group_name,
            "logStreamName": stream_name,
            "logEvents": [event.to_dict() for event in events],
        }
        if sequence_token is not None:
            request["sequenceToken"] = sequence_token

        try:
            response = await asyncio.to_thread(self._get_client().put_log_events, **request)
        except ClientError as e:
            return self._classify(e)
        except EndpointConnectionError as e:
            return Failed(RemoteConnectionError(self.endpoint, e))
        except BotoCoreError as e:
            return Failed(e)

        rejected = response.get("rejectedLogEventsInfo")
        if rejected:
            logger.warning(f"CloudWatch rejected part of batch for {group_name}/{stream_name}: {rejected}")

        return Accepted(next_token=response.get("nextSequenceToken"))

    def _classify(self, error: ClientError) -> UploadOutcome:
        match _error_code(error):
            case "InvalidSequenceTokenException":
                return InvalidToken(expected_token=expected_sequence_token(error))
            case "DataAlreadyAcceptedException":
                return AlreadyAccepted(expected_token=expected_sequence_token(error))
            case "ResourceNotFoundException":
                return StreamNotFound(message=str(error))
            case "InvalidParameterException":
                return InvalidOrdering(reason=str(error))
            case _:
                return Failed(error)

    async def _create(self, operation: str, **params: str) -> bool:
        """Run a create call; False when the resource already existed.

        Raises:
            RemoteConnectionError: If the endpoint cannot be reached
            RemoteRequestError: If the service rejects the request
        """
        try:
            await asyncio.to_thread(getattr(self._get_client(), operation), **params)
        except ClientError as e:
            code = _error_code(e)
            if code == RESOURCE_ALREADY_EXISTS:
                return False
            raise RemoteRequestError(operation, code, e) from e
        except EndpointConnectionError as e:
            raise RemoteConnectionError(self.endpoint, e) from e
        except BotoCoreError as e:
            raise RemoteRequestError(operation, type(e).__name__, e) from e
        return True

    async def create_stream(self, group_name: str, stream_name: str) -> None:
        if await self._create(
            "create_log_stream", logGroupName=group_name, logStreamName=stream_name
        ):
            logger.info(f"Created log stream {group_name}/{stream_name}")
        else:
            logger.debug(f"Log stream {group_name}/{stream_name} already exists")

    async def create_group(self, group_name: str) -> None:
        if await self._create("create_log_group", logGroupName=group_name):
            logger.info(f"Created log group {group_name}")
        else:
            logger.debug(f"Log group {group_name} already exists")

    async def close(self) -> None:
        if self._client is not None:
            await asyncio.to_thread(self._client.close)
            self._client = None
