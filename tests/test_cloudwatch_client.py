"""
Tests for the CloudWatch Logs client.

Uses a mocked boto3 client so no AWS calls are made.
"""

from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError, NoCredentialsError
from fakes import T0, make_events

from cloudwatch_log_shipper.exceptions import RemoteConnectionError, RemoteRequestError
from cloudwatch_log_shipper.remote import (
    Accepted,
    AlreadyAccepted,
    CloudWatchConfig,
    CloudWatchLogsClient,
    Failed,
    InvalidOrdering,
    InvalidToken,
    StreamNotFound,
    expected_sequence_token,
)


def client_error(code: str, message: str = "", **extra) -> ClientError:
    response = {"Error": {"Code": code, "Message": message}, **extra}
    return ClientError(response, "PutLogEvents")


@pytest.fixture
def boto_client() -> MagicMock:
    return MagicMock()


@pytest.fixture
def client(boto_client: MagicMock) -> CloudWatchLogsClient:
    return CloudWatchLogsClient(CloudWatchConfig(region="eu-west-1"), client=boto_client)


class TestExpectedSequenceToken:
    """Tests for expected_sequence_token."""

    def test_from_response_field(self):
        error = client_error(
            "InvalidSequenceTokenException",
            "The given sequenceToken is invalid.",
            expectedSequenceToken="4959",
        )
        assert expected_sequence_token(error) == "4959"

    def test_from_message(self):
        error = client_error(
            "InvalidSequenceTokenException",
            "The given sequenceToken is invalid. The next expected sequenceToken is: 4960",
        )
        assert expected_sequence_token(error) == "4960"

    def test_already_accepted_message(self):
        error = client_error(
            "DataAlreadyAcceptedException",
            "The given batch of log events has already been accepted. "
            "The next batch can be sent with sequenceToken: 4961",
        )
        assert expected_sequence_token(error) == "4961"

    def test_null_token(self):
        error = client_error(
            "InvalidSequenceTokenException",
            "The next expected sequenceToken is: null",
        )
        assert expected_sequence_token(error) is None

    def test_no_token(self):
        assert expected_sequence_token(client_error("InvalidSequenceTokenException")) is None


class TestPutEvents:
    """Tests for CloudWatchLogsClient.put_events."""

    async def test_accepted(self, client: CloudWatchLogsClient, boto_client: MagicMock):
        boto_client.put_log_events.return_value = {"nextSequenceToken": "next-1"}
        events = make_events(2)

        outcome = await client.put_events("group", "stream", "tok", events)

        assert outcome == Accepted(next_token="next-1")
        boto_client.put_log_events.assert_called_once_with(
            logGroupName="group",
            logStreamName="stream",
            logEvents=[
                {"message": "line-0", "timestamp": T0},
                {"message": "line-1", "timestamp": T0 + 1},
            ],
            sequenceToken="tok",
        )

    async def test_first_upload_sends_no_token(
        self, client: CloudWatchLogsClient, boto_client: MagicMock
    ):
        boto_client.put_log_events.return_value = {}

        outcome = await client.put_events("group", "stream", None, make_events(1))

        assert outcome == Accepted(next_token=None)
        assert "sequenceToken" not in boto_client.put_log_events.call_args.kwargs

    async def test_partially_rejected_batch_is_accepted(
        self, client: CloudWatchLogsClient, boto_client: MagicMock
    ):
        boto_client.put_log_events.return_value = {
            "nextSequenceToken": "next-2",
            "rejectedLogEventsInfo": {"tooOldLogEventEndIndex": 0},
        }

        outcome = await client.put_events("group", "stream", None, make_events(2))

        assert outcome == Accepted(next_token="next-2")

    @pytest.mark.parametrize(
        "error,expected",
        [
            (
                client_error("InvalidSequenceTokenException", expectedSequenceToken="exp"),
                InvalidToken(expected_token="exp"),
            ),
            (
                client_error("DataAlreadyAcceptedException", expectedSequenceToken="exp"),
                AlreadyAccepted(expected_token="exp"),
            ),
        ],
    )
    async def test_token_rejections(
        self, client: CloudWatchLogsClient, boto_client: MagicMock, error, expected
    ):
        boto_client.put_log_events.side_effect = error

        outcome = await client.put_events("group", "stream", "old", make_events(1))

        assert outcome == expected

    async def test_missing_stream(self, client: CloudWatchLogsClient, boto_client: MagicMock):
        boto_client.put_log_events.side_effect = client_error(
            "ResourceNotFoundException", "The specified log stream does not exist."
        )

        outcome = await client.put_events("group", "stream", None, make_events(1))

        assert isinstance(outcome, StreamNotFound)

    async def test_invalid_ordering(self, client: CloudWatchLogsClient, boto_client: MagicMock):
        boto_client.put_log_events.side_effect = client_error(
            "InvalidParameterException",
            "Log events in a single PutLogEvents request must be in chronological order.",
        )

        outcome = await client.put_events("group", "stream", None, make_events(1))

        assert isinstance(outcome, InvalidOrdering)
        assert "chronological" in outcome.reason

    async def test_other_client_error(self, client: CloudWatchLogsClient, boto_client: MagicMock):
        error = client_error("ThrottlingException", "Rate exceeded")
        boto_client.put_log_events.side_effect = error

        outcome = await client.put_events("group", "stream", None, make_events(1))

        assert outcome == Failed(error)

    async def test_connection_error(self, client: CloudWatchLogsClient, boto_client: MagicMock):
        boto_client.put_log_events.side_effect = EndpointConnectionError(
            endpoint_url="https://logs.eu-west-1.amazonaws.com"
        )

        outcome = await client.put_events("group", "stream", None, make_events(1))

        assert isinstance(outcome, Failed)
        assert isinstance(outcome.error, RemoteConnectionError)


class TestCreateStream:
    """Tests for stream and group creation."""

    async def test_create_stream(self, client: CloudWatchLogsClient, boto_client: MagicMock):
        await client.create_stream("group", "stream")

        boto_client.create_log_stream.assert_called_once_with(
            logGroupName="group", logStreamName="stream"
        )

    async def test_existing_stream_is_fine(
        self, client: CloudWatchLogsClient, boto_client: MagicMock
    ):
        boto_client.create_log_stream.side_effect = client_error(
            "ResourceAlreadyExistsException"
        )

        await client.create_stream("group", "stream")

    async def test_other_errors_are_wrapped(
        self, client: CloudWatchLogsClient, boto_client: MagicMock
    ):
        boto_client.create_log_stream.side_effect = client_error("AccessDeniedException")

        with pytest.raises(RemoteRequestError) as exc_info:
            await client.create_stream("group", "stream")
        assert exc_info.value.operation == "create_log_stream"
        assert exc_info.value.code == "AccessDeniedException"
        assert isinstance(exc_info.value.cause, ClientError)

    async def test_missing_credentials_are_wrapped(
        self, client: CloudWatchLogsClient, boto_client: MagicMock
    ):
        boto_client.create_log_group.side_effect = NoCredentialsError()

        with pytest.raises(RemoteRequestError) as exc_info:
            await client.create_group("group")
        assert exc_info.value.code == "NoCredentialsError"

    async def test_unreachable_endpoint(self, client: CloudWatchLogsClient, boto_client: MagicMock):
        boto_client.create_log_stream.side_effect = EndpointConnectionError(
            endpoint_url="https://logs.eu-west-1.amazonaws.com"
        )

        with pytest.raises(RemoteConnectionError):
            await client.create_stream("group", "stream")

    async def test_create_group_tolerates_existing(
        self, client: CloudWatchLogsClient, boto_client: MagicMock
    ):
        boto_client.create_log_group.side_effect = client_error(
            "ResourceAlreadyExistsException"
        )

        await client.create_group("group")

        boto_client.create_log_group.assert_called_once_with(logGroupName="group")


class TestClientLifecycle:
    """Tests for building and closing the boto3 client."""

    async def test_builds_client_lazily(self):
        config = CloudWatchConfig(
            region="eu-west-1", endpoint_url="http://localhost:4566", profile="dev"
        )

        with patch("cloudwatch_log_shipper.remote.cloudwatch.boto3.Session") as session_cls:
            client = CloudWatchLogsClient(config)
            session_cls.assert_not_called()

            boto_client = client._get_client()

        session_cls.assert_called_once_with(profile_name="dev", region_name="eu-west-1")
        args, kwargs = session_cls.return_value.client.call_args
        assert args == ("logs",)
        assert kwargs["endpoint_url"] == "http://localhost:4566"
        assert boto_client is session_cls.return_value.client.return_value

    async def test_close(self, client: CloudWatchLogsClient, boto_client: MagicMock):
        await client.close()

        boto_client.close.assert_called_once()

    def test_config_from_env(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("AWS_REGION", "us-east-2")
        monkeypatch.setenv("CW_SHIPPER_ENDPOINT_URL", "http://localhost:4566")
        monkeypatch.delenv("AWS_PROFILE", raising=False)

        config = CloudWatchConfig.from_env()

        assert config.region == "us-east-2"
        assert config.endpoint_url == "http://localhost:4566"
        assert config.profile is None
