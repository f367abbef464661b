"""
End-to-end tests for the CloudWatchLogger facade.

Uses the scripted FakeIngestionClient and a fixed DeviceInfo, with all
state kept in a temporary directory.
"""

import asyncio
from pathlib import Path

import pytest
from fakes import FakeIngestionClient

from cloudwatch_log_shipper import (
    CloudWatchLogger,
    DeviceInfo,
    LoggerClosedError,
    LogQueueFullError,
    ShipperConfig,
)
from cloudwatch_log_shipper.models import DEFAULT_GROUP_NAME, DEFAULT_STREAM_NAME
from cloudwatch_log_shipper.remote import Failed, InvalidToken


@pytest.fixture
def config(temp_dir: Path) -> ShipperConfig:
    return ShipperConfig(storage_dir=temp_dir)


def make_logger(
    config: ShipperConfig, client: FakeIngestionClient, device: DeviceInfo
) -> CloudWatchLogger:
    return CloudWatchLogger(config, client=client, device=device)


async def wait_until_uploaded(cw: CloudWatchLogger) -> None:
    async def poll() -> None:
        while await cw.get_saved_logs_count():
            await asyncio.sleep(0.01)

    await asyncio.wait_for(poll(), timeout=5)


class TestLogging:
    """Tests for recording log lines."""

    async def test_log_then_upload(
        self, config: ShipperConfig, fake_client: FakeIngestionClient, device: DeviceInfo
    ):
        async with make_logger(config, fake_client, device) as cw:
            cw.log("user signed in", label="INFO", module="auth")
            cw.log("payment failed", label="ERROR", phase="beta", module="checkout")

            result = await cw.upload_logs()

        assert result.uploaded_events == 2
        messages = [event.message for event in fake_client.put_calls[0].events]
        assert messages[0].startswith("INFO|Pixel 7|Google|34|dev-123||auth|")
        assert messages[0].endswith("|user signed in")
        assert messages[1].startswith("ERROR|Pixel 7|Google|34|dev-123||beta|checkout|")

    async def test_saved_logs_count(
        self, config: ShipperConfig, fake_client: FakeIngestionClient, device: DeviceInfo
    ):
        async with make_logger(config, fake_client, device) as cw:
            for i in range(3):
                cw.log(f"line {i}")

            assert await cw.get_saved_logs_count() == 3

            await cw.upload_logs()

            assert await cw.get_saved_logs_count() == 0

    async def test_log_async(
        self, config: ShipperConfig, fake_client: FakeIngestionClient, device: DeviceInfo
    ):
        async with make_logger(config, fake_client, device) as cw:
            await cw.log_async("queued", label="DEBUG")

            assert await cw.get_saved_logs_count() == 1

    async def test_lines_survive_restart(
        self, config: ShipperConfig, fake_client: FakeIngestionClient, device: DeviceInfo
    ):
        async with make_logger(config, fake_client, device) as cw:
            cw.log("before restart")

        async with make_logger(config, FakeIngestionClient(), device) as cw:
            assert await cw.get_saved_logs_count() == 1

    async def test_queue_full(self, temp_dir: Path, fake_client, device: DeviceInfo):
        config = ShipperConfig(storage_dir=temp_dir, queue_maxsize=1)

        async with make_logger(config, fake_client, device) as cw:
            cw.log("first")
            with pytest.raises(LogQueueFullError):
                cw.log("second")

    async def test_log_after_close(
        self, config: ShipperConfig, fake_client: FakeIngestionClient, device: DeviceInfo
    ):
        cw = await make_logger(config, fake_client, device).start()
        await cw.close()

        assert fake_client.closed
        with pytest.raises(LoggerClosedError):
            cw.log("too late")


class TestPreferences:
    """Tests for destination, app version and reset."""

    async def test_app_version_in_lines(
        self, config: ShipperConfig, fake_client: FakeIngestionClient, device: DeviceInfo
    ):
        async with make_logger(config, fake_client, device) as cw:
            await cw.set_app_version("2.4.1")
            cw.log("hello")
            await cw.upload_logs()

        assert fake_client.put_calls[0].events[0].message.startswith(
            "Pixel 7|Google|34|dev-123|2.4.1|"
        )

    async def test_app_version_loaded_on_start(
        self, config: ShipperConfig, fake_client: FakeIngestionClient, device: DeviceInfo
    ):
        async with make_logger(config, fake_client, device) as cw:
            await cw.set_app_version("3.0")

        async with make_logger(config, fake_client, device) as cw:
            cw.log("hello")
            await cw.upload_logs()

        assert "|3.0|" in fake_client.put_calls[0].events[0].message

    async def test_destination(
        self, config: ShipperConfig, fake_client: FakeIngestionClient, device: DeviceInfo
    ):
        async with make_logger(config, fake_client, device) as cw:
            await cw.set_log_group_name("payments")
            await cw.create_log_stream("device-1")
            cw.log("hello")
            await cw.upload_logs()

        assert fake_client.created_streams == [("payments", "device-1")]
        call = fake_client.put_calls[0]
        assert (call.group_name, call.stream_name) == ("payments", "device-1")

    async def test_create_log_group(
        self, config: ShipperConfig, fake_client: FakeIngestionClient, device: DeviceInfo
    ):
        async with make_logger(config, fake_client, device) as cw:
            await cw.create_log_group("payments")
            prefs = await cw.get_preferences()

        assert fake_client.created_groups == ["payments"]
        assert prefs.group_name == "payments"

    async def test_reset_preferences(
        self, config: ShipperConfig, fake_client: FakeIngestionClient, device: DeviceInfo
    ):
        async with make_logger(config, fake_client, device) as cw:
            await cw.set_log_group_name("payments")
            await cw.set_app_version("1.0")
            cw.log("hello")
            await cw.upload_logs()

            await cw.reset_logger_preferences()

            prefs = await cw.get_preferences()
            assert prefs.sequence_token is None
            assert prefs.group_name == DEFAULT_GROUP_NAME
            assert prefs.stream_name == DEFAULT_STREAM_NAME
            assert prefs.app_version is None

            cw.log("after reset")
            await cw.upload_logs()

        assert fake_client.put_calls[1].sequence_token is None
        assert "dev-123||" in fake_client.put_calls[1].events[0].message

    async def test_sequence_token_persists_between_uploads(
        self, config: ShipperConfig, fake_client: FakeIngestionClient, device: DeviceInfo
    ):
        async with make_logger(config, fake_client, device) as cw:
            cw.log("one")
            await cw.upload_logs()
            cw.log("two")
            await cw.upload_logs()

            assert (await cw.get_preferences()).sequence_token == "token-2"

        assert fake_client.put_calls[1].sequence_token == "token-1"


class TestAutoUpload:
    """Tests for the periodic upload loop."""

    async def test_uploads_periodically(
        self, config: ShipperConfig, fake_client: FakeIngestionClient, device: DeviceInfo
    ):
        async with make_logger(config, fake_client, device) as cw:
            await cw.start_auto_upload(interval_s=0.01)
            cw.log("first")

            await wait_until_uploaded(cw)
            await cw.stop_auto_upload()

        assert len(fake_client.put_calls) == 1

    async def test_errors_do_not_stop_the_loop(
        self, config: ShipperConfig, fake_client: FakeIngestionClient, device: DeviceInfo
    ):
        fake_client.script(Failed(ConnectionError("offline")), InvalidToken("a"), InvalidToken("b"))

        async with make_logger(config, fake_client, device) as cw:
            cw.log("eventually uploaded")
            await cw.start_auto_upload(interval_s=0.01)

            await wait_until_uploaded(cw)
            await cw.stop_auto_upload()

        assert len(fake_client.put_calls) == 4

    async def test_start_twice_keeps_one_loop(
        self, config: ShipperConfig, fake_client: FakeIngestionClient, device: DeviceInfo
    ):
        async with make_logger(config, fake_client, device) as cw:
            await cw.start_auto_upload(interval_s=60)
            task = cw._auto_upload_task
            await cw.start_auto_upload(interval_s=60)

            assert cw._auto_upload_task is task

        assert task.done()

    async def test_cancel_upload(
        self, config: ShipperConfig, fake_client: FakeIngestionClient, device: DeviceInfo
    ):
        async with make_logger(config, fake_client, device) as cw:
            cw.cancel_upload()

            assert not cw.engine.is_uploading
