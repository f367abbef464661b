"""
Shared test configuration and fixtures.

Stores are backed by a fresh temporary directory per test; uploads go to
the scripted FakeIngestionClient from fakes.py.
"""

import tempfile
from collections.abc import Iterator
from pathlib import Path

import pytest
from fakes import FakeIngestionClient

from cloudwatch_log_shipper import DeviceInfo, LocalEventStore, TokenStore


@pytest.fixture
def temp_dir() -> Iterator[Path]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def event_store(temp_dir: Path) -> LocalEventStore:
    return LocalEventStore(temp_dir)


@pytest.fixture
def token_store(temp_dir: Path) -> TokenStore:
    return TokenStore(temp_dir)


@pytest.fixture
def fake_client() -> FakeIngestionClient:
    return FakeIngestionClient()


@pytest.fixture
def device() -> DeviceInfo:
    return DeviceInfo(
        model="Pixel 7",
        manufacturer="Google",
        os_version="34",
        device_id="dev-123",
    )
