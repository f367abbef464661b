"""
Persistent logger preferences.

Keeps the upload sequence token, the destination group and stream names
and the host application's version in one small JSON document. Every
change rewrites the document atomically, so a reset is never observed
half done.
"""

import asyncio
from pathlib import Path
from typing import Any

from ..models import DEFAULT_GROUP_NAME, DEFAULT_STREAM_NAME, LoggerPreferences
from .file_ops import read_json, write_json_atomic

PREFERENCES_FILE_NAME = "logger_preferences.json"

KEY_SEQUENCE_TOKEN = "sequence_token"
KEY_GROUP_NAME = "group_name"
KEY_STREAM_NAME = "stream_name"
KEY_APP_VERSION = "app_version"


class TokenStore:
    """Key-value store for the upload token and destination names."""

    def __init__(
        self,
        storage_dir: Path,
        default_group_name: str = DEFAULT_GROUP_NAME,
        default_stream_name: str = DEFAULT_STREAM_NAME,
    ):
        """Initialize the token store.

        Args:
            storage_dir: Directory holding the preferences file
            default_group_name: Group name returned when none is set
            default_stream_name: Stream name returned when none is set
        """
        self.path = Path(storage_dir) / PREFERENCES_FILE_NAME
        self.default_group_name = default_group_name
        self.default_stream_name = default_stream_name
        self._values: dict[str, Any] | None = None
        self._lock = asyncio.Lock()

    async def _load(self) -> dict[str, Any]:
        if self._values is None:
            self._values = await read_json(self.path) or {}
        return self._values

    async def _get(self, key: str, default: str | None = None) -> str | None:
        async with self._lock:
            values = await self._load()
            return values.get(key, default)

    async def _set(self, key: str, value: str | None) -> None:
        async with self._lock:
            values = dict(await self._load())
            if value is None:
                values.pop(key, None)
            else:
                values[key] = value
            await write_json_atomic(self.path, values)
            self._values = values

    # Sequence token

    async def get_sequence_token(self) -> str | None:
        return await self._get(KEY_SEQUENCE_TOKEN)

    async def set_sequence_token(self, token: str | None) -> None:
        await self._set(KEY_SEQUENCE_TOKEN, token)

    async def clear_sequence_token(self) -> None:
        await self._set(KEY_SEQUENCE_TOKEN, None)

    # Destination

    async def get_group_name(self) -> str:
        return await self._get(KEY_GROUP_NAME, self.default_group_name)

    async def set_group_name(self, name: str) -> None:
        await self._set(KEY_GROUP_NAME, name)

    async def get_stream_name(self) -> str:
        return await self._get(KEY_STREAM_NAME, self.default_stream_name)

    async def set_stream_name(self, name: str) -> None:
        await self._set(KEY_STREAM_NAME, name)

    # App version

    async def get_app_version(self) -> str | None:
        return await self._get(KEY_APP_VERSION)

    async def set_app_version(self, version: str | None) -> None:
        await self._set(KEY_APP_VERSION, version)

    async def snapshot(self) -> LoggerPreferences:
        """Read all four values at once."""
        async with self._lock:
            values = await self._load()
            return LoggerPreferences(
                sequence_token=values.get(KEY_SEQUENCE_TOKEN),
                group_name=values.get(KEY_GROUP_NAME, self.default_group_name),
                stream_name=values.get(KEY_STREAM_NAME, self.default_stream_name),
                app_version=values.get(KEY_APP_VERSION),
            )

    async def reset_preferences(self) -> None:
        """Clear the token, names and app version in a single write."""
        async with self._lock:
            await write_json_atomic(self.path, {})
            self._values = {}
