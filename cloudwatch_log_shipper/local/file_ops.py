"""
JSONL file operations for local storage.

Provides atomic read/write operations for JSONL files with:
- Atomic writes using temp file + rename
- Line-by-line reading for memory efficiency
- fsync on every append so an acknowledged record survives a crash
"""

import json
import os
import tempfile
from collections.abc import AsyncIterator, Iterable
from pathlib import Path
from typing import Any

import aiofiles
import aiofiles.os

from ..exceptions import StorageIOError


async def ensure_directory(path: Path) -> None:
    """Ensure directory exists, creating if necessary.

    Args:
        path: Directory path to ensure exists
    """
    try:
        await aiofiles.os.makedirs(path, exist_ok=True)
    except OSError as e:
        raise StorageIOError("create_directory", str(path), e) from e


async def read_json(path: Path) -> dict[str, Any] | None:
    """Read a JSON file.

    Args:
        path: Path to JSON file

    Returns:
        Parsed JSON data or None if file doesn't exist
    """
    try:
        if not await aiofiles.os.path.exists(path):
            return None
        async with aiofiles.open(path, encoding="utf-8") as f:
            content = await f.read()
            return json.loads(content) if content.strip() else None
    except json.JSONDecodeError as e:
        raise StorageIOError("parse_json", str(path), e) from e
    except OSError as e:
        raise StorageIOError("read_json", str(path), e) from e


async def write_json_atomic(path: Path, data: dict[str, Any]) -> None:
    """Write JSON file atomically using temp file + rename.

    Args:
        path: Target path for JSON file
        data: Data to serialize as JSON
    """
    await ensure_directory(path.parent)

    fd, temp_path = tempfile.mkstemp(
        dir=path.parent,
        prefix=".tmp_",
        suffix=".json",
    )
    try:
        os.close(fd)
        async with aiofiles.open(temp_path, "w", encoding="utf-8") as f:
            await f.write(json.dumps(data, indent=2))
            await f.flush()
            os.fsync(f.fileno())

        await aiofiles.os.replace(temp_path, path)
    except Exception as e:
        try:
            await aiofiles.os.remove(temp_path)
        except OSError:
            pass
        raise StorageIOError("write_json", str(path), e) from e


async def iter_jsonl(path: Path) -> AsyncIterator[dict[str, Any]]:
    """Iterate over lines in a JSONL file without loading all into memory.

    Args:
        path: Path to JSONL file

    Yields:
        Parsed JSON objects one at a time
    """
    try:
        if not await aiofiles.os.path.exists(path):
            return

        async with aiofiles.open(path, encoding="utf-8") as f:
            async for line in f:
                line = line.strip()
                if line:
                    yield json.loads(line)
    except json.JSONDecodeError as e:
        raise StorageIOError("parse_jsonl", str(path), e) from e
    except OSError as e:
        raise StorageIOError("read_jsonl", str(path), e) from e


async def read_jsonl(path: Path) -> list[dict[str, Any]]:
    """Read all lines from a JSONL file.

    Args:
        path: Path to JSONL file

    Returns:
        List of parsed JSON objects
    """
    return [item async for item in iter_jsonl(path)]


async def count_jsonl(path: Path) -> int:
    """Count the non-blank lines of a JSONL file without parsing them.

    Args:
        path: Path to JSONL file

    Returns:
        Number of records, 0 if the file doesn't exist
    """
    try:
        if not await aiofiles.os.path.exists(path):
            return 0

        count = 0
        async with aiofiles.open(path, encoding="utf-8") as f:
            async for line in f:
                if line.strip():
                    count += 1
        return count
    except OSError as e:
        raise StorageIOError("count_jsonl", str(path), e) from e


async def append_jsonl(path: Path, data: dict[str, Any]) -> None:
    """Append a single JSON object to a JSONL file.

    Args:
        path: Path to JSONL file
        data: Data to append
    """
    await ensure_directory(path.parent)

    try:
        async with aiofiles.open(path, "a", encoding="utf-8") as f:
            await f.write(json.dumps(data, ensure_ascii=False) + "\n")
            await f.flush()
            os.fsync(f.fileno())
    except OSError as e:
        raise StorageIOError("append_jsonl", str(path), e) from e


async def write_jsonl_atomic(
    path: Path,
    data: Iterable[dict[str, Any]],
    temp_path: Path | None = None,
) -> None:
    """Write entire JSONL file atomically.

    The content is written to a staging file first, then swapped over
    ``path`` with a single rename, so readers see either the old or the
    new file and never a partial one.

    Args:
        path: Target path for JSONL file
        data: Objects to write, one per line
        temp_path: Staging file to use. A unique temp file in the same
                   directory is created when omitted.
    """
    await ensure_directory(path.parent)

    if temp_path is None:
        fd, staging = tempfile.mkstemp(
            dir=path.parent,
            prefix=".tmp_",
            suffix=".jsonl",
        )
        os.close(fd)
    else:
        staging = str(temp_path)

    try:
        async with aiofiles.open(staging, "w", encoding="utf-8") as f:
            for item in data:
                await f.write(json.dumps(item, ensure_ascii=False) + "\n")
            await f.flush()
            os.fsync(f.fileno())

        await aiofiles.os.replace(staging, path)
    except Exception as e:
        try:
            await aiofiles.os.remove(staging)
        except OSError:
            pass
        raise StorageIOError("write_jsonl", str(path), e) from e


async def remove_file(path: Path) -> bool:
    """Remove a file if it exists.

    Args:
        path: Path to remove

    Returns:
        True if file was removed, False if it didn't exist
    """
    try:
        if await aiofiles.os.path.exists(path):
            await aiofiles.os.remove(path)
            return True
        return False
    except OSError as e:
        raise StorageIOError("remove", str(path), e) from e
