"""
Device metadata attached to every log line.

Collects the hardware model, manufacturer, OS version and a persistent
device ID. Values that cannot be determined on this host are reported as
empty strings.
"""

import platform
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any

DEVICE_ID_FILE_NAME = ".device_id"

# Linux exposes the board vendor/model through DMI
_DMI_DIR = Path("/sys/class/dmi/id")


@dataclass(frozen=True)
class DeviceInfo:
    """Information about the device the logs come from."""

    model: str = ""
    manufacturer: str = ""
    os_version: str = ""
    device_id: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "model": self.model,
            "manufacturer": self.manufacturer,
            "os_version": self.os_version,
            "device_id": self.device_id,
        }


def get_device_id(storage_dir: Path) -> str:
    """Get or create persistent device ID.

    The device ID is stored in {storage_dir}/.device_id
    and persists across runs.
    """
    device_file = Path(storage_dir) / DEVICE_ID_FILE_NAME

    if device_file.exists():
        device_id = device_file.read_text().strip()
        if device_id:
            return device_id

    device_id = str(uuid.uuid4())

    device_file.parent.mkdir(parents=True, exist_ok=True)
    device_file.write_text(device_id)

    return device_id


def _read_dmi(name: str) -> str:
    try:
        return (_DMI_DIR / name).read_text().strip()
    except OSError:
        return ""


def collect_device_info(storage_dir: Path) -> DeviceInfo:
    """Collect device metadata for this host.

    Args:
        storage_dir: Directory where the device ID is persisted

    Returns:
        DeviceInfo with empty strings for unavailable fields
    """
    return DeviceInfo(
        model=_read_dmi("product_name") or platform.machine(),
        manufacturer=_read_dmi("sys_vendor"),
        os_version=platform.release(),
        device_id=get_device_id(storage_dir),
    )
