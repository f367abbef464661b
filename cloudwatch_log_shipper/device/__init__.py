"""Device metadata for log lines."""

from .info import DEVICE_ID_FILE_NAME, DeviceInfo, collect_device_info, get_device_id

__all__ = [
    "DeviceInfo",
    "collect_device_info",
    "get_device_id",
    "DEVICE_ID_FILE_NAME",
]
