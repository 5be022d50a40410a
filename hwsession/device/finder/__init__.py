from .core import (
    DeviceInfo,
    find_devices,
    find_single_device,
    is_matching_device,
    is_device_available,
)
from .errors import DeviceNotFoundError, MultipleDevicesError

__all__ = [
    "DeviceInfo",
    "find_devices",
    "find_single_device",
    "is_matching_device",
    "is_device_available",
    "DeviceNotFoundError",
    "MultipleDevicesError",
]
