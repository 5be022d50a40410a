"""Device layer: interfaces plus a USB serial reference implementation.

This module provides:
- Device handle and enumeration interfaces (DeviceHandle, DeviceList)
- USB serial device handle with a serialized session slot (SerialDevice)
- Polling enumeration over pyserial's port list (SerialDeviceList)
- Device discovery utilities (find_single_device, find_devices)
"""

from .base import DeviceHandle, DeviceList
from .serial_device import DeviceSession, SerialDevice
from .device_list import SerialDeviceList
from .finder import (
    DeviceInfo,
    DeviceNotFoundError,
    MultipleDevicesError,
    find_devices,
    find_single_device,
    is_matching_device,
    is_device_available,
)

__all__ = [
    # Interfaces
    'DeviceHandle',
    'DeviceList',

    # Serial implementation
    'DeviceSession',
    'SerialDevice',
    'SerialDeviceList',

    # Finder
    'DeviceInfo',
    'DeviceNotFoundError',
    'MultipleDevicesError',
    'find_devices',
    'find_single_device',
    'is_matching_device',
    'is_device_available',
]
