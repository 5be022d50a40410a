"""Immutable data models and configuration for hardware sessions.

These models are the contract between the device layer, the session
coordinator and the application.
"""
from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple

# Tag prefixed to every diagnostic written to the output sink
COMPONENT_TAG = "hw-session"

DEFAULT_VENDOR_ID = 0x1209
DEFAULT_PRODUCT_IDS = (0x53C1,)
DEFAULT_BOOTLOADER_PRODUCT_IDS = (0x53C0,)
DEFAULT_BAUDRATE = 115200
DEFAULT_POLL_INTERVAL = 0.5  # seconds
DEFAULT_WAITING_MESSAGE_DELAY = 1.0  # seconds


def stderr_out(*parts: Any) -> None:
    """Default output sink: space-joined parts on standard error."""
    print(*parts, file=sys.stderr, flush=True)


@dataclass(frozen=True)
class DeviceFeatures:
    """Feature metadata reported by an attached device.

    Attributes:
        label: Human readable device label
        device_id: Stable identifier (serial number or hwid)
        vendor_id: USB Vendor ID, if known
        product_id: USB Product ID, if known
        bootloader_mode: Whether the device booted into its bootloader
    """
    label: str
    device_id: str = ""
    vendor_id: Optional[int] = None
    product_id: Optional[int] = None
    bootloader_mode: bool = False


@dataclass(frozen=True)
class DeviceListConfig:
    """Configuration for the serial device enumeration.

    Attributes:
        vendor_id: USB VID to match, or None for any
        product_ids: USB PIDs of devices in normal mode
        bootloader_product_ids: USB PIDs reported while in bootloader mode
        product_substring: Case-insensitive substring of the product string
        port: Fixed serial port to watch instead of matching by VID/PID
        baudrate: Serial baud rate used when claiming a device
        timeout: Serial read timeout in seconds
        poll_interval: Seconds between enumeration passes
        exclusive: Request exclusive access to the port (POSIX only)
    """
    vendor_id: Optional[int] = DEFAULT_VENDOR_ID
    product_ids: Tuple[int, ...] = DEFAULT_PRODUCT_IDS
    bootloader_product_ids: Tuple[int, ...] = DEFAULT_BOOTLOADER_PRODUCT_IDS
    product_substring: Optional[str] = None
    port: Optional[str] = None
    baudrate: int = DEFAULT_BAUDRATE
    timeout: float = 0.1
    poll_interval: float = DEFAULT_POLL_INTERVAL
    exclusive: bool = True

    @property
    def all_product_ids(self) -> Tuple[int, ...]:
        return tuple(self.product_ids) + tuple(self.bootloader_product_ids)


@dataclass
class SessionConfig:
    """Options recognised by ``create_session``.

    Collaborators left as None are replaced with the serial defaults
    when the session is created.

    Attributes:
        device_list_config: Passed verbatim to ``device_list_factory``
        out: Output sink, called as ``out(*parts)``
        on_connect: Hook called last on every usable connect, may
            replace the default interaction handlers
        device_list_factory: Builds the enumeration collaborator
        line_prompt: Line prompt used by the interactive adapters
        acquire_policy: Decides whether to steal an unacquired device
        waiting_message_delay: Seconds before "Looking for a device.."
        auto_start: Start enumeration as soon as the session is created
    """
    device_list_config: Any = None
    out: Callable[..., None] = stderr_out
    on_connect: Optional[Callable[[Any], None]] = None
    device_list_factory: Optional[Callable[[Any], Any]] = None
    line_prompt: Any = None
    acquire_policy: Optional[Callable[..., Any]] = None
    waiting_message_delay: Optional[float] = DEFAULT_WAITING_MESSAGE_DELAY
    auto_start: bool = True
