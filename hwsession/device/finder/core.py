from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional

from serial.tools import list_ports

from .errors import DeviceNotFoundError, MultipleDevicesError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeviceInfo:
    """
    One USB serial device as seen by pyserial.

    Attributes:
        port: Port name to open with pyserial (e.g. 'COM3', '/dev/ttyACM0').
        vid: USB Vendor ID (integer) or None if unknown.
        pid: USB Product ID (integer) or None if unknown.
        manufacturer: USB manufacturer string, if available.
        product: USB product string, if available.
        serial_number: USB serial string, if available.
        hwid: Raw hardware ID string from pyserial (for debugging).
    """
    port: str
    vid: Optional[int]
    pid: Optional[int]
    manufacturer: Optional[str]
    product: Optional[str]
    serial_number: Optional[str]
    hwid: str

    @property
    def device_id(self) -> str:
        """
        OS-agnostic identifier: the USB serial number when present,
        otherwise the hwid.
        """
        if self.serial_number:
            return self.serial_number
        return self.hwid

    @property
    def label(self) -> str:
        """Label shown to the user, e.g. 'Trezor Model T (A1B2C3)'."""
        name = self.product or self.port
        if self.serial_number:
            return f"{name} ({self.serial_number})"
        return name


def _port_to_info(port) -> DeviceInfo:
    """Convert pyserial's ListPortInfo to DeviceInfo."""
    return DeviceInfo(
        port=port.device,
        vid=port.vid,
        pid=port.pid,
        manufacturer=port.manufacturer,
        product=port.product,
        serial_number=port.serial_number,
        hwid=port.hwid,
    )


def is_matching_device(
    info: DeviceInfo,
    *,
    vendor_id: Optional[int] = None,
    product_ids: Optional[Iterable[int]] = None,
    product_substring: Optional[str] = None,
) -> bool:
    """
    Decide whether a given DeviceInfo describes a supported device.

    All checks are AND-combined; a criterion left as None is ignored.

    Args:
        vendor_id: Match this VID, or None.
        product_ids: Accept any of these PIDs, or None.
        product_substring: Case-insensitive substring expected in product string.
    """
    if vendor_id is not None and info.vid != vendor_id:
        return False

    if product_ids is not None and info.pid not in tuple(product_ids):
        return False

    if product_substring is not None:
        if not info.product:
            return False
        if product_substring.lower() not in info.product.lower():
            return False

    return True


def find_devices(
    *,
    matcher: Optional[Callable[[DeviceInfo], bool]] = None,
    vendor_id: Optional[int] = None,
    product_ids: Optional[Iterable[int]] = None,
    product_substring: Optional[str] = None,
    port: Optional[str] = None,
) -> List[DeviceInfo]:
    """
    List the supported devices attached to this machine.

    Pass either a custom `matcher(info) -> bool`, a fixed `port`, or the
    built-in criteria.
    """
    results: List[DeviceInfo] = []

    for entry in list_ports.comports():
        info = _port_to_info(entry)
        if port is not None:
            if info.port == port:
                results.append(info)
        elif matcher is not None:
            if matcher(info):
                results.append(info)
        elif is_matching_device(
            info,
            vendor_id=vendor_id,
            product_ids=product_ids,
            product_substring=product_substring,
        ):
            results.append(info)

    return results


def find_single_device(**criteria) -> DeviceInfo:
    """
    Find exactly one device.

    Behaviour:
        - 0 matches  -> DeviceNotFoundError
        - 1 match    -> return it
        - >1 matches -> log error and raise MultipleDevicesError

    Only one attached device is supported, so the caller never gets to pick.
    """
    matches = find_devices(**criteria)

    if not matches:
        raise DeviceNotFoundError("No matching device found")

    if len(matches) > 1:
        logger.error(
            "Multiple matching devices found; refusing to choose automatically. "
            "Devices: %s",
            matches,
        )
        raise MultipleDevicesError(
            f"Multiple matching devices found ({len(matches)} devices)",
            devices=matches,
        )

    return matches[0]


def is_device_available(**criteria) -> bool:
    """Check if exactly one supported device is present, without opening it."""
    try:
        find_single_device(**criteria)
        return True
    except (DeviceNotFoundError, MultipleDevicesError):
        return False
