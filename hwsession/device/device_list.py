"""Serial device enumeration.

Polls pyserial's port list and turns changes into device events:
- a supported device appears      -> connect (or connect_unacquired if busy)
- a supported device disappears   -> disconnect
- enumeration fails               -> error

Only one device is tracked at a time. Extra matches are reported as an
error and ignored.
"""
from __future__ import annotations

import logging
import threading
from typing import Any, Dict, FrozenSet, List, Optional, Set

from ..errors import DeviceBusyError
from ..models import DeviceListConfig
from .base import DeviceList
from .finder import DeviceInfo, MultipleDevicesError, find_devices
from .serial_device import SerialDevice

logger = logging.getLogger(__name__)


def _coerce_config(config: Any) -> DeviceListConfig:
    if config is None:
        return DeviceListConfig()
    if isinstance(config, DeviceListConfig):
        return config
    if isinstance(config, dict):
        return DeviceListConfig(**config)
    raise TypeError(f"Unsupported device list config: {config!r}")


class SerialDeviceList(DeviceList):
    """Device enumeration over USB serial ports.

    Example:
        >>> devices = SerialDeviceList({"vendor_id": 0x1209})
        >>> devices.subscribe_connect(lambda device: print(device.features.label))
        >>> devices.start()
        >>> # Later...
        >>> devices.teardown()
    """

    def __init__(self, config: Any = None):
        """Initialize device list.

        Args:
            config: DeviceListConfig, a dict of its fields, or None for defaults
        """
        super().__init__(_coerce_config(config))

        self._devices: Dict[str, SerialDevice] = {}
        self._connected: Set[str] = set()
        self._reported_multiple: FrozenSet[str] = frozenset()

        self._thread: Optional[threading.Thread] = None
        self._stop = threading.Event()
        self._poll_lock = threading.RLock()

    @property
    def devices(self) -> List[SerialDevice]:
        """Devices currently tracked (connected or unacquired)."""
        with self._poll_lock:
            return list(self._devices.values())

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._poll_loop,
            daemon=True,
            name="DeviceList",
        )
        self._thread.start()
        logger.debug(f"Device list started (interval={self.config.poll_interval}s)")

    def teardown(self) -> None:
        """Stop polling and release every tracked device."""
        self._stop.set()
        if self._thread and self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout=1.0)
        self._thread = None

        with self._poll_lock:
            devices = list(self._devices.values())
            self._devices.clear()
            self._connected.clear()

        for device in devices:
            device.close()
        logger.debug("Device list stopped")

    def poll(self) -> None:
        """Run one enumeration pass (Synchronous).

        Useful for testing or when automatic polling is off.
        """
        with self._poll_lock:
            self._poll_once()

    def _poll_loop(self) -> None:
        """Background loop for enumeration."""
        while not self._stop.is_set():
            self.poll()
            self._stop.wait(self.config.poll_interval)

    def _poll_once(self) -> None:
        config = self.config
        try:
            infos = find_devices(
                vendor_id=config.vendor_id,
                product_ids=config.all_product_ids,
                product_substring=config.product_substring,
                port=config.port,
            )
        except Exception as e:
            logger.error(f"Device enumeration failed: {e}")
            self._emit("error", e)
            return

        infos = sorted(infos, key=lambda info: info.port)
        self._check_multiple(infos)
        present: Dict[str, DeviceInfo] = {info.device_id: info for info in infos[:1]}

        for device_id, device in list(self._devices.items()):
            info = present.get(device_id)
            # Same serial on a new port or product ID (e.g. left bootloader mode)
            if info is None or (info.port, info.pid) != (device.info.port, device.info.pid):
                self._remove(device_id)

        for device_id, info in present.items():
            device = self._devices.get(device_id)
            if device is None:
                device = SerialDevice(info, config)
                self._devices[device_id] = device
                self._attach(device)
            elif device_id not in self._connected and device.is_claimed():
                # Claimed by a steal since the last pass
                self._connected.add(device_id)
                self._emit("connect", device)

    def _check_multiple(self, infos: List[DeviceInfo]) -> None:
        ids = frozenset(info.device_id for info in infos)
        if len(infos) > 1 and ids != self._reported_multiple:
            self._emit("error", MultipleDevicesError(
                f"Multiple matching devices found ({len(infos)} devices)",
                devices=infos,
            ))
        self._reported_multiple = ids if len(infos) > 1 else frozenset()

    def _attach(self, device: SerialDevice) -> None:
        device_id = device.features.device_id
        if not device.is_bootloader():
            try:
                device.claim()
            except DeviceBusyError as e:
                logger.warning(f"Device busy: {e}")
                self._emit("connect_unacquired", device)
                return
        self._connected.add(device_id)
        self._emit("connect", device)

    def _remove(self, device_id: str) -> None:
        device = self._devices.pop(device_id)
        device.close()
        if device_id in self._connected:
            self._connected.discard(device_id)
            self._emit("disconnect", device)
