"""USB serial device handle with a serialized session slot.

The handle owns the pyserial port of one attached device. Units of work
submitted through ``wait_for_session_and_run`` are queued FIFO and run one
at a time on a worker thread; the slot is held until the future returned
by the unit of work settles.

Note: The device protocol itself is out of scope. ``DeviceSession`` only
      exposes raw reads and writes on the claimed port.
"""
from __future__ import annotations

import logging
import queue
import threading
from concurrent.futures import CancelledError, Future
from typing import Any, Callable, Optional

import serial

from ..errors import DeviceBusyError, DeviceDisconnectedError
from ..models import DeviceFeatures, DeviceListConfig
from .base import DeviceHandle
from .finder import DeviceInfo

logger = logging.getLogger(__name__)

# How often a worker holding the slot checks whether the handle was closed
UNIT_WAIT_INTERVAL = 0.1


class DeviceSession:
    """Exclusive access to a claimed device for one unit of work."""

    def __init__(self, port: serial.Serial, features: DeviceFeatures):
        self._port = port
        self._features = features

    @property
    def features(self) -> DeviceFeatures:
        return self._features

    def write(self, data: bytes) -> int:
        """Write raw bytes and flush.

        Returns:
            Number of bytes written
        """
        written = self._port.write(data)
        self._port.flush()
        return written

    def read(self, size: int = 1) -> bytes:
        """Read up to ``size`` bytes (bounded by the port timeout)."""
        return self._port.read(size)

    def read_line(self) -> bytes:
        """Read one line including the newline, or what arrived before the timeout."""
        return self._port.readline()


class SerialDevice(DeviceHandle):
    """Device handle backed by a USB serial port.

    Example:
        >>> device = SerialDevice(info)
        >>> device.claim()
        >>> def work(session):
        ...     done = Future()
        ...     session.write(b"ping\\n")
        ...     done.set_result(session.read_line())
        ...     return done
        >>> device.wait_for_session_and_run(work).result()
        b'pong\\n'
    """

    def __init__(self, info: DeviceInfo, config: Optional[DeviceListConfig] = None):
        """Initialize handle.

        Args:
            info: Enumeration record of the device
            config: Serial parameters and bootloader PIDs
        """
        super().__init__()
        self._info = info
        self._config = config or DeviceListConfig()
        self._features = DeviceFeatures(
            label=info.label,
            device_id=info.device_id,
            vendor_id=info.vid,
            product_id=info.pid,
            bootloader_mode=info.pid in self._config.bootloader_product_ids,
        )

        self._serial: Optional[serial.Serial] = None
        self._active = False
        self._closed = False

        # Session slot
        self._queue: queue.Queue = queue.Queue()
        self._worker: Optional[threading.Thread] = None

        self._lock = threading.Lock()

    @property
    def info(self) -> DeviceInfo:
        return self._info

    @property
    def features(self) -> DeviceFeatures:
        return self._features

    def is_bootloader(self) -> bool:
        return self._features.bootloader_mode

    def is_claimed(self) -> bool:
        """Check if this process holds the serial port."""
        return self._active and self._serial is not None

    def claim(self, exclusive: Optional[bool] = None) -> None:
        """Open the serial port and start the session worker.

        Args:
            exclusive: Override ``config.exclusive`` for this attempt

        Raises:
            DeviceBusyError: the port could not be opened
            DeviceDisconnectedError: the handle was already closed
        """
        if exclusive is None:
            exclusive = self._config.exclusive

        with self._lock:
            if self._closed:
                raise DeviceDisconnectedError(f"{self._info.port} is closed")
            if self._serial is not None:
                return

            try:
                self._serial = serial.Serial(
                    port=self._info.port,
                    baudrate=self._config.baudrate,
                    timeout=self._config.timeout,
                    exclusive=exclusive,
                )
                self._serial.reset_input_buffer()
                self._serial.reset_output_buffer()
            except serial.SerialException as e:
                if self._serial is not None:
                    self._serial.close()
                self._serial = None
                raise DeviceBusyError(f"Failed to claim {self._info.port}: {e}") from e

            self._active = True
            self._start_worker()

        logger.info(f"Claimed {self._features.label} on {self._info.port}")

    def steal(self) -> Future:
        """Claim the port without requesting an exclusive lock.

        Returns:
            Future resolved once the port is held by this process
        """
        future: Future = Future()

        def run():
            try:
                self.claim(exclusive=False)
            except Exception as e:
                logger.warning(f"Steal failed for {self._info.port}: {e}")
                future.set_exception(e)
            else:
                future.set_result(None)

        threading.Thread(target=run, daemon=True, name="DeviceSteal").start()
        return future

    def wait_for_session_and_run(self, fn: Callable[[DeviceSession], Any]) -> Future:
        future: Future = Future()
        with self._lock:
            if not self._active:
                future.set_exception(DeviceDisconnectedError(f"{self._features.label} is not claimed"))
                return future
            self._queue.put((fn, future))
        return future

    def close(self) -> None:
        """Stop the session worker, fail queued work and release the port."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._active = False
            pending = self._drain()
            worker = self._worker
            if worker is not None:
                self._queue.put(None)

        for fn, future in pending:
            if future.set_running_or_notify_cancel():
                future.set_exception(DeviceDisconnectedError(f"{self._features.label} disconnected"))

        if worker is not None and worker.is_alive() and worker is not threading.current_thread():
            worker.join(timeout=1.0)

        if self._serial:
            try:
                self._serial.close()
            except Exception as e:
                logger.error(f"Error closing serial port: {e}")
            finally:
                self._serial = None

        logger.info(f"Released {self._features.label}")

    # Internal methods

    def _drain(self):
        items = []
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                break
            if item is not None:
                items.append(item)
        return items

    def _start_worker(self) -> None:
        """Start background thread that runs queued units of work."""
        self._worker = threading.Thread(
            target=self._session_loop,
            daemon=True,
            name="DeviceSession",
        )
        self._worker.start()

    def _session_loop(self) -> None:
        logger.debug("Session worker started")
        while True:
            item = self._queue.get()
            if item is None:
                break
            fn, future = item
            if not future.set_running_or_notify_cancel():
                continue
            self._run_unit(fn, future)
        logger.debug("Session worker exiting")

    def _run_unit(self, fn: Callable[[DeviceSession], Any], future: Future) -> None:
        """Run one unit of work and hold the slot until its future settles."""
        port = self._serial
        if not self._active or port is None:
            future.set_exception(DeviceDisconnectedError(f"{self._features.label} disconnected"))
            return

        try:
            ret = fn(DeviceSession(port, self._features))
        except Exception as e:
            future.set_exception(e)
            return

        if not callable(getattr(ret, "add_done_callback", None)):
            future.set_result(ret)
            return

        settled = threading.Event()
        ret.add_done_callback(lambda _: settled.set())
        while not settled.wait(UNIT_WAIT_INTERVAL):
            if self._closed:
                future.set_exception(DeviceDisconnectedError(f"{self._features.label} disconnected"))
                return

        if ret.cancelled():
            future.set_exception(CancelledError())
            return
        try:
            future.set_result(ret.result())
        except Exception as e:
            future.set_exception(e)
