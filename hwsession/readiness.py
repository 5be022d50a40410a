"""Device readiness tracking.

A single-slot gate that is pending while no usable device is attached and
settled once one is. Every disconnect replaces the gate with a fresh
pending one; anyone holding the old gate keeps it.
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from enum import Enum

logger = logging.getLogger(__name__)


class ReadinessState(Enum):
    """Lifecycle of the readiness gate."""
    PENDING = "pending"
    READY = "ready"
    ERROR = "error"


class DeviceReadiness:
    """Readiness gate for the single attached device.

    State machine:
        PENDING -> READY    usable device connected (``resolve``)
        PENDING -> ERROR    bootloader device connected (``fail``)
        READY   -> PENDING  device disconnected (``reset``)
        ERROR   -> PENDING  device disconnected (``reset``)

    The gate is a ``concurrent.futures.Future``; waiters register with
    ``add_done_callback`` and are run by whichever thread settles it.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._gate: Future = Future()
        self._state = ReadinessState.PENDING

    @property
    def state(self) -> ReadinessState:
        with self._lock:
            return self._state

    def wait(self) -> Future:
        """Return the current gate."""
        with self._lock:
            return self._gate

    def resolve(self) -> None:
        """Settle the current gate successfully."""
        gate = self._settle(ReadinessState.READY)
        if gate is not None:
            gate.set_result(None)

    def fail(self, error: BaseException) -> None:
        """Settle the current gate with ``error``."""
        gate = self._settle(ReadinessState.ERROR)
        if gate is not None:
            gate.set_exception(error)

    def reset(self) -> Future:
        """Replace the gate with a fresh pending one.

        Returns:
            The new gate
        """
        with self._lock:
            self._gate = Future()
            self._state = ReadinessState.PENDING
            return self._gate

    def _settle(self, state: ReadinessState):
        with self._lock:
            if self._state is not ReadinessState.PENDING:
                logger.warning(f"Readiness gate already {self._state.value}, ignoring {state.value}")
                return None
            self._state = state
            return self._gate
