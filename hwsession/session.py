"""Session coordinator: serialized access to the attached device.

The coordinator is the public entry point. It tracks the single attached
device through the enumeration events, parks requests made while no usable
device is present and replays them once one connects, and runs every
accepted request inside the device's session slot.

Usage
-----
    from concurrent.futures import Future
    from hwsession import create_session

    session = create_session()

    def sign(error, device_session):
        if error:
            print(f"Failed: {error}")
            return
        done = Future()
        ...  # talk to the device, then
        done.set_result(None)
        return done  # the session is released once this settles

    session(sign)
    ...
    session.close()
"""
from __future__ import annotations

import dataclasses
import logging
import threading
from concurrent.futures import CancelledError, Future
from typing import Any, Callable, List, Optional

from .device import DeviceHandle, DeviceList, SerialDeviceList
from .errors import BootloaderModeError, CallbackContractError, SessionClosedError
from .guard import CallbackGuard, Once
from .models import COMPONENT_TAG, SessionConfig, stderr_out
from .prompts import AutoApprovePolicy, ButtonAdapter, ConsolePrompt, PassphraseAdapter, PinAdapter
from .readiness import DeviceReadiness, ReadinessState

logger = logging.getLogger(__name__)

# Callback signature: callback(error, session) -> Future | True
SessionCallback = Callable[[Optional[BaseException], Any], Any]


def _is_future(value: Any) -> bool:
    return callable(getattr(value, "add_done_callback", None))


def _failed(error: BaseException) -> Future:
    future: Future = Future()
    future.set_exception(error)
    return future


class SessionCoordinator:
    """Owns the device handle and the readiness gate.

    Responsibilities:
    - Follow connect/disconnect events and keep the readiness gate current
    - Wire the interactive prompt adapters onto every new handle
    - Park requests until a device is ready, then run them in its session slot
    - Report every failure to the requesting callback exactly once
    """

    def __init__(self, device_list: DeviceList, config: Optional[SessionConfig] = None):
        """Initialize coordinator.

        Args:
            device_list: Enumeration collaborator to follow
            config: Session options (default: SessionConfig())
        """
        self._config = config or SessionConfig()
        self._out = self._config.out or stderr_out
        self._device_list = device_list

        # Device state, mutated only by the connect/disconnect handlers
        self._device: Optional[DeviceHandle] = None
        self._readiness = DeviceReadiness()
        self._state_lock = threading.Lock()

        # Interaction
        self._guard = CallbackGuard()
        line_prompt = self._config.line_prompt or ConsolePrompt()
        self._pin = PinAdapter(line_prompt, out=self._out, guard=self._guard)
        self._passphrase = PassphraseAdapter(line_prompt, out=self._out, guard=self._guard)
        self._button = ButtonAdapter(out=self._out)
        self._acquire_policy = self._config.acquire_policy or AutoApprovePolicy()

        self._waiting_timer: Optional[threading.Timer] = None
        self._closed = False

        self._unsubscribe: List[Callable[[], None]] = [
            device_list.subscribe_connect(self._on_connect),
            device_list.subscribe_disconnect(self._on_disconnect),
            device_list.subscribe_error(self._on_error),
            device_list.subscribe_connect_unacquired(self._on_connect_unacquired),
        ]

    def __call__(self, callback: SessionCallback) -> None:
        self.with_session(callback)

    @property
    def device(self) -> Optional[DeviceHandle]:
        """The attached usable device, or None."""
        with self._state_lock:
            return self._device

    @property
    def readiness(self) -> DeviceReadiness:
        return self._readiness

    @property
    def device_list(self) -> DeviceList:
        return self._device_list

    def start(self) -> None:
        """Start enumeration and the "Looking for a device.." reminder."""
        delay = self._config.waiting_message_delay
        if delay is not None and self._waiting_timer is None and self.device is None:
            self._waiting_timer = threading.Timer(delay, self._out, args=("Looking for a device..",))
            self._waiting_timer.daemon = True
            self._waiting_timer.start()
        self._device_list.start()

    def is_available(self) -> bool:
        """Check if a usable device is connected."""
        return self.device is not None

    def with_session(self, callback: SessionCallback) -> None:
        """Obtain and use a device session.

        ``callback(None, session)`` runs inside the session slot and must
        return a future (or ``True`` when no future is needed). The session
        is released once that future settles. An exception raised by the
        callback, a bad return value and any slot failure are all reported
        as ``callback(error, None)``, at most once per request.

        Args:
            callback: ``callback(error, session)``

        Raises:
            TypeError: ``callback`` is missing or not callable
        """
        if callback is None:
            raise TypeError("callback parameter is required")
        if not callable(callback):
            raise TypeError("callback parameter must be callable")

        with self._state_lock:
            device = self._device
            if device is None and self._readiness.state is ReadinessState.READY:
                # Device left between connect and resolve; wait for the next one
                self._readiness.reset()
            gate = self._readiness.wait() if device is None else None

        if device is None:
            gate.add_done_callback(lambda ready: self._resume(ready, callback))
            return

        reported = Once()

        def fail(error: BaseException) -> None:
            if reported.claim():
                callback(error, None)

        def run(session: Any) -> Future:
            self._debug("session")
            try:
                ret = callback(None, session)
                if ret is True:
                    done: Future = Future()
                    done.set_result(True)
                    return done
                if not _is_future(ret):
                    raise CallbackContractError("with_session callback must return a Future")
                return ret
            except Exception as error:
                fail(error)
                return _failed(error)

        slot = device.wait_for_session_and_run(run)
        slot.add_done_callback(lambda outcome: self._finish(outcome, fail))

    def close(self) -> None:
        """Force-fail pending prompts and tear down enumeration."""
        if self._closed:
            return
        self._closed = True
        self._debug("close")
        self._cancel_waiting_message()
        self._guard.close_all(SessionClosedError())
        self._device_list.teardown()
        for unsubscribe in self._unsubscribe:
            unsubscribe()
        self._unsubscribe = []

    # --- Request plumbing ---

    def _resume(self, gate: Future, callback: SessionCallback) -> None:
        """Re-issue a parked request once its gate settles."""
        try:
            gate.result()
        except Exception as error:
            callback(error, None)
            return
        self.with_session(callback)

    def _finish(self, outcome: Future, fail: Callable[[BaseException], None]) -> None:
        if outcome.cancelled():
            fail(CancelledError())
            return
        error = outcome.exception()
        if error is not None:
            fail(error)

    # --- Device events ---

    def _on_connect(self, device: DeviceHandle) -> None:
        self._cancel_waiting_message()
        label = device.features.label

        with self._state_lock:
            if self._readiness.state is not ReadinessState.PENDING:
                self._readiness.reset()
            bootloader = device.is_bootloader()
            if not bootloader:
                self._device = device

        if bootloader:
            self._debug(f"connect {label} (bootloader)")
            self._readiness.fail(BootloaderModeError())
            return

        self._debug(f"connect {label}")
        device.set_pin_handler(self._pin)
        device.set_passphrase_handler(self._passphrase)
        device.set_button_handler(lambda code: self._button(device.features.label, code))

        # Keep last, the hook may replace the handlers above
        if callable(self._config.on_connect):
            try:
                self._config.on_connect(device)
            except Exception as e:
                self._error("on_connect hook failed:", e)

        self._readiness.resolve()

    def _on_disconnect(self, device: DeviceHandle) -> None:
        self._debug(f"disconnect {device.features.label}")
        with self._state_lock:
            self._device = None
            # Keep the current gate while PENDING, parked requests wait on it
            if self._readiness.state is not ReadinessState.PENDING:
                self._readiness.reset()

    def _on_error(self, error: BaseException) -> None:
        self._error("List error:", error)

    def _on_connect_unacquired(self, device: DeviceHandle) -> None:
        self._debug(f"connect unacquired {device.features.label}")

        def approve():
            device.steal().add_done_callback(self._on_stolen)

        self._acquire_policy(device, approve)

    def _on_stolen(self, outcome: Future) -> None:
        error = outcome.exception()
        if error is not None:
            self._error("steal failed:", error)
            return
        self._out("steal done. now wait for another connect")

    # --- Output ---

    def _cancel_waiting_message(self) -> None:
        if self._waiting_timer is not None:
            self._waiting_timer.cancel()
            self._waiting_timer = None

    def _debug(self, *parts: Any) -> None:
        logger.debug(" ".join(str(part) for part in parts))
        self._out(COMPONENT_TAG, *parts)

    def _error(self, *parts: Any) -> None:
        logger.error(" ".join(str(part) for part in parts))
        self._out(COMPONENT_TAG, *parts)


def create_session(config: Optional[SessionConfig] = None, **overrides: Any) -> SessionCoordinator:
    """Create a session coordinator and start following devices.

    Args:
        config: Session options (default: SessionConfig())
        **overrides: Field overrides applied on top of ``config``

    Returns:
        Coordinator; call it (or ``with_session``) with ``callback(error, session)``
    """
    config = config or SessionConfig()
    if overrides:
        config = dataclasses.replace(config, **overrides)

    factory = config.device_list_factory or SerialDeviceList
    device_list = factory(config.device_list_config)

    coordinator = SessionCoordinator(device_list, config)
    if config.auto_start:
        coordinator.start()
    return coordinator
