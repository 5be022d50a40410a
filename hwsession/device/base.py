"""Abstract interfaces for the device layer.

The session coordinator only talks to these interfaces, so a USB serial
device, an emulator or a test double can be swapped in freely.

Key principles:
- One handle per attached device, replaced wholesale on reconnect
- Typed subscriptions per event kind instead of a string event bus
- Device-initiated interactions go through single-slot handlers
"""
from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from concurrent.futures import Future
from typing import Any, Callable, Dict, List, Optional

from ..errors import InteractionUnavailableError
from ..models import DeviceFeatures

logger = logging.getLogger(__name__)

# Completion callback handed to PIN and passphrase handlers: done(err, value)
Completion = Callable[..., None]


class DeviceHandle(ABC):
    """Live reference to the attached device.

    Implementations provide the session slot (exclusive execution of one
    unit of work at a time) and the force-claim operation. Interaction
    handlers are single-slot: setting one replaces the previous handler.
    """

    def __init__(self):
        self._pin_handler: Optional[Callable[[Any, Completion], None]] = None
        self._passphrase_handler: Optional[Callable[[Completion], None]] = None
        self._button_handler: Optional[Callable[[Any], None]] = None

    @property
    @abstractmethod
    def features(self) -> DeviceFeatures:
        """Feature metadata, including ``label``."""
        pass

    @abstractmethod
    def is_bootloader(self) -> bool:
        """Check if the device booted into bootloader mode."""
        pass

    @abstractmethod
    def wait_for_session_and_run(self, fn: Callable[[Any], Any]) -> Future:
        """Run ``fn(session)`` once the session slot is free.

        ``fn`` returns a future; the slot is held until it settles.

        Returns:
            Future settled with the outcome of the unit of work
        """
        pass

    @abstractmethod
    def steal(self) -> Future:
        """Force-claim a device held by another process."""
        pass

    # --- Interaction handlers ---

    def set_pin_handler(self, handler: Optional[Callable[[Any, Completion], None]]) -> None:
        self._pin_handler = handler

    def set_passphrase_handler(self, handler: Optional[Callable[[Completion], None]]) -> None:
        self._passphrase_handler = handler

    def set_button_handler(self, handler: Optional[Callable[[Any], None]]) -> None:
        self._button_handler = handler

    def request_pin(self, pin_type: Any = None) -> Future:
        """Ask the installed PIN handler for a PIN.

        Returns:
            Future resolved with the entered PIN
        """
        return self._request(self._pin_handler, "pin", pin_type)

    def request_passphrase(self) -> Future:
        """Ask the installed passphrase handler for a passphrase."""
        return self._request(self._passphrase_handler, "passphrase")

    def notify_button(self, code: Any = None) -> None:
        """Tell the user to confirm on the device."""
        handler = self._button_handler
        if handler is None:
            logger.debug(f"No button handler installed, dropping code {code}")
            return
        handler(code)

    def _request(self, handler, kind: str, *args: Any) -> Future:
        future: Future = Future()
        if handler is None:
            future.set_exception(InteractionUnavailableError(f"No {kind} handler installed"))
            return future

        def done(err=None, value=None):
            if future.done():
                return
            if err is not None:
                future.set_exception(err if isinstance(err, BaseException) else InteractionUnavailableError(str(err)))
            else:
                future.set_result(value)

        try:
            handler(*args, done)
        except Exception as e:
            logger.error(f"Error in {kind} handler: {e}")
            done(e)
        return future


class DeviceList(ABC):
    """Device enumeration collaborator.

    Emits connect, disconnect, error and connect_unacquired events to
    subscribers in emission order. Each ``subscribe_*`` call returns an
    unsubscribe function.
    """

    EVENTS = ("connect", "disconnect", "error", "connect_unacquired")

    def __init__(self, config: Any = None):
        self._config = config
        self._subscribers: Dict[str, List[Callable[[Any], None]]] = {
            event: [] for event in self.EVENTS
        }
        self._callback_lock = threading.Lock()

    @property
    def config(self) -> Any:
        return self._config

    @abstractmethod
    def start(self) -> None:
        """Begin enumeration. Safe to call more than once."""
        pass

    @abstractmethod
    def teardown(self) -> None:
        """Stop enumeration and release devices. Safe to call more than once."""
        pass

    def subscribe_connect(self, callback: Callable[[DeviceHandle], None]) -> Callable[[], None]:
        return self._subscribe("connect", callback)

    def subscribe_disconnect(self, callback: Callable[[DeviceHandle], None]) -> Callable[[], None]:
        return self._subscribe("disconnect", callback)

    def subscribe_error(self, callback: Callable[[BaseException], None]) -> Callable[[], None]:
        return self._subscribe("error", callback)

    def subscribe_connect_unacquired(self, callback: Callable[[DeviceHandle], None]) -> Callable[[], None]:
        return self._subscribe("connect_unacquired", callback)

    def _subscribe(self, event: str, callback: Callable[[Any], None]) -> Callable[[], None]:
        with self._callback_lock:
            self._subscribers[event].append(callback)

        def unsubscribe():
            with self._callback_lock:
                if callback in self._subscribers[event]:
                    self._subscribers[event].remove(callback)

        return unsubscribe

    def _emit(self, event: str, payload: Any) -> None:
        """Notify all subscribers of ``event``.

        Args:
            event: One of ``EVENTS``
            payload: Device handle, or the error for ``error`` events
        """
        with self._callback_lock:
            callbacks = list(self._subscribers[event])

        for callback in callbacks:
            try:
                callback(payload)
            except Exception as e:
                logger.error(f"Error in {event} callback: {e}")
