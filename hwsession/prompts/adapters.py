"""Interactive prompt adapters.

Bridge device-initiated interaction requests (PIN, passphrase, button
confirmation) to a line prompt. PIN and passphrase requests wrap the
device's completion callback with a ``CallbackGuard``: one episode
resolves its callback exactly once, duplicate requests that arrive while
an episode is outstanding are dropped, and ``CallbackGuard.close_all``
can force-fail whatever is still waiting for input.
"""
from __future__ import annotations

import logging
import sys
import threading
from typing import Any, Callable, Optional, TextIO

from ..guard import CallbackGuard, GuardedCallback
from ..models import stderr_out
from .base import LinePrompt

logger = logging.getLogger(__name__)

PIN_INSTRUCTIONS = (
    "Look at the device and find each digit of your PIN, "
    "then enter the number in the corresponding position:",
    "Please enter PIN. The positions:",
    "7 8 9",
    "4 5 6",
    "1 2 3",
)


class _PromptAdapter:
    """Shared episode handling for adapters that read a value."""

    kind = "prompt"

    def __init__(
        self,
        line_prompt: LinePrompt,
        out: Callable[..., None] = stderr_out,
        guard: Optional[CallbackGuard] = None,
        output: Optional[TextIO] = None,
    ):
        self._prompt = line_prompt
        self._out = out
        self._guard = guard if guard is not None else CallbackGuard()
        self._output = output
        self._episode: Optional[GuardedCallback] = None
        self._lock = threading.Lock()

    @property
    def pending(self) -> bool:
        """Check if an episode is waiting for input."""
        with self._lock:
            return self._episode is not None and not self._episode.fired

    def _arm(self, callback: Callable[..., None]) -> Optional[GuardedCallback]:
        with self._lock:
            if self._episode is not None and not self._episode.fired:
                logger.debug(f"{self.kind} request already pending, ignoring duplicate")
                return None
            self._episode = self._guard.guard(callback)
            return self._episode

    def _read(self, label: str, episode: GuardedCallback, default: Optional[str] = None) -> None:
        def on_input(err, value):
            if err is not None:
                episode(err)
            else:
                episode(None, value)

        try:
            self._prompt.prompt(
                label,
                on_input,
                silent=True,
                output=self._output or sys.stderr,
                default=default,
            )
        except Exception as e:
            logger.error(f"{self.kind} prompt failed: {e}")
            episode(e)


class PinAdapter(_PromptAdapter):
    """Asks for the PIN using the scrambled keypad shown on the device."""

    kind = "pin"

    def __call__(self, pin_type: Any, callback: Callable[..., None]) -> None:
        episode = self._arm(callback)
        if episode is None:
            return
        for line in PIN_INSTRUCTIONS:
            self._out(line)
        self._read("PIN", episode)


class PassphraseAdapter(_PromptAdapter):
    """Asks for the passphrase; an empty answer means no passphrase."""

    kind = "passphrase"

    def __call__(self, callback: Callable[..., None]) -> None:
        episode = self._arm(callback)
        if episode is None:
            return
        self._read("Passphrase", episode, default="")


class ButtonAdapter:
    """Tells the user to confirm the pending action on the device.

    Only notifies: there is no completion callback to guard, and every
    button request from the device is a separate confirmation step.
    """

    def __init__(self, out: Callable[..., None] = stderr_out):
        self._out = out

    def __call__(self, label: str, code: Any = None) -> None:
        logger.debug(f"Button request {code} on {label}")
        self._out(f"Check your device {label}")
