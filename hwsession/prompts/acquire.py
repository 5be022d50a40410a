"""Policies for devices claimed by another process.

A policy is called as ``policy(device, approve)`` and calls ``approve()``
once it decides the device may be taken over.
"""
from __future__ import annotations

import logging
import sys
import threading
from typing import Any, Callable, Optional, TextIO

from .base import LinePrompt

logger = logging.getLogger(__name__)

DEFAULT_APPROVE_DELAY = 1.0  # seconds


class AutoApprovePolicy:
    """Always approves, after a fixed delay."""

    def __init__(self, delay: float = DEFAULT_APPROVE_DELAY):
        self.delay = delay

    def __call__(self, device: Any, approve: Callable[[], None]) -> threading.Timer:
        timer = threading.Timer(self.delay, approve)
        timer.daemon = True
        timer.start()
        return timer


class DenyPolicy:
    """Never takes over a device held elsewhere."""

    def __call__(self, device: Any, approve: Callable[[], None]) -> None:
        logger.info(f"Leaving {device.features.label} to the process holding it")


class ConfirmPolicy:
    """Asks the user before taking the device over."""

    def __init__(self, line_prompt: LinePrompt, output: Optional[TextIO] = None):
        self._prompt = line_prompt
        self._output = output

    def __call__(self, device: Any, approve: Callable[[], None]) -> None:
        label = f"{device.features.label} is used by another application. Take it over? [y/N]"

        def on_answer(err, value):
            if err is not None:
                logger.warning(f"Acquire confirmation failed: {err}")
                return
            if (value or "").strip().lower() in ("y", "yes"):
                approve()

        self._prompt.prompt(label, on_answer, output=self._output or sys.stderr, default="n")
