"""Terminal line prompt built on getpass."""
from __future__ import annotations

import getpass
import logging
import sys
import threading
from typing import Any, Callable, Optional, TextIO

from .base import LinePrompt

logger = logging.getLogger(__name__)


class ConsolePrompt(LinePrompt):
    """Line prompt reading from the controlling terminal.

    Each read runs on its own daemon thread, so waiting for input suspends
    the interaction that asked for it but not the rest of the process.
    """

    def __init__(self, input_stream: Optional[TextIO] = None, threaded: bool = True):
        """Initialize prompt.

        Args:
            input_stream: Stream for non-silent reads (default: sys.stdin)
            threaded: Read on a background thread; False reads inline
        """
        self._input = input_stream
        self._threaded = threaded

    def prompt(
        self,
        label: str,
        callback: Callable[[Optional[BaseException], Any], None],
        silent: bool = False,
        output: Optional[TextIO] = None,
        default: Optional[str] = None,
    ) -> None:
        args = (label, callback, silent, output or sys.stderr, default)
        if not self._threaded:
            self._read(*args)
            return
        threading.Thread(
            target=self._read,
            args=args,
            daemon=True,
            name="LinePrompt",
        ).start()

    def _read(self, label, callback, silent, output, default) -> None:
        text = f"{label}: "
        try:
            if silent:
                value = getpass.getpass(text, stream=output)
            else:
                output.write(text)
                output.flush()
                line = (self._input or sys.stdin).readline()
                if not line:
                    raise EOFError("end of input")
                value = line.rstrip("\r\n")
        except Exception as e:
            logger.debug(f"Prompt '{label}' failed: {e}")
            callback(e, None)
            return

        if not value and default is not None:
            value = default
        callback(None, value)
