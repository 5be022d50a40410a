"""Abstract line prompt used by the interactive adapters."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional, TextIO


class LinePrompt(ABC):
    """Reads one line of user input and reports it through a callback.

    Implementations must call ``callback(err, value)`` exactly once and
    should not block the caller while waiting for input.
    """

    @abstractmethod
    def prompt(
        self,
        label: str,
        callback: Callable[[Optional[BaseException], Any], None],
        silent: bool = False,
        output: Optional[TextIO] = None,
        default: Optional[str] = None,
    ) -> None:
        """Ask the user for a line of input.

        Args:
            label: Prompt text, without trailing separator
            callback: Receives ``(None, value)`` or ``(error, None)``
            silent: Mask the input (no echo)
            output: Stream the prompt is written to
            default: Value used when the user enters an empty line
        """
        pass
