"""Exactly-once callback guard.

Device interaction events (PIN, passphrase, button) may be raised more
than once for the same episode. Wrapping the completion callback with
``CallbackGuard.guard`` makes sure it fires at most once, whatever the
device layer does, and keeps every unfired callback in an outstanding
set so that they can all be force-failed on shutdown.

Example:
    >>> guard = CallbackGuard()
    >>> done = guard.guard(lambda err, value=None: print(err, value))
    >>> done(None, "1234")
    None 1234
    >>> done(None, "9999")   # ignored
    >>> guard.close_all("exit")   # nothing outstanding
"""
from __future__ import annotations

import itertools
import logging
import threading
from typing import Any, Callable, Dict

logger = logging.getLogger(__name__)


class Once:
    """Once-cell: the first ``claim()`` wins, later claims lose."""

    def __init__(self):
        self._fired = False
        self._lock = threading.Lock()

    def claim(self) -> bool:
        """Mark the cell as fired.

        Returns:
            True for the first caller only
        """
        with self._lock:
            if self._fired:
                return False
            self._fired = True
            return True

    @property
    def fired(self) -> bool:
        return self._fired


class GuardedCallback:
    """Callable wrapper that forwards only its first invocation."""

    def __init__(self, guard_id: int, callback: Callable[..., Any], registry: CallbackGuard):
        self.guard_id = guard_id
        self._callback = callback
        self._registry = registry
        self._once = Once()

    @property
    def fired(self) -> bool:
        return self._once.fired

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        if not self._once.claim():
            logger.debug(f"Guarded callback #{self.guard_id} already fired, ignoring")
            return None
        self._registry._discard(self.guard_id)
        return self._callback(*args, **kwargs)

    def __repr__(self) -> str:
        return f"GuardedCallback(#{self.guard_id}, fired={self.fired})"


class CallbackGuard:
    """Registry of outstanding guarded callbacks.

    Guards are keyed by creation order. A guard leaves the registry when it
    fires or when ``close_all`` force-settles it.
    """

    def __init__(self):
        self._outstanding: Dict[int, GuardedCallback] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def guard(self, callback: Callable[..., Any]) -> GuardedCallback:
        """Wrap ``callback`` so that it fires at most once.

        Args:
            callback: Function to protect

        Returns:
            Guarded callable forwarding only its first invocation
        """
        with self._lock:
            guarded = GuardedCallback(next(self._ids), callback, self)
            self._outstanding[guarded.guard_id] = guarded
        return guarded

    def close_all(self, value: Any) -> int:
        """Invoke every outstanding guarded callback with ``value``.

        Args:
            value: Single argument passed to each callback

        Returns:
            Number of callbacks invoked
        """
        with self._lock:
            pending = [self._outstanding[key] for key in sorted(self._outstanding)]
            self._outstanding.clear()

        invoked = 0
        for guarded in pending:
            if not guarded._once.claim():
                continue
            invoked += 1
            try:
                guarded._callback(value)
            except Exception as e:
                logger.error(f"Error closing guarded callback #{guarded.guard_id}: {e}")
        return invoked

    @property
    def outstanding(self) -> int:
        """Number of guarded callbacks that have not fired yet."""
        with self._lock:
            return len(self._outstanding)

    def _discard(self, guard_id: int) -> None:
        with self._lock:
            self._outstanding.pop(guard_id, None)


# Process-wide registry
_default_guard = CallbackGuard()


def ensure_callback(callback: Callable[..., Any]) -> GuardedCallback:
    """Guard ``callback`` in the process-wide registry."""
    return _default_guard.guard(callback)


def ensure_callback_close(value: Any) -> int:
    """Force-settle every guard in the process-wide registry with ``value``."""
    return _default_guard.close_all(value)
