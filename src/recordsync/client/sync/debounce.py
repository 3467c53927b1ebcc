"""Cancellable debounced task.

This module provides:
- Debouncer: Runs a callback once, ``delay`` seconds after the last trigger

Each trigger() cancels the pending timer and schedules a new one, so a
burst of triggers produces exactly one call.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Protocol

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    """The part of threading.Timer the debouncer uses."""

    daemon: bool

    def start(self) -> None: ...

    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], TimerHandle]


class Debouncer:
    """Debounced, cancellable scheduled task.

    Usage:
        debouncer = Debouncer(2.0, push)
        debouncer.trigger()   # push() in 2s...
        debouncer.trigger()   # ...now 2s from here
        debouncer.cancel()    # never mind
    """

    def __init__(
        self,
        delay: float,
        callback: Callable[[], None],
        timer_factory: TimerFactory = threading.Timer,
    ) -> None:
        """Initialize the debouncer.

        Args:
            delay: Seconds to wait after the last trigger.
            callback: Function to run when the delay elapses.
            timer_factory: Creates timers; threading.Timer by default.
        """
        self._delay = delay
        self._callback = callback
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._timer: TimerHandle | None = None

    @property
    def delay(self) -> float:
        """Debounce window in seconds."""
        return self._delay

    @property
    def pending(self) -> bool:
        """True if a call is scheduled."""
        return self._timer is not None

    def trigger(self) -> None:
        """Schedule the callback, resetting any pending schedule."""
        with self._lock:
            if self._timer:
                self._timer.cancel()

            timer = self._timer_factory(self._delay, lambda: self._fire(timer))
            timer.daemon = True
            self._timer = timer
            timer.start()

    def cancel(self) -> bool:
        """Cancel the pending call.

        Returns:
            True if a call was pending.
        """
        with self._lock:
            timer, self._timer = self._timer, None
        if timer is None:
            return False
        timer.cancel()
        return True

    def flush(self) -> bool:
        """Run the pending call now instead of waiting.

        Returns:
            True if a call was pending and has run.
        """
        if not self.cancel():
            return False
        self._callback()
        return True

    def _fire(self, timer: TimerHandle) -> None:
        with self._lock:
            # Superseded or cancelled while the timer thread was waking up
            if self._timer is not timer:
                return
            self._timer = None
        try:
            self._callback()
        except Exception:
            logger.exception("Debounced callback failed")
