"""
Transient user-facing messages.

One message is visible at a time. show() replaces the current message and
restarts the dwell interval; the message clears itself once the dwell time
has passed, or immediately on dismiss().
"""

import asyncio
import logging
import time
from typing import Callable, List, Optional

from qrmenu.models import NotificationMessage, Severity

logger = logging.getLogger(__name__)

Listener = Callable[[Optional[NotificationMessage]], None]

DEFAULT_DWELL_SECONDS = 5.0


class NotificationCenter:
    """Single-slot, auto-expiring message holder."""

    def __init__(self, dwell: float = DEFAULT_DWELL_SECONDS, clock: Callable[[], float] = time.monotonic):
        self.dwell = dwell
        self._clock = clock
        self._message: Optional[NotificationMessage] = None
        self._shown_at = 0.0
        self._timer: Optional[asyncio.TimerHandle] = None
        self._listeners: List[Listener] = []

    @property
    def current(self) -> Optional[NotificationMessage]:
        """The visible message, or None once dismissed or expired."""
        if self._message is not None and self._clock() - self._shown_at >= self.dwell:
            self._clear()
        return self._message

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call `listener` with the new message (or None) on every change."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def show(self, text: str, severity: Severity = Severity.INFO) -> NotificationMessage:
        message = NotificationMessage(text=text, severity=Severity(severity))
        self._cancel_timer()
        self._message = message
        self._shown_at = self._clock()

        if message.severity == Severity.ERROR:
            logger.warning(f"notify[{message.severity.value}] {text}")
        else:
            logger.info(f"notify[{message.severity.value}] {text}")

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop to schedule on; expiry is still applied lazily by `current`
            loop = None
        if loop is not None:
            self._timer = loop.call_later(self.dwell, self._expire, message)

        self._emit(message)
        return message

    def error(self, text: str) -> NotificationMessage:
        return self.show(text, Severity.ERROR)

    def success(self, text: str) -> NotificationMessage:
        return self.show(text, Severity.SUCCESS)

    def info(self, text: str) -> NotificationMessage:
        return self.show(text, Severity.INFO)

    def dismiss(self) -> None:
        if self._message is not None:
            self._clear()

    def close(self) -> None:
        """Drop the pending expiry timer and all listeners."""
        self._cancel_timer()
        self._listeners.clear()

    def _expire(self, message: NotificationMessage) -> None:
        self._timer = None
        # A newer message has its own timer
        if self._message is message:
            self._clear()

    def _clear(self) -> None:
        self._cancel_timer()
        self._message = None
        self._emit(None)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _emit(self, message: Optional[NotificationMessage]) -> None:
        for listener in list(self._listeners):
            try:
                listener(message)
            except Exception:
                logger.exception("notification listener failed")
