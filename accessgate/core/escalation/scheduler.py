"""Schedulers for escalation auto-resolution.

Each open escalation gets one scheduled auto-resolve task. The task is
cancelled when the escalation is resolved by hand before it fires.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable, Dict

from accessgate.core.errors import AccessGateError

logger = logging.getLogger(__name__)

ResolveCallback = Callable[[str], object]


class EscalationScheduler(ABC):
    """Schedules and cancels auto-resolve tasks by escalation id."""

    @abstractmethod
    def schedule(self, escalation_id: str, callback: ResolveCallback) -> None:
        """Run ``callback(escalation_id)`` after the configured delay."""

    @abstractmethod
    def cancel(self, escalation_id: str) -> bool:
        """Cancel a scheduled task. Returns True if one was pending."""

    def shutdown(self) -> None:
        """Cancel everything still scheduled."""


class DisabledScheduler(EscalationScheduler):
    """Never auto-resolves; escalations wait for their target."""

    def schedule(self, escalation_id: str, callback: ResolveCallback) -> None:
        logger.debug("Auto-resolve disabled for %s", escalation_id)

    def cancel(self, escalation_id: str) -> bool:
        return False


class ThreadingScheduler(EscalationScheduler):
    """In-process timers, one daemon ``threading.Timer`` per escalation."""

    def __init__(self, delay_seconds: float = 2.0):
        self.delay_seconds = delay_seconds
        self._timers: Dict[str, threading.Timer] = {}
        self._lock = threading.Lock()

    def schedule(self, escalation_id: str, callback: ResolveCallback) -> None:
        timer = threading.Timer(self.delay_seconds, self._fire, args=(escalation_id, callback))
        timer.daemon = True
        with self._lock:
            previous = self._timers.pop(escalation_id, None)
            if previous is not None:
                previous.cancel()
            self._timers[escalation_id] = timer
        timer.start()
        logger.debug("Scheduled auto-resolve for %s in %.1fs", escalation_id, self.delay_seconds)

    def _fire(self, escalation_id: str, callback: ResolveCallback) -> None:
        with self._lock:
            self._timers.pop(escalation_id, None)
        try:
            callback(escalation_id)
        except AccessGateError as e:
            logger.warning("Auto-resolve of %s failed: %s", escalation_id, e)

    def cancel(self, escalation_id: str) -> bool:
        with self._lock:
            timer = self._timers.pop(escalation_id, None)
        if timer is None:
            return False
        timer.cancel()
        logger.debug("Cancelled auto-resolve for %s", escalation_id)
        return True

    def pending(self) -> int:
        with self._lock:
            return len(self._timers)

    def shutdown(self) -> None:
        with self._lock:
            timers = list(self._timers.values())
            self._timers.clear()
        for timer in timers:
            timer.cancel()
