"""Notification filtering and cancellable deferred work."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Dict, Tuple

from .config import ServiceConfig
from .models import ChangeEvent, EventKind

logger = logging.getLogger(__name__)

SETTLE = "settle-delay"
RETRY = "retry"


class DeferredTasks:
    """Delayed callbacks keyed by purpose.

    Scheduling a task replaces any pending task with the same purpose; a
    replaced task never runs even if its timer already fired.
    """

    def __init__(self, timer_factory: Callable[..., threading.Timer] = threading.Timer) -> None:
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._pending: Dict[str, Tuple[object, threading.Timer]] = {}

    def schedule(self, purpose: str, delay: float, fn: Callable[[], None]) -> None:
        token = object()
        with self._lock:
            previous = self._pending.pop(purpose, None)
            if previous is not None:
                previous[1].cancel()
                logger.debug("Replaced pending %s task", purpose)
            timer = self._timer_factory(max(delay, 0.0), self._fire, args=(purpose, token, fn))
            timer.daemon = True
            self._pending[purpose] = (token, timer)
        timer.start()

    def cancel(self, purpose: str) -> bool:
        with self._lock:
            entry = self._pending.pop(purpose, None)
        if entry is None:
            return False
        entry[1].cancel()
        return True

    def cancel_all(self) -> None:
        with self._lock:
            entries = list(self._pending.values())
            self._pending.clear()
        for _, timer in entries:
            timer.cancel()

    def is_pending(self, purpose: str) -> bool:
        with self._lock:
            return purpose in self._pending

    def _fire(self, purpose: str, token: object, fn: Callable[[], None]) -> None:
        with self._lock:
            entry = self._pending.get(purpose)
            if entry is None or entry[0] is not token:
                return
            del self._pending[purpose]
        try:
            fn()
        except Exception:
            logger.exception("Deferred %s task failed", purpose)


class EventGate:
    """Turns bursts of change notifications into single processing cycles."""

    def __init__(
        self,
        config: ServiceConfig,
        dispatch: Callable[[str], object],
        tasks: DeferredTasks,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config
        self._dispatch = dispatch
        self._tasks = tasks
        self._clock = clock
        self._last_accepted = float("-inf")

    def on_change(self, source_id: str, kind: EventKind | str) -> bool:
        """Filter one notification; returns True when a cycle was scheduled."""

        if source_id not in self.config.monitored_packages:
            return False
        try:
            kind = EventKind(kind)
        except ValueError:
            logger.debug("Ignoring unknown event kind %r from %s", kind, source_id)
            return False
        if kind not in self.config.trigger_kinds:
            logger.debug("Accepted %s from %s without scheduling", kind.value, source_id)
            return False
        now = self._clock()
        if now - self._last_accepted < self.config.min_process_interval:
            logger.debug("Coalesced %s from %s", kind.value, source_id)
            return False
        self._last_accepted = now
        logger.debug("Window changed: %s", source_id)
        self._tasks.schedule(SETTLE, self.config.settle_delay, lambda: self._dispatch(source_id))
        return True

    def on_event(self, event: ChangeEvent) -> bool:
        kind = getattr(event.kind, "value", event.kind)
        logger.debug("Event %s from %s at %s", kind, event.source_id, event.ts.isoformat())
        return self.on_change(event.source_id, event.kind)

    def reset(self) -> None:
        self._last_accepted = float("-inf")
        self._tasks.cancel(SETTLE)
