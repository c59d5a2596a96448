"""In-process alarm center.

Each pending alarm is a daemon ``threading.Timer`` keyed by identifier.
The deadline is an absolute wall-clock instant: a timer sleeps at most
``recheck_interval`` seconds before comparing the clock again, so a clock
jump or a system suspend delays delivery by no more than that.  When the
deadline is reached, ``alarm_fired`` is emitted; the application shell turns
that into a tray notification and a chime.
"""

from __future__ import annotations

import itertools
import logging
import threading
import time as _time
from typing import Callable

from PyQt6.QtCore import QObject, pyqtSignal

from ..timer.errors import AlarmSchedulingFailed
from ..timer.ports import AlarmPayload, AlarmScheduler


logger = logging.getLogger(__name__)

DEFAULT_RECHECK_INTERVAL = 1.0  # seconds


class AlarmCenter(QObject):
    """One-shot notifications, at most one pending per identifier.

    Signals
    -------
    alarm_fired(identifier: str, payload: AlarmPayload)
    """

    alarm_fired = pyqtSignal(str, object)

    def __init__(
        self,
        parent: QObject | None = None,
        *,
        clock: Callable[[], float] = _time.time,
        recheck_interval: float = DEFAULT_RECHECK_INTERVAL,
    ) -> None:
        super().__init__(parent)
        if recheck_interval <= 0:
            raise ValueError("recheck interval must be positive")
        self._clock = clock
        self._recheck_interval = recheck_interval
        self._lock = threading.Lock()
        self._pending: dict[str, tuple[int, threading.Timer]] = {}
        self._generation = itertools.count(1)

    def schedule(self, identifier: str, fire_at: float, payload: AlarmPayload) -> None:
        """Arm an alarm, replacing any pending one for *identifier*.

        Alarms already due are dropped.
        """
        delay = fire_at - self._clock()
        if delay <= 0:
            logger.debug("Alarm %s is already due; not scheduled", identifier)
            return

        with self._lock:
            self._drop(identifier)
            self._arm(identifier, next(self._generation), fire_at, payload)
        logger.debug("Alarm %s armed for %.3f s from now", identifier, delay)

    def cancel(self, identifier: str) -> None:
        with self._lock:
            if self._drop(identifier):
                logger.debug("Alarm %s cancelled", identifier)

    def is_pending(self, identifier: str) -> bool:
        with self._lock:
            return identifier in self._pending

    @property
    def pending(self) -> list[str]:
        with self._lock:
            return sorted(self._pending)

    def shutdown(self) -> None:
        """Disarm every pending alarm."""
        with self._lock:
            for identifier in list(self._pending):
                self._drop(identifier)

    # ── internal ──────────────────────────────────────────────────────

    def _drop(self, identifier: str) -> bool:
        entry = self._pending.pop(identifier, None)
        if entry is None:
            return False
        entry[1].cancel()
        return True

    def _arm(
        self, identifier: str, generation: int, fire_at: float, payload: AlarmPayload
    ) -> None:
        delay = min(max(fire_at - self._clock(), 0.0), self._recheck_interval)
        timer = threading.Timer(
            delay, self._wake, args=(identifier, generation, fire_at, payload)
        )
        timer.daemon = True
        try:
            timer.start()
        except RuntimeError as exc:
            raise AlarmSchedulingFailed(f"could not arm alarm {identifier}") from exc
        self._pending[identifier] = (generation, timer)

    def _wake(
        self, identifier: str, generation: int, fire_at: float, payload: AlarmPayload
    ) -> None:
        with self._lock:
            entry = self._pending.get(identifier)
            if entry is None or entry[0] != generation:
                return
            if self._clock() < fire_at:
                try:
                    self._arm(identifier, generation, fire_at, payload)
                except AlarmSchedulingFailed:
                    logger.exception("Alarm %s could not be re-armed", identifier)
                    del self._pending[identifier]
                return
            del self._pending[identifier]
        logger.info("Alarm %s fired: %s", identifier, payload.body)
        self.alarm_fired.emit(identifier, payload)


AlarmScheduler.register(AlarmCenter)
