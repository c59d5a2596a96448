"""Countdown state machine for one Multimer timer.

States
------
READY      Full duration, waiting for start.
RUNNING    Counting down toward an absolute expiry instant.
PAUSED     Frozen; remembers the remaining duration.
FINISHED   Reached zero (or was stopped); waits for reset.

Transitions
-----------
READY | PAUSED → RUNNING        (start)
RUNNING → PAUSED                (pause)
RUNNING | PAUSED → FINISHED     (stop, or tick reaching 0)
Any → READY                     (reset / update)

Every transition is persisted before it becomes visible.  Only after the
store acknowledges does the engine touch the alarm center and publish the
new value, so durable state, scheduled alarms and subscribers never
disagree.
"""

from __future__ import annotations

import logging
import threading
import time as _time
from dataclasses import replace
from typing import Callable

from PyQt6.QtCore import QObject, pyqtSignal

from .errors import AlarmSchedulingFailed, PersistenceUnavailable
from .ports import AlarmPayload, AlarmScheduler, TimerStore
from .record import TimerRecord, TimerState, alarm_identifier
from .ticker import (
    DEFAULT_TICK_INTERVAL,
    TickHandle,
    TickHandleState,
    TickScheduler,
    shared_scheduler,
)
from .time_value import TimeValue


logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class TimerEngine(QObject):
    """Owns one ``TimerRecord`` and drives its lifecycle.

    Signals
    -------
    time_changed(time: TimeValue)
        Emitted on every tick and on every transition that changes time.
    state_changed(state: TimerState)
        Emitted on every state transition.
    error_occurred(error: Exception)
        Failures nobody is waiting on: alarm problems and tick-driven
        persistence errors.

    Commands and ticks are serialized by one re-entrant lock, and every
    emission happens while it is held, so subscribers see updates in the
    order they were produced.
    """

    time_changed = pyqtSignal(object)
    state_changed = pyqtSignal(object)
    error_occurred = pyqtSignal(object)

    def __init__(
        self,
        record: TimerRecord,
        store: TimerStore,
        alarms: AlarmScheduler,
        parent: QObject | None = None,
        *,
        clock: Clock = _time.time,
        scheduler: TickScheduler | None = None,
        tick_interval: float = DEFAULT_TICK_INTERVAL,
    ) -> None:
        super().__init__(parent)
        self._lock = threading.RLock()
        self._store = store
        self._alarms = alarms
        self._clock = clock
        self._record = replace(record)
        self._expiry: float | None = None
        self._closed = False
        self._ticks = TickHandle(
            self._on_tick,
            scheduler or shared_scheduler(),
            tick_interval,
        )

        with self._lock:
            self._restore()

    # ══════════════════════════════════════════════════════════════════
    #  PUBLIC PROPERTIES
    # ══════════════════════════════════════════════════════════════════

    @property
    def identity(self) -> str:
        return self._record.identity

    @property
    def record(self) -> TimerRecord:
        """A copy of the current record."""
        with self._lock:
            return replace(self._record)

    @property
    def time(self) -> TimeValue:
        with self._lock:
            return self._record.time

    @property
    def state(self) -> TimerState:
        with self._lock:
            return self._record.state

    @property
    def expiry(self) -> float | None:
        """Absolute expiry instant while RUNNING, else ``None``."""
        with self._lock:
            return self._expiry

    @property
    def tick_state(self) -> TickHandleState:
        return self._ticks.state

    # ══════════════════════════════════════════════════════════════════
    #  OBSERVATION
    # ══════════════════════════════════════════════════════════════════

    def subscribe_time(self, slot: Callable[[TimeValue], None]) -> Callable[[], None]:
        """Connect *slot* and replay the current value to it at once."""
        return self._subscribe(self.time_changed, slot, lambda: self._record.time)

    def subscribe_state(self, slot: Callable[[TimerState], None]) -> Callable[[], None]:
        """Connect *slot* and replay the current state to it at once."""
        return self._subscribe(self.state_changed, slot, lambda: self._record.state)

    def _subscribe(self, signal, slot, current) -> Callable[[], None]:
        with self._lock:
            connection = signal.connect(slot)
            slot(current())

        def unsubscribe() -> None:
            try:
                signal.disconnect(connection)
            except TypeError:
                pass  # already disconnected

        return unsubscribe

    # ══════════════════════════════════════════════════════════════════
    #  COMMANDS
    # ══════════════════════════════════════════════════════════════════

    def start(self) -> None:
        """Begin (or resume) counting down.  Valid from READY and PAUSED."""
        with self._lock:
            if self._closed:
                return
            if self._record.state not in (TimerState.READY, TimerState.PAUSED):
                return
            expiry = self._clock() + self._record.time.remaining
            self._store.save_expiry(self.identity, expiry, TimerState.RUNNING)
            logger.debug("Timer %s running until %.3f", self.identity, expiry)

            self._expiry = expiry
            self._schedule_alarm(expiry)
            self._set_state(TimerState.RUNNING)
            self._run_ticks()

    def pause(self) -> None:
        """Freeze the countdown.  Only valid while RUNNING."""
        with self._lock:
            if self._closed or self._record.state is not TimerState.RUNNING:
                return
            remaining = self._remaining_now()
            if remaining <= 0:
                self._finish()
                return
            time = self._record.time.with_remaining(remaining)
            self._store.save_time(self.identity, time, TimerState.PAUSED)
            logger.debug("Timer %s paused at %.3f s", self.identity, remaining)

            self._ticks.suspend()
            self._expiry = None
            self._set_time(time)
            self._set_state(TimerState.PAUSED)
            self._cancel_alarm()

    def stop(self) -> None:
        """Finish now.  Valid from RUNNING and PAUSED."""
        with self._lock:
            if self._closed:
                return
            if self._record.state not in (TimerState.RUNNING, TimerState.PAUSED):
                return
            self._finish(cancel_alarm=True)

    def reset(self) -> None:
        """Rewind to the full duration and return to READY."""
        with self._lock:
            if self._closed:
                return
            self._reset(self._record.time.turned_back())

    def update(self, name: str, tag: str, time: TimeValue) -> None:
        """Edit metadata and duration; always returns the timer to READY."""
        with self._lock:
            if self._closed:
                return
            fresh = time.turned_back()
            # One write carries metadata, duration and READY together.
            self._store.update(self.identity, name=name, tag=tag, time=fresh)
            logger.debug("Timer %s updated to %r [%s] %s", self.identity, name, tag, fresh)

            self._record.name = name
            self._record.tag = tag
            self._rewind(fresh)

    def close(self) -> None:
        """Release background resources, keeping the snapshot intact.

        Used when the timer is deleted or the process shuts down.  Safe to
        call more than once.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._ticks.teardown()
            self._expiry = None
            self._cancel_alarm(always=True)

    # ══════════════════════════════════════════════════════════════════
    #  INTERNAL: tick loop
    # ══════════════════════════════════════════════════════════════════

    def _on_tick(self) -> None:
        with self._lock:
            if self._closed or self._expiry is None:
                return
            if self._record.state is not TimerState.RUNNING:
                return
            remaining = self._remaining_now()
            if remaining <= 0:
                try:
                    self._finish()
                except PersistenceUnavailable as exc:
                    # Stay RUNNING; the next tick tries again.
                    logger.exception("Timer %s could not record expiry", self.identity)
                    self.error_occurred.emit(exc)
                return
            self._set_time(self._record.time.with_remaining(remaining))

    def _run_ticks(self) -> None:
        if self._ticks.state is TickHandleState.ABSENT:
            self._ticks.activate()
        elif self._ticks.state is TickHandleState.SUSPENDED:
            self._ticks.resume()

    def _remaining_now(self) -> float:
        """Seconds to expiry, never above the last published value."""
        remaining = max(0.0, self._expiry - self._clock())
        return min(remaining, self._record.time.remaining)

    # ══════════════════════════════════════════════════════════════════
    #  INTERNAL: transitions
    # ══════════════════════════════════════════════════════════════════

    def _finish(self, cancel_alarm: bool = False) -> None:
        time = self._record.time.expired()
        self._store.save_time(self.identity, time, TimerState.FINISHED)
        logger.debug("Timer %s finished", self.identity)

        self._ticks.teardown()
        if cancel_alarm:
            self._cancel_alarm()
        else:
            # Natural expiry: the alarm fires on its own.
            self._record.alarm_id = None
        self._expiry = None
        self._set_time(time)
        self._set_state(TimerState.FINISHED)

    def _reset(self, time: TimeValue) -> None:
        self._store.save_time(self.identity, time, TimerState.READY)
        self._rewind(time)

    def _rewind(self, time: TimeValue) -> None:
        """In-memory half of a reset, once READY has been persisted."""
        self._ticks.teardown()
        self._expiry = None
        self._cancel_alarm(always=True)
        self._set_time(time)
        self._set_state(TimerState.READY)

    def _set_time(self, time: TimeValue) -> None:
        self._record.time = time
        self.time_changed.emit(time)

    def _set_state(self, state: TimerState) -> None:
        self._record.state = state
        self.state_changed.emit(state)

    # ══════════════════════════════════════════════════════════════════
    #  INTERNAL: alarms
    # ══════════════════════════════════════════════════════════════════

    def _schedule_alarm(self, fire_at: float) -> None:
        identifier = alarm_identifier(self.identity)
        try:
            self._alarms.cancel(identifier)
            self._alarms.schedule(
                identifier, fire_at, AlarmPayload.for_timer(self._record.name)
            )
        except AlarmSchedulingFailed as exc:
            logger.warning("Alarm for timer %s not scheduled: %s", self.identity, exc)
            self._record.alarm_id = None
            self.error_occurred.emit(exc)
            return
        self._record.alarm_id = identifier

    def _cancel_alarm(self, always: bool = False) -> None:
        """Cancel the tracked alarm.  With *always*, cancel this timer's
        alarm identifier even when none is tracked, which also catches an
        alarm left pending by a natural expiry."""
        identifier = self._record.alarm_id
        if identifier is None:
            if not always:
                return
            identifier = alarm_identifier(self.identity)
        self._record.alarm_id = None
        try:
            self._alarms.cancel(identifier)
        except AlarmSchedulingFailed as exc:
            logger.warning("Alarm %s not cancelled: %s", identifier, exc)
            self.error_occurred.emit(exc)

    # ══════════════════════════════════════════════════════════════════
    #  INTERNAL: reconciliation
    # ══════════════════════════════════════════════════════════════════

    def _restore(self) -> None:
        """Adopt the persisted snapshot, catching up with the wall clock."""
        snapshot = self._store.find(self.identity)
        if snapshot is None:
            return

        self._record = replace(snapshot.to_record(), identity=self.identity)
        if snapshot.state is not TimerState.RUNNING or snapshot.expiry is None:
            if snapshot.state is TimerState.RUNNING:
                # Running without an expiry cannot be resumed; hold it.
                logger.warning("Timer %s stored as running without expiry", self.identity)
                self._record.state = TimerState.PAUSED
            logger.info(
                "Restored timer %s: %s, %s left",
                self.identity, self._record.state.value, self._record.time,
            )
            return

        self._expiry = snapshot.expiry
        remaining = self._remaining_now()
        logger.info(
            "Restored running timer %s with %.3f s left", self.identity, remaining
        )
        if remaining <= 0:
            try:
                self._finish()
                return
            except PersistenceUnavailable as exc:
                # Keep RUNNING so the first tick records the expiry.
                logger.exception("Timer %s could not record expiry", self.identity)
                self.error_occurred.emit(exc)
        else:
            self._record.time = self._record.time.with_remaining(remaining)
            self._schedule_alarm(self._expiry)
        self._run_ticks()
