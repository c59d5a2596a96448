"""Background tick sources.

One ``TickScheduler`` thread drives the periodic handlers of every engine,
independent of the Qt main thread.  Each engine holds a ``TickHandle``
whose execution state is explicit:

ABSENT     No source registered.
ACTIVE     Registered and firing every interval.
SUSPENDED  Registered but silent; keeps its place in the schedule.

Valid moves: ABSENT → ACTIVE (activate), ACTIVE ⇄ SUSPENDED
(suspend / resume), ACTIVE → ABSENT (cancel).  A suspended handle must be
resumed before it can be cancelled.
"""

from __future__ import annotations

import heapq
import itertools
import logging
import threading
import time
from enum import Enum
from typing import Callable

from .errors import TickHandleError


logger = logging.getLogger(__name__)

DEFAULT_TICK_INTERVAL = 0.1  # seconds


class TickHandleState(Enum):
    ABSENT = "absent"
    ACTIVE = "active"
    SUSPENDED = "suspended"


class TickScheduler:
    """Shared periodic timer thread.

    Handlers run on the scheduler thread, one at a time.  A handler that
    raises is logged and keeps its slot.
    """

    def __init__(self, name: str = "multimer-ticks") -> None:
        self._name = name
        self._cond = threading.Condition()
        self._queue: list[tuple[float, int, TickHandle]] = []
        self._seq = itertools.count()
        self._thread: threading.Thread | None = None
        self._stopped = False

    def add(self, handle: TickHandle) -> None:
        with self._cond:
            if self._stopped:
                raise RuntimeError("tick scheduler has been shut down")
            due = time.monotonic() + handle.interval
            heapq.heappush(self._queue, (due, next(self._seq), handle))
            self._ensure_thread()
            self._cond.notify()

    def discard(self, handle: TickHandle) -> None:
        with self._cond:
            self._queue = [entry for entry in self._queue if entry[2] is not handle]
            heapq.heapify(self._queue)
            self._cond.notify()

    def shutdown(self, timeout: float | None = 1.0) -> None:
        with self._cond:
            self._stopped = True
            self._queue.clear()
            self._cond.notify()
            thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    @property
    def pending(self) -> int:
        with self._cond:
            return len(self._queue)

    # ── internal ──────────────────────────────────────────────────────

    def _ensure_thread(self) -> None:
        if self._thread is None or not self._thread.is_alive():
            self._thread = threading.Thread(
                target=self._run, name=self._name, daemon=True
            )
            self._thread.start()

    def _run(self) -> None:
        while True:
            with self._cond:
                while not self._stopped:
                    if not self._queue:
                        self._cond.wait()
                        continue
                    delay = self._queue[0][0] - time.monotonic()
                    if delay <= 0:
                        break
                    self._cond.wait(delay)
                if self._stopped:
                    return
                due, _, handle = heapq.heappop(self._queue)
                next_due = max(due + handle.interval, time.monotonic())
                heapq.heappush(self._queue, (next_due, next(self._seq), handle))

            try:
                handle.fire()
            except Exception:
                logger.exception("Tick handler failed")


_shared: TickScheduler | None = None
_shared_lock = threading.Lock()


def shared_scheduler() -> TickScheduler:
    """The process-wide scheduler, created lazily."""
    global _shared
    with _shared_lock:
        if _shared is None:
            _shared = TickScheduler()
        return _shared


class TickHandle:
    """Explicit three-state handle around one periodic tick source."""

    def __init__(
        self,
        handler: Callable[[], None],
        scheduler: TickScheduler,
        interval: float = DEFAULT_TICK_INTERVAL,
    ) -> None:
        if interval <= 0:
            raise ValueError("tick interval must be positive")
        self._handler = handler
        self._scheduler = scheduler
        self.interval = interval
        self._state = TickHandleState.ABSENT

    @property
    def state(self) -> TickHandleState:
        return self._state

    def activate(self) -> None:
        if self._state is not TickHandleState.ABSENT:
            raise TickHandleError(f"cannot activate a {self._state.value} handle")
        self._scheduler.add(self)
        self._state = TickHandleState.ACTIVE

    def suspend(self) -> None:
        if self._state is not TickHandleState.ACTIVE:
            raise TickHandleError(f"cannot suspend a {self._state.value} handle")
        self._state = TickHandleState.SUSPENDED

    def resume(self) -> None:
        if self._state is not TickHandleState.SUSPENDED:
            raise TickHandleError(f"cannot resume a {self._state.value} handle")
        self._state = TickHandleState.ACTIVE

    def cancel(self) -> None:
        if self._state is TickHandleState.SUSPENDED:
            raise TickHandleError("cannot cancel a suspended handle; resume it first")
        if self._state is TickHandleState.ABSENT:
            return
        self._state = TickHandleState.ABSENT
        self._scheduler.discard(self)

    def teardown(self) -> None:
        """Cancel from any state, passing through ACTIVE."""
        if self._state is TickHandleState.SUSPENDED:
            self.resume()
        self.cancel()

    def fire(self) -> None:
        if self._state is TickHandleState.ACTIVE:
            self._handler()
