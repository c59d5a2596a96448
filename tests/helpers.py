"""Shared test helpers for Multimer."""

from __future__ import annotations

from dataclasses import replace

from multimer.timer.errors import AlarmSchedulingFailed, PersistenceUnavailable
from multimer.timer.ports import AlarmPayload, AlarmScheduler, TimerStore
from multimer.timer.record import Snapshot, TimerRecord, TimerState
from multimer.timer.ticker import TickHandle
from multimer.timer.time_value import TimeValue


class SignalCollector:
    """Utility to capture pyqtSignal emissions into a list."""

    def __init__(self):
        self.items: list = []

    def slot(self, *args):
        self.items.append(args if len(args) > 1 else args[0] if args else None)

    def __call__(self, *args):
        self.slot(*args)

    def __len__(self):
        return len(self.items)

    def __getitem__(self, idx):
        return self.items[idx]

    @property
    def last(self):
        return self.items[-1] if self.items else None

    def clear(self):
        self.items.clear()


class FakeClock:
    """Wall clock the test moves by hand."""

    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ManualTickScheduler:
    """Stands in for ``TickScheduler``; ticks only when ``tick()`` is called."""

    def __init__(self):
        self.handles: list[TickHandle] = []

    def add(self, handle: TickHandle) -> None:
        self.handles.append(handle)

    def discard(self, handle: TickHandle) -> None:
        self.handles = [h for h in self.handles if h is not handle]

    def shutdown(self, timeout=None) -> None:
        self.handles.clear()

    @property
    def pending(self) -> int:
        return len(self.handles)

    def tick(self, times: int = 1) -> None:
        for _ in range(times):
            for handle in list(self.handles):
                handle.fire()


class FakeStore(TimerStore):
    """Dictionary-backed store that records calls and can be made to fail."""

    def __init__(self):
        self.snapshots: dict[str, Snapshot] = {}
        self.calls: list[tuple] = []
        self.fail = False

    def _check(self, call: tuple) -> None:
        if self.fail:
            raise PersistenceUnavailable("store offline")
        self.calls.append(call)

    def calls_named(self, name: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == name]

    def find(self, identity):
        if self.fail:
            raise PersistenceUnavailable("store offline")
        return self.snapshots.get(identity)

    def save_time(self, identity, time, state):
        self._check(("save_time", identity, time, state))
        self.snapshots[identity] = replace(
            self.snapshots[identity],
            total=time.total, remaining=time.remaining, expiry=None, state=state,
        )

    def save_expiry(self, identity, expiry, state):
        self._check(("save_expiry", identity, expiry, state))
        self.snapshots[identity] = replace(
            self.snapshots[identity], remaining=None, expiry=expiry, state=state,
        )

    def update(self, identity, name=None, tag=None, time=None):
        self._check(("update", identity, name, tag, time))
        snap = self.snapshots[identity]
        self.snapshots[identity] = replace(
            snap,
            name=snap.name if name is None else name,
            tag=snap.tag if tag is None else tag,
            total=snap.total if time is None else time.total,
            remaining=snap.remaining if time is None else time.remaining,
            expiry=snap.expiry if time is None else None,
            state=snap.state if time is None else TimerState.READY,
        )

    def create(self, record: TimerRecord):
        self._check(("create", record.identity))
        self.snapshots[record.identity] = Snapshot(
            identity=record.identity,
            name=record.name,
            tag=record.tag,
            total=record.time.total,
            state=record.state,
            remaining=record.time.remaining,
        )

    def delete(self, identity):
        self._check(("delete", identity))
        self.snapshots.pop(identity, None)

    def all(self):
        if self.fail:
            raise PersistenceUnavailable("store offline")
        return list(self.snapshots.values())


class FakeAlarms(AlarmScheduler):
    """Alarm center that keeps pending alarms in a dict."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.pending: dict[str, tuple[float, AlarmPayload]] = {}
        self.calls: list[tuple] = []
        self.fired: list[tuple[str, float]] = []
        self.fail = False

    def schedule(self, identifier, fire_at, payload):
        if self.fail:
            raise AlarmSchedulingFailed("notifications denied")
        self.calls.append(("schedule", identifier, fire_at))
        if fire_at <= self.clock():
            return
        self.pending[identifier] = (fire_at, payload)

    def cancel(self, identifier):
        if self.fail:
            raise AlarmSchedulingFailed("notifications denied")
        self.calls.append(("cancel", identifier))
        self.pending.pop(identifier, None)

    def fire_due(self) -> None:
        """Deliver every alarm whose fire time has been reached."""
        for identifier, (fire_at, _payload) in list(self.pending.items()):
            if fire_at <= self.clock():
                del self.pending[identifier]
                self.fired.append((identifier, fire_at))


def stored_timer(
    store: FakeStore,
    total: float = 60,
    *,
    name: str = "Tea",
    tag: str = "kitchen",
) -> TimerRecord:
    """Create a READY record and persist it."""
    record = TimerRecord(name=name, tag=tag, time=TimeValue(total))
    store.create(record)
    store.calls.clear()
    return record


def running_snapshot(record: TimerRecord, expiry: float) -> Snapshot:
    return Snapshot(
        identity=record.identity,
        name=record.name,
        tag=record.tag,
        total=record.time.total,
        state=TimerState.RUNNING,
        expiry=expiry,
    )
