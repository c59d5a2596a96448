"""Interfaces the engine consumes: the timer store and the alarm center.

Both are shared across every engine and keyed by timer identity.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from .record import Snapshot, TimerRecord, TimerState
from .time_value import TimeValue


@dataclass(frozen=True)
class AlarmPayload:
    """Content of the "timer finished" notification."""

    title: str
    body: str

    @classmethod
    def for_timer(cls, name: str) -> AlarmPayload:
        return cls(title="Timer finished", body=f"{name} finished")


class TimerStore(ABC):
    """Durable snapshot store.

    Every method raises ``PersistenceUnavailable`` on failure.  A call that
    returns has been acknowledged; the engine relies on that before it
    touches the alarm center.
    """

    @abstractmethod
    def find(self, identity: str) -> Snapshot | None: ...

    @abstractmethod
    def save_time(self, identity: str, time: TimeValue, state: TimerState) -> None:
        """Persist an explicit remaining/total pair (READY/PAUSED/FINISHED)."""

    @abstractmethod
    def save_expiry(self, identity: str, expiry: float, state: TimerState) -> None:
        """Persist an absolute expiry instant (RUNNING)."""

    @abstractmethod
    def update(
        self,
        identity: str,
        name: str | None = None,
        tag: str | None = None,
        time: TimeValue | None = None,
    ) -> None:
        """Change metadata.  A new *time* also rewinds the stored timer to
        READY at that duration, with no expiry, in the same write."""

    @abstractmethod
    def create(self, record: TimerRecord) -> None: ...

    @abstractmethod
    def delete(self, identity: str) -> None: ...

    @abstractmethod
    def all(self) -> list[Snapshot]: ...


class AlarmScheduler(ABC):
    """One-shot notification scheduling.

    ``schedule`` with ``fire_at`` at or before now is a no-op.  Failures
    raise ``AlarmSchedulingFailed``.
    """

    @abstractmethod
    def schedule(self, identifier: str, fire_at: float, payload: AlarmPayload) -> None: ...

    @abstractmethod
    def cancel(self, identifier: str) -> None: ...
