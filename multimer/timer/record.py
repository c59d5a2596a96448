"""Timer records, lifecycle states and persisted snapshots."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum

from .time_value import TimeValue


ALARM_PREFIX = "multimer."


class TimerState(Enum):
    READY = "ready"
    RUNNING = "running"
    PAUSED = "paused"
    FINISHED = "finished"


def new_identity() -> str:
    return str(uuid.uuid4())


def alarm_identifier(identity: str) -> str:
    """Token the alarm center keys this timer's notification on."""
    return f"{ALARM_PREFIX}{identity}"


@dataclass
class TimerRecord:
    """Live representation of one countdown timer.

    ``alarm_id`` is only set while a notification is pending.
    """

    name: str
    tag: str
    time: TimeValue
    state: TimerState = TimerState.READY
    identity: str = field(default_factory=new_identity)
    alarm_id: str | None = None


@dataclass(frozen=True)
class Snapshot:
    """Durable ground truth for one timer.

    ``expiry`` (epoch seconds) is meaningful while RUNNING; ``remaining``
    in every other state.
    """

    identity: str
    name: str
    tag: str
    total: float
    state: TimerState
    remaining: float | None = None
    expiry: float | None = None

    def to_record(self) -> TimerRecord:
        """Record as stored, before wall-clock reconciliation.

        RUNNING snapshots carry no remaining value; the full total is a
        placeholder the engine replaces from ``expiry``.
        """
        if self.remaining is None:
            time = TimeValue(self.total)
        else:
            time = TimeValue(self.total, min(max(self.remaining, 0.0), self.total))
        return TimerRecord(
            name=self.name,
            tag=self.tag,
            time=time,
            state=self.state,
            identity=self.identity,
        )
