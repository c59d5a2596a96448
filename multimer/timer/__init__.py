"""Timer package."""

from .engine import TimerEngine
from .errors import (
    MultimerError,
    InvalidDuration,
    PersistenceUnavailable,
    AlarmSchedulingFailed,
    TickHandleError,
)
from .ports import AlarmPayload, AlarmScheduler, TimerStore
from .record import Snapshot, TimerRecord, TimerState, alarm_identifier
from .registry import EngineRegistry
from .ticker import DEFAULT_TICK_INTERVAL, TickHandle, TickHandleState, TickScheduler
from .time_value import TimeValue

__all__ = [
    "TimerEngine",
    "EngineRegistry",
    "TimeValue",
    "TimerRecord",
    "TimerState",
    "Snapshot",
    "alarm_identifier",
    "AlarmPayload",
    "AlarmScheduler",
    "TimerStore",
    "TickHandle",
    "TickHandleState",
    "TickScheduler",
    "DEFAULT_TICK_INTERVAL",
    "MultimerError",
    "InvalidDuration",
    "PersistenceUnavailable",
    "AlarmSchedulingFailed",
    "TickHandleError",
]
