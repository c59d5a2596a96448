"""One engine per live timer identity."""

from __future__ import annotations

import logging
import threading
from typing import Any

from PyQt6.QtCore import QObject, pyqtSignal

from .engine import TimerEngine
from .errors import AlarmSchedulingFailed
from .ports import AlarmScheduler, TimerStore
from .record import TimerRecord, alarm_identifier
from .time_value import TimeValue


logger = logging.getLogger(__name__)


class EngineRegistry(QObject):
    """Creates, restores and destroys ``TimerEngine`` instances.

    Engines share the registry's store, alarm center and tick scheduler;
    extra keyword arguments (``clock``, ``scheduler``, ``tick_interval``)
    are handed to every engine it builds.

    Signals
    -------
    engine_added(engine: TimerEngine)
    engine_removed(identity: str)
    """

    engine_added = pyqtSignal(object)
    engine_removed = pyqtSignal(str)

    def __init__(
        self,
        store: TimerStore,
        alarms: AlarmScheduler,
        parent: QObject | None = None,
        **engine_options: Any,
    ) -> None:
        super().__init__(parent)
        self._store = store
        self._alarms = alarms
        self._engine_options = engine_options
        self._engines: dict[str, TimerEngine] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._engines)

    def __contains__(self, identity: str) -> bool:
        return identity in self._engines

    @property
    def engines(self) -> list[TimerEngine]:
        with self._lock:
            return list(self._engines.values())

    def get(self, identity: str) -> TimerEngine | None:
        with self._lock:
            return self._engines.get(identity)

    def create(self, name: str, tag: str, time: TimeValue) -> TimerEngine:
        """Persist a new READY timer and return its engine."""
        record = TimerRecord(name=name, tag=tag, time=time.turned_back())
        self._store.create(record)
        logger.info("Created timer %s (%r, %s)", record.identity, name, record.time)
        return self._attach(record)

    def restore(self) -> list[TimerEngine]:
        """Build engines for every stored timer not already live."""
        restored = []
        for snapshot in self._store.all():
            if snapshot.identity in self:
                continue
            restored.append(self._attach(snapshot.to_record()))
        logger.info("Restored %d timer(s)", len(restored))
        return restored

    def delete(self, identity: str) -> None:
        """Destroy a timer: drop its snapshot, then its ticks and alarm.

        If the store refuses, ``PersistenceUnavailable`` propagates and the
        timer stays registered and fully live.
        """
        self._store.delete(identity)
        with self._lock:
            engine = self._engines.pop(identity, None)
        if engine is not None:
            self._release(engine)
        try:
            self._alarms.cancel(alarm_identifier(identity))
        except AlarmSchedulingFailed as exc:
            logger.warning("Alarm for deleted timer %s not cancelled: %s", identity, exc)
        logger.info("Deleted timer %s", identity)
        self.engine_removed.emit(identity)

    def shutdown(self) -> None:
        """Close every engine; snapshots stay for the next launch."""
        with self._lock:
            engines = list(self._engines.values())
            self._engines.clear()
        for engine in engines:
            self._release(engine)

    def _release(self, engine: TimerEngine) -> None:
        engine.close()
        engine.setParent(None)

    def _attach(self, record: TimerRecord) -> TimerEngine:
        engine = TimerEngine(
            record, self._store, self._alarms, parent=self, **self._engine_options
        )
        with self._lock:
            self._engines[engine.identity] = engine
        self.engine_added.emit(engine)
        return engine
