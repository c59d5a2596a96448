"""SQLAlchemy-backed ``TimerStore``."""

from __future__ import annotations

import logging
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError

from ..timer.errors import PersistenceUnavailable
from ..timer.ports import TimerStore
from ..timer.record import Snapshot, TimerRecord, TimerState
from ..timer.time_value import TimeValue
from .db import get_session
from .models import TimerRow


logger = logging.getLogger(__name__)


@contextmanager
def _unit_of_work(action: str):
    """``get_session()`` that reports database failures as
    ``PersistenceUnavailable``."""
    try:
        with get_session() as db:
            yield db
    except SQLAlchemyError as exc:
        logger.error("Timer store could not %s: %s", action, exc)
        raise PersistenceUnavailable(f"could not {action}") from exc


def _to_snapshot(row: TimerRow) -> Snapshot:
    return Snapshot(
        identity=row.identity,
        name=row.name,
        tag=row.tag,
        total=row.total_seconds,
        state=TimerState(row.state),
        remaining=row.remaining_seconds,
        expiry=row.expiry,
    )


class SqlTimerStore(TimerStore):
    """Snapshots in the ``timers`` table, one row per identity."""

    def find(self, identity: str) -> Snapshot | None:
        with _unit_of_work(f"load timer {identity}") as db:
            row = db.get(TimerRow, identity)
            return _to_snapshot(row) if row is not None else None

    def all(self) -> list[Snapshot]:
        with _unit_of_work("list timers") as db:
            rows = db.query(TimerRow).order_by(TimerRow.created_at).all()
            return [_to_snapshot(row) for row in rows]

    def create(self, record: TimerRecord) -> None:
        with _unit_of_work(f"create timer {record.identity}") as db:
            db.add(TimerRow(
                identity=record.identity,
                name=record.name,
                tag=record.tag,
                total_seconds=record.time.total,
                remaining_seconds=record.time.remaining,
                state=record.state.value,
            ))

    def save_time(self, identity: str, time: TimeValue, state: TimerState) -> None:
        with _unit_of_work(f"save timer {identity}") as db:
            row = self._require(db, identity)
            row.total_seconds = time.total
            row.remaining_seconds = time.remaining
            row.expiry = None
            row.state = state.value

    def save_expiry(self, identity: str, expiry: float, state: TimerState) -> None:
        with _unit_of_work(f"save timer {identity}") as db:
            row = self._require(db, identity)
            row.expiry = expiry
            row.remaining_seconds = None
            row.state = state.value

    def update(
        self,
        identity: str,
        name: str | None = None,
        tag: str | None = None,
        time: TimeValue | None = None,
    ) -> None:
        with _unit_of_work(f"update timer {identity}") as db:
            row = self._require(db, identity)
            if name is not None:
                row.name = name
            if tag is not None:
                row.tag = tag
            if time is not None:
                row.total_seconds = time.total
                row.remaining_seconds = time.remaining
                row.expiry = None
                row.state = TimerState.READY.value

    def delete(self, identity: str) -> None:
        with _unit_of_work(f"delete timer {identity}") as db:
            row = db.get(TimerRow, identity)
            if row is not None:
                db.delete(row)

    @staticmethod
    def _require(db, identity: str) -> TimerRow:
        row = db.get(TimerRow, identity)
        if row is None:
            raise PersistenceUnavailable(f"no stored timer {identity}")
        return row
