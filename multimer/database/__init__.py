"""Database package."""

from .db import get_session, init_db, configure_engine
from .models import TimerRow
from .store import SqlTimerStore

__all__ = ["get_session", "init_db", "configure_engine", "TimerRow", "SqlTimerStore"]
