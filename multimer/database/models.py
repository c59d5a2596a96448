"""SQLAlchemy ORM models for Multimer."""

from datetime import datetime
from sqlalchemy import Column, String, Float, DateTime
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


class TimerRow(Base):
    """Persisted snapshot of one timer.

    ``expiry`` is an epoch timestamp and is only set while running;
    ``remaining`` is set in every other state.
    """

    __tablename__ = "timers"

    identity = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False, default="")
    tag = Column(String(64), nullable=False, default="")
    total_seconds = Column(Float, nullable=False)
    remaining_seconds = Column(Float, nullable=True)
    expiry = Column(Float, nullable=True)
    state = Column(String(20), nullable=False, default="ready")  # ready | running | paused | finished
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    def __repr__(self) -> str:
        return (
            f"<TimerRow identity={self.identity} name={self.name!r} "
            f"state={self.state}>"
        )
