"""Shared pytest fixtures for Multimer tests."""

import os
import sys
import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PyQt6.QtWidgets import QApplication

from multimer.database.db import configure_engine, init_db
from multimer.timer.engine import TimerEngine

from helpers import FakeAlarms, FakeClock, FakeStore, ManualTickScheduler, stored_timer


@pytest.fixture(scope="session")
def qapp():
    """A single QApplication instance shared across the entire test run."""
    app = QApplication.instance() or QApplication(sys.argv)
    yield app


@pytest.fixture(autouse=True)
def test_db():
    """Point every test at a fresh in-memory SQLite database."""
    configure_engine("sqlite:///:memory:")
    init_db()
    yield


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def ticks():
    """Tick scheduler that only fires when the test says so."""
    return ManualTickScheduler()


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def alarms(clock):
    return FakeAlarms(clock)


@pytest.fixture
def make_engine(qapp, store, alarms, clock, ticks):
    """Factory for engines wired to the fakes above."""
    engines = []

    def _make(record=None, **kwargs):
        if record is None:
            record = stored_timer(store, kwargs.pop("total", 60))
        engine = TimerEngine(
            record, store, alarms, clock=clock, scheduler=ticks, **kwargs
        )
        engines.append(engine)
        return engine

    yield _make
    for engine in engines:
        engine.close()


@pytest.fixture
def engine(make_engine):
    """Fresh 60-second READY engine."""
    return make_engine()
