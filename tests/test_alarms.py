"""Tests for the in-process alarm center."""

import threading
import time

import pytest
from PyQt6.QtCore import Qt

from multimer.notifications.alarms import AlarmCenter
from multimer.timer.ports import AlarmPayload, AlarmScheduler

from helpers import FakeClock


PAYLOAD = AlarmPayload.for_timer("Tea")


@pytest.fixture
def center(qapp):
    c = AlarmCenter()
    yield c
    c.shutdown()


@pytest.fixture
def fired(center):
    """Alarm deliveries, collected straight from the timer thread."""
    items = []
    lock = threading.Lock()

    def slot(identifier, payload):
        with lock:
            items.append((identifier, payload))

    center.alarm_fired.connect(slot, Qt.ConnectionType.DirectConnection)
    return items


def _wait_for(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class TestAlarmCenter:

    def test_is_an_alarm_scheduler(self, center):
        assert isinstance(center, AlarmScheduler)

    def test_payload_content(self):
        assert PAYLOAD.title == "Timer finished"
        assert PAYLOAD.body == "Tea finished"

    def test_fires_once_at_deadline(self, center, fired):
        center.schedule("multimer.a", time.time() + 0.05, PAYLOAD)
        assert center.is_pending("multimer.a")
        assert _wait_for(lambda: len(fired) == 1)
        time.sleep(0.1)
        assert fired == [("multimer.a", PAYLOAD)]
        assert not center.is_pending("multimer.a")

    @pytest.mark.parametrize("offset", [0, -10])
    def test_past_or_due_alarm_is_not_scheduled(self, center, fired, offset):
        center.schedule("multimer.a", time.time() + offset, PAYLOAD)
        assert center.pending == []
        time.sleep(0.05)
        assert fired == []

    def test_cancel_prevents_delivery(self, center, fired):
        center.schedule("multimer.a", time.time() + 0.05, PAYLOAD)
        center.cancel("multimer.a")
        time.sleep(0.15)
        assert fired == []

    def test_cancel_unknown_is_noop(self, center):
        center.cancel("multimer.none")

    def test_reschedule_replaces_pending_alarm(self, center, fired):
        center.schedule("multimer.a", time.time() + 0.05, PAYLOAD)
        later = AlarmPayload.for_timer("Tea (again)")
        center.schedule("multimer.a", time.time() + 0.1, later)
        assert center.pending == ["multimer.a"]
        assert _wait_for(lambda: len(fired) == 1)
        time.sleep(0.1)
        assert fired == [("multimer.a", later)]

    def test_alarms_are_independent(self, center, fired):
        center.schedule("multimer.a", time.time() + 0.03, PAYLOAD)
        center.schedule("multimer.b", time.time() + 0.03, PAYLOAD)
        center.cancel("multimer.a")
        assert _wait_for(lambda: len(fired) == 1)
        assert fired[0][0] == "multimer.b"

    def test_shutdown_disarms_everything(self, center, fired):
        center.schedule("multimer.a", time.time() + 0.05, PAYLOAD)
        center.schedule("multimer.b", time.time() + 0.05, PAYLOAD)
        center.shutdown()
        assert center.pending == []
        time.sleep(0.15)
        assert fired == []


class TestWallClockDeadline:
    """Alarms follow the wall clock even when it jumps, as after a suspend."""

    @pytest.fixture
    def wall(self):
        return FakeClock()

    @pytest.fixture
    def jumpy(self, qapp, wall):
        c = AlarmCenter(clock=wall, recheck_interval=0.02)
        yield c
        c.shutdown()

    def _collect(self, center):
        items = []
        center.alarm_fired.connect(
            lambda identifier, payload: items.append(identifier),
            Qt.ConnectionType.DirectConnection,
        )
        return items

    def test_fires_when_wall_clock_jumps_past_deadline(self, jumpy, wall):
        fired = self._collect(jumpy)
        jumpy.schedule("multimer.a", wall.now + 3600, PAYLOAD)
        time.sleep(0.1)
        assert fired == []
        assert jumpy.is_pending("multimer.a")

        wall.advance(3600)

        assert _wait_for(lambda: fired == ["multimer.a"])
        assert not jumpy.is_pending("multimer.a")

    def test_does_not_fire_before_wall_clock_deadline(self, jumpy, wall):
        fired = self._collect(jumpy)
        jumpy.schedule("multimer.a", wall.now + 5, PAYLOAD)
        wall.advance(4.9)
        time.sleep(0.1)
        assert fired == []
        assert jumpy.pending == ["multimer.a"]

    def test_cancel_stops_rechecking(self, jumpy, wall):
        fired = self._collect(jumpy)
        jumpy.schedule("multimer.a", wall.now + 10, PAYLOAD)
        time.sleep(0.05)
        jumpy.cancel("multimer.a")
        wall.advance(10)
        time.sleep(0.1)
        assert fired == []

    def test_recheck_interval_must_be_positive(self, qapp):
        with pytest.raises(ValueError):
            AlarmCenter(recheck_interval=0)
