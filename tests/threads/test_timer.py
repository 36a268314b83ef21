"""
Tests for the TimerThread
"""

# Standard
from datetime import datetime, timedelta
import threading

# Third Party
import pytest

# Local
from myapp_operator.threads import TimerThread


@pytest.fixture
def timer():
    timer = TimerThread()
    timer.start_thread()
    yield timer
    timer.stop_thread()


def test_put_event(timer):
    """Make sure a scheduled action runs with its arguments"""
    done = threading.Event()
    received = []

    def action(*args, **kwargs):
        received.append((args, kwargs))
        done.set()

    timer.put_event(datetime.now() + timedelta(seconds=0.05), action, 1, key="val")
    assert done.wait(5)
    assert received == [((1,), {"key": "val"})]


def test_events_run_in_time_order(timer):
    """Make sure the earliest event runs first"""
    done = threading.Event()
    order = []
    now = datetime.now()
    timer.put_event(now + timedelta(seconds=0.2), lambda: (order.append(2), done.set()))
    timer.put_event(now + timedelta(seconds=0.1), order.append, 1)
    assert done.wait(5)
    assert order == [1, 2]


def test_cancel(timer):
    """Make sure a cancelled event never runs"""
    done = threading.Event()
    ran = []
    event = timer.put_event(datetime.now() + timedelta(seconds=0.05), ran.append, 1)
    event.cancel()
    timer.put_event(datetime.now() + timedelta(seconds=0.1), done.set)
    assert done.wait(5)
    assert not ran


def test_stopped_timer_rejects_events():
    """Make sure a stopped timer does not take new events"""
    timer = TimerThread()
    timer.start_thread()
    timer.stop_thread()
    assert timer.put_event(datetime.now(), lambda: None) is None
