"""Shared fixtures: a manually fired timer and an inline executor."""

import threading
from concurrent.futures import Executor, Future

import pytest

from globwatch.config import DEFAULT_OPTIONS, merge_options
from globwatch.runner import RunOutcome


class FakeTimer:
    """Stand-in for threading.Timer that only fires when told to."""

    def __init__(self, interval, function, args=None, kwargs=None):
        self.interval = interval
        self.function = function
        self.args = args or ()
        self.kwargs = kwargs or {}
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.function(*self.args, **self.kwargs)


class FakeTimerFactory:
    def __init__(self):
        self.timers = []

    def __call__(self, interval, function, args=None, kwargs=None):
        timer = FakeTimer(interval, function, args, kwargs)
        self.timers.append(timer)
        return timer

    @property
    def live(self):
        return [t for t in self.timers if not t.cancelled]


class InlineExecutor(Executor):
    def submit(self, fn, *args, **kwargs):
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future

    def shutdown(self, wait=True, *, cancel_futures=False):
        pass


class RecordingRunner:
    def __init__(self, outcome=None):
        self.outcome = outcome or RunOutcome(True, returncode=0)
        self.calls = []

    def execute(self, command):
        self.calls.append(command)
        return self.outcome


class BlockingRunner:
    """Runner whose first call blocks until released."""

    def __init__(self):
        self.calls = []
        self.started = threading.Event()
        self.release = threading.Event()

    def execute(self, command):
        self.calls.append(command)
        self.started.set()
        self.release.wait(5)
        return RunOutcome(True, returncode=0)


@pytest.fixture
def timers():
    return FakeTimerFactory()


@pytest.fixture
def runner():
    return RecordingRunner()


@pytest.fixture
def make_config():
    def _make(**overrides):
        values = {"pattern": "*.txt", "command": "echo hi"}
        values.update(overrides)
        return merge_options(DEFAULT_OPTIONS, values)

    return _make
