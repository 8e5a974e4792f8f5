import logging
from concurrent.futures import ThreadPoolExecutor

import pytest

from conftest import BlockingRunner, InlineExecutor, RecordingRunner
from globwatch.events import EventKind, RawEvent
from globwatch.runner import RunOutcome
from globwatch.session import SessionState, WatchSession

LOGGER = "test.session"


@pytest.fixture
def make_session(make_config, runner, timers):
    def _make(runner=runner, executor=None, **overrides):
        return WatchSession(
            make_config(**overrides),
            runner=runner,
            logger=logging.getLogger(LOGGER),
            executor=executor or InlineExecutor(),
            timer_factory=timers,
        )

    return _make


def change(path="a.txt"):
    return RawEvent(EventKind.CHANGED, path)


def test_burst_of_changes_runs_once(make_session, runner, timers, caplog):
    session = make_session(debounce=100, verbose=True)
    session.on_ready()

    with caplog.at_level(logging.INFO, logger=LOGGER):
        for _ in range(3):
            session.on_event(change())

    assert caplog.messages.count("Changed file: a.txt") == 3
    assert runner.calls == []
    assert len(timers.live) == 1
    assert timers.live[0].interval == 0.1

    timers.live[0].fire()
    assert runner.calls == ["echo hi"]


def test_separated_changes_run_twice(make_session, runner, timers):
    session = make_session()
    session.on_ready()

    session.on_event(change())
    timers.live[0].fire()
    session.on_event(change())
    timers.live[-1].fire()

    assert runner.calls == ["echo hi", "echo hi"]


def test_ready_logs_and_enters_watching(make_session, caplog):
    session = make_session()
    assert session.state is SessionState.STARTING
    with caplog.at_level(logging.INFO, logger=LOGGER):
        session.on_ready()
    assert 'Watching "*.txt" ..' in caplog.messages
    assert session.state is SessionState.WATCHING


def test_repeated_ready_is_ignored(make_session, runner):
    session = make_session(initial=True)
    session.on_ready()
    session.on_ready()
    assert runner.calls == ["echo hi"]


def test_initial_run_happens_at_ready(make_session, runner, timers):
    session = make_session(initial=True)
    session.on_event(RawEvent(EventKind.ADDED, "a.txt"))
    assert runner.calls == []

    session.on_ready()
    assert runner.calls == ["echo hi"]
    # Initial scan events never reached the debouncer
    assert timers.timers == []


def test_no_run_without_initial_until_an_event(make_session, runner, timers):
    session = make_session()
    session.on_ready()
    assert runner.calls == []
    session.on_event(change())
    timers.live[0].fire()
    assert runner.calls == ["echo hi"]


def test_startup_events_are_logged_but_do_not_trigger(make_session, timers, caplog):
    session = make_session(verbose=True)
    with caplog.at_level(logging.INFO, logger=LOGGER):
        session.on_event(RawEvent(EventKind.ADDED_DIR, "src"))
    assert caplog.messages == ["Added directory: src"]
    assert timers.timers == []


def test_failing_command_keeps_watching(make_session, timers, caplog):
    failing = RecordingRunner(RunOutcome(False, "exited with code 2", 2))
    session = make_session(runner=failing)
    session.on_ready()

    with caplog.at_level(logging.ERROR, logger=LOGGER):
        session.on_event(change())
        timers.live[0].fire()

    assert "Error when executing echo hi: exited with code 2" in caplog.messages
    assert session.state is SessionState.WATCHING
    assert session.exit_code == 0
    assert not session.wait(0)


def test_successful_command_is_logged(make_session, timers, caplog):
    session = make_session(verbose=True)
    session.on_ready()
    with caplog.at_level(logging.INFO, logger=LOGGER):
        session.on_event(change())
        timers.live[0].fire()
    assert "Finished echo hi" in caplog.messages


def test_runner_exception_is_logged_not_raised(make_session, timers, caplog):
    class Broken:
        def execute(self, command):
            raise RuntimeError("no shell today")

    session = make_session(runner=Broken())
    session.on_ready()
    session.on_event(change())
    timers.live[0].fire()
    assert "no shell today" in caplog.text
    assert session.state is SessionState.WATCHING


def test_watcher_error_stops_with_failure(make_session, runner, timers, caplog):
    session = make_session()
    session.on_ready()
    session.on_event(change())

    with caplog.at_level(logging.ERROR, logger=LOGGER):
        session.on_error(OSError("inotify watch limit reached"))

    assert session.state is SessionState.STOPPED
    assert session.exit_code == 1
    assert session.wait(0)
    assert not session.debouncer.pending
    assert "Error: inotify watch limit reached" in caplog.messages
    timers.timers[0].function(*timers.timers[0].args)
    assert runner.calls == []


def test_stop_exits_cleanly_and_ignores_later_events(make_session, runner, timers):
    session = make_session()
    session.on_ready()
    session.stop()

    assert session.state is SessionState.STOPPED
    assert session.exit_code == 0
    session.on_event(change())
    assert timers.timers == []
    assert runner.calls == []


def test_error_after_stop_keeps_clean_exit(make_session):
    session = make_session()
    session.stop()
    session.on_error(RuntimeError("late"))
    assert session.exit_code == 0


def test_triggers_during_a_run_are_coalesced(make_session, timers):
    blocking = BlockingRunner()
    executor = ThreadPoolExecutor(max_workers=1)
    session = make_session(runner=blocking, executor=executor)
    session.on_ready()

    session.on_event(change())
    timers.live[-1].fire()
    assert blocking.started.wait(2)

    for _ in range(3):
        session.on_event(change())
        timers.live[-1].fire()

    blocking.release.set()
    executor.shutdown(wait=True)
    assert blocking.calls == ["echo hi", "echo hi"]


def test_debounce_logs_through_the_session_logger(make_session, timers, caplog):
    session = make_session()
    assert session.debouncer.log is session.log
    session.on_ready()
    session.on_event(change())
    with caplog.at_level(logging.DEBUG, logger=LOGGER):
        timers.live[0].fire()
    assert any(r.name == LOGGER and "Debounce elapsed" in r.getMessage() for r in caplog.records)
