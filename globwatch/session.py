import logging
import threading
from concurrent.futures import Executor, ThreadPoolExecutor
from enum import Enum
from typing import Any, Callable, Optional

from .config import WatchConfiguration
from .debounce import Debouncer
from .events import EventClassifier, RawEvent
from .runner import CommandRunner, RunOutcome


class SessionState(Enum):
    STARTING = "starting"
    READY = "ready"
    WATCHING = "watching"
    STOPPED = "stopped"


class WatchSession:
    """Turn watcher callbacks into debounced, serialized command runs.

    The filesystem watcher drives on_event / on_ready / on_error. Events seen
    while STARTING belong to the initial scan and are only logged. Commands
    run one at a time on a worker thread; a trigger arriving while a command
    runs is queued, and only the latest queued trigger is kept.
    """

    def __init__(
        self,
        config: WatchConfiguration,
        runner: Optional[CommandRunner] = None,
        logger: Optional[logging.Logger] = None,
        executor: Optional[Executor] = None,
        timer_factory: Callable[..., Any] = threading.Timer,
    ) -> None:
        self.config = config
        self.runner = runner or CommandRunner()
        self.log = logger or logging.getLogger("globwatch")
        self.classifier = EventClassifier(config.verbose, self.log)
        self.debouncer = Debouncer(config.debounce, self._dispatch, timer_factory, self.log)
        self.executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="globwatch-run"
        )
        self._lock = threading.Lock()
        self._stopped = threading.Event()
        self._state = SessionState.STARTING
        self._exit_code = 0
        self._running = False
        self._queued: Optional[str] = None

    @property
    def state(self) -> SessionState:
        with self._lock:
            return self._state

    @property
    def exit_code(self) -> int:
        return self._exit_code

    # Watcher callbacks

    def on_event(self, event: RawEvent) -> None:
        state = self.state
        if state is SessionState.STOPPED:
            return
        self.classifier.classify(event)
        if state is SessionState.STARTING:
            return
        self.debouncer.notify(self.config.command)

    def on_ready(self) -> None:
        with self._lock:
            if self._state is not SessionState.STARTING:
                return
            self._state = SessionState.READY

        self.log.info(f'Watching "{self.config.pattern}" ..')
        if self.config.initial:
            self._dispatch(self.config.command)

        with self._lock:
            if self._state is SessionState.READY:
                self._state = SessionState.WATCHING

    def on_error(self, error: BaseException) -> None:
        self.log.error(
            f"Error: {error}",
            exc_info=(type(error), error, error.__traceback__),
        )
        self._halt(exit_code=1)

    # Lifecycle

    def stop(self) -> None:
        self._halt(exit_code=0)

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._stopped.wait(timeout)

    def close(self) -> None:
        self.debouncer.cancel()
        self.executor.shutdown(wait=False)

    def _halt(self, exit_code: int) -> None:
        with self._lock:
            if self._state is SessionState.STOPPED:
                return
            self._state = SessionState.STOPPED
            self._exit_code = exit_code
            self._queued = None
        self.debouncer.cancel()
        self._stopped.set()

    # Command dispatch

    def _dispatch(self, command: str) -> None:
        with self._lock:
            if self._state is SessionState.STOPPED:
                return
            if self._running:
                if self._queued is not None:
                    self.log.debug(f"Dropping queued run superseded by a newer trigger: {self._queued}")
                self._queued = command
                return
            self._running = True
        self.executor.submit(self._run_until_idle, command)

    def _run_until_idle(self, command: str) -> None:
        next_command: Optional[str] = command
        while next_command is not None:
            self._report(next_command, self._execute(next_command))
            with self._lock:
                next_command, self._queued = self._queued, None
                if self._state is SessionState.STOPPED:
                    next_command = None
                if next_command is None:
                    self._running = False

    def _execute(self, command: str) -> RunOutcome:
        try:
            return self.runner.execute(command)
        except Exception as e:
            self.log.exception(f"Unexpected failure while running {command}")
            return RunOutcome(False, str(e))

    def _report(self, command: str, outcome: RunOutcome) -> None:
        if outcome.succeeded:
            level = logging.INFO if self.config.verbose else logging.DEBUG
            self.log.log(level, f"Finished {command}")
        else:
            self.log.error(f"Error when executing {command}: {outcome.diagnostic}")
