import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional


@dataclass
class PendingTrigger:
    command: str
    deadline: float
    timer: Optional[Any] = None


class Debouncer:
    """Trailing-edge debounce of command triggers.

    Every notify() pushes the deadline back to now + interval and replaces the
    stored command. Only when the interval passes without another notify()
    does the callback run, once, with the latest command. At most one
    PendingTrigger exists at any time.

    The callback always runs on the timer thread, never inside notify(),
    even with a zero interval.
    """

    def __init__(
        self,
        interval_ms: int,
        callback: Callable[[str], None],
        timer_factory: Callable[..., Any] = threading.Timer,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.interval = interval_ms / 1000.0
        self._callback = callback
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._pending: Optional[PendingTrigger] = None
        self.log = logger or logging.getLogger("globwatch")

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._pending is not None

    @property
    def deadline(self) -> Optional[float]:
        """time.monotonic() value at which the pending trigger fires, if any."""
        with self._lock:
            return self._pending.deadline if self._pending is not None else None

    def notify(self, command: str) -> None:
        with self._lock:
            if self._pending is not None and self._pending.timer is not None:
                self._pending.timer.cancel()

            trigger = PendingTrigger(command=command, deadline=time.monotonic() + self.interval)
            trigger.timer = self._timer_factory(self.interval, self._fire, args=(trigger,))
            trigger.timer.daemon = True
            self._pending = trigger
            trigger.timer.start()

    def cancel(self) -> None:
        with self._lock:
            trigger, self._pending = self._pending, None
        if trigger is not None and trigger.timer is not None:
            trigger.timer.cancel()

    def _fire(self, trigger: PendingTrigger) -> None:
        with self._lock:
            # A timer cancelled while already waiting on the lock must not fire
            if self._pending is not trigger:
                return
            self._pending = None

        self.log.debug(
            f"Debounce elapsed for {trigger.command!r} "
            f"({time.monotonic() - trigger.deadline:+.3f}s from deadline)"
        )
        try:
            self._callback(trigger.command)
        except Exception as e:
            self.log.exception(f"Debounced dispatch failed for {trigger.command!r}: {e}")
