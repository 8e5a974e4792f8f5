"""globwatch: run a shell command whenever files matching a glob change.

Exports:
- app, main: Typer CLI entrypoints (from globwatch.cli)
- WatchSession, SessionState: event-to-command orchestration (from globwatch.session)
- Debouncer: trailing-edge trigger coalescing (from globwatch.debounce)
- CommandRunner, RunOutcome: shell command execution (from globwatch.runner)
- EventClassifier, EventKind, RawEvent: event vocabulary (from globwatch.events)
- WatchConfiguration, merge_options: configuration (from globwatch.config)
- GlobWatcher: watchdog-backed glob watcher (from globwatch.observer)
"""

__version__ = "0.1.0"

from .config import (  # noqa: E402,F401
    DEFAULT_OPTIONS,
    ConfigurationError,
    WatchConfiguration,
    WatcherOptions,
    merge_options,
    watcher_options,
)
from .debounce import Debouncer  # noqa: E402,F401
from .events import EventClassifier, EventKind, RawEvent  # noqa: E402,F401
from .observer import GlobWatcher  # noqa: E402,F401
from .runner import CommandRunner, RunOutcome  # noqa: E402,F401
from .session import SessionState, WatchSession  # noqa: E402,F401
from .cli import app, main  # noqa: E402,F401

__all__ = [
    "app",
    "main",
    "WatchSession",
    "SessionState",
    "Debouncer",
    "CommandRunner",
    "RunOutcome",
    "EventClassifier",
    "EventKind",
    "RawEvent",
    "WatchConfiguration",
    "WatcherOptions",
    "DEFAULT_OPTIONS",
    "ConfigurationError",
    "merge_options",
    "watcher_options",
    "GlobWatcher",
]
