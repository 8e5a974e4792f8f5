import os
import logging
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver
from watchdog.observers.polling import PollingObserver

from .config import WatcherOptions
from .events import EventKind, RawEvent
from .handlers import GlobEventHandler, GlobMatcher
from .utils import is_binary_path, is_recursive, is_within, split_glob


def link_mapper(link: str, target: str) -> Callable[[str], str]:
    """Map paths under a symlink's real target back onto the link path."""

    def _map(path: str) -> str:
        if path == target:
            return link
        if path.startswith(target + os.sep):
            return link + path[len(target) :]
        return path

    return _map


class GlobWatcher:
    """Watch the paths selected by a glob and report them as RawEvents.

    Events, the ready signal and fatal errors are delivered through the
    on_event / on_ready / on_error callbacks.
    """

    def __init__(
        self,
        pattern: str,
        options: WatcherOptions,
        on_event: Callable[[RawEvent], None],
        on_ready: Callable[[], None],
        on_error: Callable[[BaseException], None],
    ) -> None:
        self.pattern = pattern
        self.options = options
        self.on_event = on_event
        self.on_ready = on_ready
        self.on_error = on_error

        base_dir, rest = split_glob(pattern)
        self.base_dir = Path(os.path.abspath(base_dir))
        self.recursive = is_recursive(rest)
        self.matcher = GlobMatcher(
            self.base_dir, rest, options.ignore, relative=not os.path.isabs(pattern)
        )
        self.observers: List[BaseObserver] = []
        self._failed = False

    def _build_observers(self) -> List[Tuple[BaseObserver, Optional[Callable[[str], bool]]]]:
        if not self.options.use_polling:
            return [(Observer(), None)]
        text = PollingObserver(timeout=self.options.poll_interval / 1000.0)
        binary = PollingObserver(timeout=self.options.poll_interval_binary / 1000.0)
        return [
            (text, lambda p: not is_binary_path(p)),
            (binary, is_binary_path),
        ]

    def _symlinked_dirs(self) -> List[Tuple[str, str]]:
        links = []
        if not self.recursive:
            return links
        for root, dirs, _files in os.walk(self.base_dir):
            for name in dirs:
                link = os.path.join(root, name)
                # Links back into the base are already covered by the recursive watch
                if os.path.islink(link) and not is_within(Path(link), self.base_dir):
                    links.append((link, os.path.realpath(link)))
        return links

    def _schedule(self) -> None:
        links = self._symlinked_dirs() if self.options.follow_symlinks else []
        for observer, path_filter in self._build_observers():
            handler = GlobEventHandler(self.matcher, self.on_event, path_filter)
            observer.schedule(handler, str(self.base_dir), recursive=self.recursive)
            for link, target in links:
                logging.debug(f"Following symlink {link} -> {target}")
                linked = GlobEventHandler(
                    self.matcher, self.on_event, path_filter, link_mapper(link, target)
                )
                observer.schedule(linked, target, recursive=True)
            self.observers.append(observer)

    def initial_events(self) -> List[RawEvent]:
        """Existing matches under the base directory, as added events."""
        events = []
        if not self.base_dir.is_dir():
            return events
        followlinks = self.options.follow_symlinks
        seen = set()
        for root, dirs, files in os.walk(self.base_dir, followlinks=followlinks):
            # Symlink cycles lead back to a directory already walked
            st = os.stat(root)
            if (st.st_dev, st.st_ino) in seen:
                dirs[:] = []
                continue
            seen.add((st.st_dev, st.st_ino))
            dirs.sort()
            for name in dirs:
                path = os.path.join(root, name)
                if self.matcher.matches(path):
                    events.append(RawEvent(EventKind.ADDED_DIR, self.matcher.display(path)))
            for name in sorted(files):
                path = os.path.join(root, name)
                if self.matcher.matches(path):
                    events.append(RawEvent(EventKind.ADDED, self.matcher.display(path)))
            if not self.recursive:
                break
        return events

    def start(self) -> None:
        try:
            if not self.base_dir.is_dir():
                raise FileNotFoundError(f"Watch directory does not exist: {self.base_dir}")
            self._schedule()
            for observer in self.observers:
                observer.start()
        except OSError as e:
            self._fail(e)
            return

        logging.debug(
            f"Observer: {'Polling' if self.options.use_polling else 'Native'} "
            f"on {self.base_dir} (recursive={self.recursive})"
        )

        if not self.options.ignore_initial:
            for event in self.initial_events():
                self.on_event(event)
        self.on_ready()

    def check(self) -> None:
        """Report a fatal error if an observer or one of its emitters died.

        watchdog emitters stop on read errors (permission denied, watch
        limit reached) while their observer keeps running.
        """
        if self._failed:
            return
        for observer in self.observers:
            if not observer.is_alive():
                self._fail(RuntimeError("Filesystem observer stopped unexpectedly"))
                return
            for emitter in list(observer.emitters):
                if not emitter.is_alive():
                    self._fail(RuntimeError(f"Watch on {emitter.watch.path} stopped unexpectedly"))
                    return

    def stop(self) -> None:
        for observer in self.observers:
            if observer.is_alive():
                observer.stop()
                observer.join(timeout=2.0)
        self.observers = []

    def _fail(self, error: BaseException) -> None:
        self._failed = True
        self.on_error(error)
