import os
import logging
from pathlib import Path
from typing import Callable, Optional

from pathspec import PathSpec
from watchdog.events import FileSystemEvent, FileSystemEventHandler

from .events import EventKind, RawEvent
from .utils import compile_glob, display_path, to_posix


class GlobMatcher:
    """Decide whether a path belongs to the watched glob.

    The path is tested relative to the glob's base directory. An ignore glob,
    when given, uses .gitignore rules and is tested against both the path
    relative to the working directory and the absolute path.
    Matched paths are reported relative to the working directory unless
    relative is False (an absolute pattern).
    """

    def __init__(
        self,
        base_dir: Path,
        rest: str,
        ignore: Optional[str] = None,
        relative: bool = True,
    ) -> None:
        self.base_dir = Path(os.path.abspath(base_dir))
        self.relative = relative
        self.spec: PathSpec = compile_glob(rest, anchored=True)
        self.ignore_spec: Optional[PathSpec] = compile_glob(ignore) if ignore else None

    def is_ignored(self, path: str) -> bool:
        if self.ignore_spec is None:
            return False
        absolute = os.path.abspath(path)
        candidates = [to_posix(absolute).lstrip("/")]
        try:
            candidates.append(to_posix(os.path.relpath(absolute)))
        except ValueError:
            # Different drive on Windows
            pass
        return any(self.ignore_spec.match_file(c) for c in candidates)

    def matches(self, path: str) -> bool:
        absolute = Path(os.path.abspath(path))
        try:
            relative = absolute.relative_to(self.base_dir)
        except ValueError:
            return False
        if relative == Path("."):
            return False
        if not self.spec.match_file(relative.as_posix()):
            return False
        return not self.is_ignored(str(absolute))

    def display(self, path: str) -> str:
        return display_path(path, self.relative)


class GlobEventHandler(FileSystemEventHandler):
    """Translate watchdog events into RawEvents for paths matching the glob.

    - path_filter: extra predicate, used to split binary / text polling
    - path_map: rewrites a watched real path back onto a symlink path
    """

    def __init__(
        self,
        matcher: GlobMatcher,
        emit: Callable[[RawEvent], None],
        path_filter: Optional[Callable[[str], bool]] = None,
        path_map: Optional[Callable[[str], str]] = None,
    ) -> None:
        super().__init__()
        self.matcher = matcher
        self.emit = emit
        self.path_filter = path_filter
        self.path_map = path_map

    def submit(self, kind: EventKind, raw_path) -> None:
        path = os.fsdecode(raw_path)
        if self.path_map is not None:
            path = self.path_map(path)
        if self.path_filter is not None and not self.path_filter(path):
            return
        if not self.matcher.matches(path):
            return
        self.emit(RawEvent(kind, self.matcher.display(path)))

    def on_created(self, event: FileSystemEvent) -> None:
        kind = EventKind.ADDED_DIR if event.is_directory else EventKind.ADDED
        self.submit(kind, event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        kind = EventKind.REMOVED_DIR if event.is_directory else EventKind.REMOVED
        self.submit(kind, event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        # Directory mtime changes just echo changes to their children
        if event.is_directory:
            return
        self.submit(EventKind.CHANGED, event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            removed, added = EventKind.REMOVED_DIR, EventKind.ADDED_DIR
        else:
            removed, added = EventKind.REMOVED, EventKind.ADDED
        self.submit(removed, event.src_path)
        dest = getattr(event, "dest_path", None)
        if dest:
            self.submit(added, dest)
        else:
            logging.debug(f"Move event without destination: {event.src_path}")
