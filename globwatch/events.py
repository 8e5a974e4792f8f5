import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class EventKind(str, Enum):
    ADDED = "added"
    ADDED_DIR = "addedDir"
    REMOVED = "removed"
    REMOVED_DIR = "removedDir"
    CHANGED = "changed"


EVENT_DESCRIPTIONS = {
    EventKind.ADDED: "Added file",
    EventKind.ADDED_DIR: "Added directory",
    EventKind.REMOVED: "Removed file",
    EventKind.REMOVED_DIR: "Removed directory",
    EventKind.CHANGED: "Changed file",
}


@dataclass(frozen=True)
class RawEvent:
    kind: EventKind
    path: str


class EventClassifier:
    """Label raw filesystem events and optionally log them."""

    def __init__(self, verbose: bool = False, logger: Optional[logging.Logger] = None) -> None:
        self.verbose = verbose
        self.log = logger or logging.getLogger("globwatch")

    def describe(self, event: RawEvent) -> str:
        # EventKind() raises ValueError for anything outside the known vocabulary
        return EVENT_DESCRIPTIONS[EventKind(event.kind)]

    def classify(self, event: RawEvent) -> str:
        description = self.describe(event)
        if self.verbose:
            self.log.info(f"{description}: {event.path}")
        return description
