from dataclasses import MISSING, dataclass, fields
from types import MappingProxyType
from typing import Any, Mapping, Optional

from .utils import compile_glob


class ConfigurationError(ValueError):
    """Raised when the merged options cannot form a valid configuration."""


@dataclass(frozen=True)
class WatchConfiguration:
    pattern: str
    command: str
    debounce: int = 400
    follow_symlinks: bool = False
    ignore: Optional[str] = None
    polling: bool = False
    poll_interval: int = 100
    poll_interval_binary: int = 300
    verbose: bool = False
    initial: bool = False


DEFAULT_OPTIONS: Mapping[str, Any] = MappingProxyType(
    {f.name: f.default for f in fields(WatchConfiguration) if f.default is not MISSING}
)


@dataclass(frozen=True)
class WatcherOptions:
    """Settings handed to the filesystem watcher."""

    follow_symlinks: bool = False
    use_polling: bool = False
    poll_interval: int = 100
    poll_interval_binary: int = 300
    ignore: Optional[str] = None
    ignore_initial: bool = True


def merge_options(
    defaults: Mapping[str, Any], overrides: Mapping[str, Any]
) -> WatchConfiguration:
    """Return a new configuration from defaults updated with user overrides.

    An override of None keeps the default. Neither mapping is modified.
    """
    merged = dict(defaults)
    merged.update({k: v for k, v in overrides.items() if v is not None})

    known = {f.name for f in fields(WatchConfiguration)}
    unknown = sorted(set(merged) - known)
    if unknown:
        raise ConfigurationError(f"Unknown option(s): {', '.join(unknown)}")

    for required in ("pattern", "command"):
        if not str(merged.get(required) or "").strip():
            raise ConfigurationError(f"Missing required value: {required}")

    if merged.get("debounce", 0) < 0:
        raise ConfigurationError("debounce must be >= 0 ms")
    for key in ("poll_interval", "poll_interval_binary"):
        if key in merged and merged[key] <= 0:
            raise ConfigurationError(f"{key.replace('_', '-')} must be > 0 ms")

    # Reject malformed globs before any watching starts
    for key in ("pattern", "ignore"):
        if merged.get(key):
            try:
                compile_glob(merged[key])
            except ValueError as e:
                raise ConfigurationError(f"Invalid {key} {merged[key]!r}: {e}") from e

    return WatchConfiguration(**merged)


def watcher_options(config: WatchConfiguration) -> WatcherOptions:
    return WatcherOptions(
        follow_symlinks=config.follow_symlinks,
        use_polling=config.polling,
        poll_interval=config.poll_interval,
        poll_interval_binary=config.poll_interval_binary,
        ignore=config.ignore or None,
        ignore_initial=not config.initial,
    )
