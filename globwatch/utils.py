import os
import re
from pathlib import Path
from typing import Tuple

from pathspec import PathSpec

GLOB_MAGIC = re.compile(r"[*?\[]")

# Files with these extensions are polled at the binary interval
BINARY_EXTENSIONS = frozenset(
    {
        ".7z", ".a", ".avi", ".bin", ".bmp", ".bz2", ".class", ".dll", ".dmg",
        ".doc", ".docx", ".dylib", ".eot", ".exe", ".flac", ".gif", ".gz",
        ".ico", ".iso", ".jar", ".jpeg", ".jpg", ".mkv", ".mov", ".mp3",
        ".mp4", ".o", ".ogg", ".otf", ".pdf", ".png", ".psd", ".pyc", ".rar",
        ".so", ".tar", ".tgz", ".tif", ".tiff", ".ttf", ".wav", ".webm",
        ".webp", ".woff", ".woff2", ".xls", ".xlsx", ".xz", ".zip",
    }
)


def is_within(child: Path, parent: Path) -> bool:
    try:
        child.resolve().relative_to(parent.resolve())
        return True
    except ValueError:
        return False


def is_binary_path(path: str) -> bool:
    return os.path.splitext(path)[1].lower() in BINARY_EXTENSIONS


def to_posix(path: str) -> str:
    return path.replace(os.sep, "/")


def split_glob(pattern: str) -> Tuple[Path, str]:
    """Split a glob into its literal base directory and the remaining pattern.

    - "src/**/*.py" -> (src, "**/*.py")
    - "*.txt" -> (., "*.txt")
    - "docs" (an existing directory) -> (docs, "**")
    - "setup.cfg" -> (., "setup.cfg")
    """
    segments = to_posix(pattern).split("/")
    base = []
    for i, segment in enumerate(segments):
        if GLOB_MAGIC.search(segment):
            rest = "/".join(segments[i:])
            break
        base.append(segment)
    else:
        literal = Path(pattern)
        if literal.is_dir():
            return literal, "**"
        return literal.parent, literal.name

    if not base:
        return Path("."), rest
    # A leading empty segment means the pattern was absolute
    return Path("/".join(base) or "/"), rest


def is_recursive(rest: str) -> bool:
    return "/" in rest or "**" in rest


def compile_glob(pattern: str, anchored: bool = False) -> PathSpec:
    """Compile a glob with gitignore wildcard rules.

    An anchored glob only matches from the start of the tested path, so
    "*.txt" matches "a.txt" but not "sub/a.txt". Unanchored globs without a
    slash match at any depth, as in .gitignore.
    """
    line = to_posix(pattern)
    if anchored and not line.startswith("/"):
        line = "/" + line
    return PathSpec.from_lines("gitwildmatch", [line])


def display_path(path: str, relative: bool = True) -> str:
    """Path as reported to the user: relative to the working directory when under it."""
    absolute = os.path.abspath(path)
    if not relative:
        return absolute
    try:
        rel = os.path.relpath(absolute)
    except ValueError:
        # Different drive on Windows
        return absolute
    if rel == os.pardir or rel.startswith(os.pardir + os.sep):
        return absolute
    return rel
