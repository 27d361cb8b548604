"""Path canonicalisation used when comparing report paths with workspace paths.

Usage:
    identifying_path("/work/./app/src")             # "/work/app/src"
    is_underneath("/work/app/src", "/work/app")     # True
    join_normalized("/work", "app", "src/Foo.java") # "/work/app/src/Foo.java"
"""

import os
from pathlib import Path


def to_universal(path: str) -> str:
    """Return *path* with forward slashes only."""
    return path.replace("\\", "/")


def identifying_path(path: str | Path) -> str:
    """Return the canonical form of *path* used for comparisons.

    Symlinks are resolved and the case is normalised on case-insensitive
    platforms. Falls back to the absolute path when the path cannot be
    resolved (e.g. a permission problem on one of the parents).
    """
    try:
        canonical = os.path.realpath(path)
    except OSError:
        canonical = os.path.abspath(path)
    return to_universal(os.path.normcase(canonical))


def is_underneath(path: str, base: str) -> bool:
    """True when the identifying *path* equals *base* or is a descendant of it."""
    base = base.rstrip("/")
    return path == base or path.startswith(base + "/")


def join_normalized(base: str, *parts: str) -> str:
    """Join report-relative *parts* onto *base* and collapse ``.``/``..``."""
    joined = os.path.normpath(os.path.join(base, *(p for p in parts if p)))
    return to_universal(joined)
