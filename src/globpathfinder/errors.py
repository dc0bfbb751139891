"""Exception types raised by globpathfinder."""

from __future__ import annotations

from pathlib import Path


class GlobPathFinderError(Exception):
    """Base class for all globpathfinder errors."""


class GlobSyntaxError(GlobPathFinderError, ValueError):
    """A glob pattern could not be compiled."""

    def __init__(self, pattern: str, reason: str) -> None:
        super().__init__(f"Invalid glob pattern {pattern!r}: {reason}")
        self.pattern: str = pattern
        self.reason: str = reason


class BaseScanError(GlobPathFinderError, OSError):
    """
    A base directory could not be opened for traversal and the query is
    fail-fast. Always chained from the underlying `OSError`.
    """

    def __init__(self, base: Path, message: str) -> None:
        super().__init__(message)
        self.base: Path = base
