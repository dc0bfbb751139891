"""The immutable query value consumed by the finder."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


def _frozen(values: Iterable[str] | None) -> frozenset[str]:
    if values is None:
        return frozenset()
    if isinstance(values, str):
        # A bare string is one pattern, not a set of characters.
        return frozenset([values])
    return frozenset(values)


@dataclass(frozen=True)
class PathQuery:
    """
    What to find and where.

    All fields have relaxed defaults so callers can omit anything:

    - `base_dir=None` means the current directory.
    - `include_globs` empty means everything under `base_dir`.
    - `exclude_globs` and `allowed_extensions` empty disable those filters.
      Extensions are given without the leading dot and compared case-insensitively.
    - `max_depth=None` (or any negative value) means unlimited. Depth 0 is the
      base itself, depth 1 its direct children.
    - `only_files=True` returns regular files only; `False` also returns directories
      and other entries.
    - `follow_links=True` descends into symlinked directories (cycles are detected
      and skipped).
    - `fail_fast_on_error=True` aborts the whole query when a base cannot be opened;
      `False` logs a warning and skips that base.
    """

    base_dir: Path = field(default_factory=lambda: Path("."))
    include_globs: frozenset[str] = frozenset()
    exclude_globs: frozenset[str] = frozenset()
    allowed_extensions: frozenset[str] = frozenset()
    max_depth: int | None = None
    only_files: bool = True
    follow_links: bool = True
    fail_fast_on_error: bool = True

    def __post_init__(self) -> None:
        base_dir: Any = self.base_dir
        # frozen: normalize through object.__setattr__
        object.__setattr__(self, "base_dir", Path(".") if base_dir is None else Path(base_dir))
        object.__setattr__(self, "include_globs", _frozen(self.include_globs))
        object.__setattr__(self, "exclude_globs", _frozen(self.exclude_globs))
        object.__setattr__(self, "allowed_extensions", _frozen(self.allowed_extensions))
        if self.max_depth is not None and self.max_depth < 0:
            object.__setattr__(self, "max_depth", None)

    @property
    def normalized_base_dir(self) -> Path:
        """`base_dir` as an absolute, lexically normalized path (symlinks are kept)."""
        return Path(os.path.normpath(os.path.abspath(self.base_dir)))

    def replace(self, **changes: Any) -> PathQuery:
        """Return a copy with the given fields changed."""
        return dataclasses.replace(self, **changes)
