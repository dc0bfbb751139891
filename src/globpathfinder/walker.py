"""
Lazy, depth-bounded directory traversal.

`walk()` opens the root eagerly, so a missing or unreadable root raises `OSError`
right away. Everything that goes wrong afterwards is reported in-band as a
`WalkError` element, and the walk carries on with the rest of the tree.
"""

from __future__ import annotations

import errno
import os
import stat
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path
from types import TracebackType


@dataclass(frozen=True)
class WalkEntry:
    path: Path
    is_regular_file: bool


@dataclass(frozen=True)
class WalkError:
    """A subtree (or single entry) that could not be read."""

    path: Path
    error: OSError


WalkItem = WalkEntry | WalkError


@dataclass
class _Frame:
    path: Path
    depth: int  # depth of the entries listed by `entries`
    entries: Iterator[os.DirEntry[str]]
    dir_id: tuple[int, int] | None = None
    closed: bool = field(default=False)

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self.entries.close()  # type: ignore[attr-defined]


class WalkStream:
    """
    Iterator over `WalkItem`s for one root. Use as a context manager, or call
    `close()`, to release open directory handles early.
    """

    def __init__(
        self,
        root: Path,
        root_stat: os.stat_result,
        root_entries: Iterator[os.DirEntry[str]] | None,
        max_depth: int | None,
        only_files: bool,
        follow_links: bool,
    ) -> None:
        self.root: Path = root
        self._max_depth: int | None = max_depth
        self._only_files: bool = only_files
        self._follow_links: bool = follow_links
        self._root_frame: _Frame | None = None
        if root_entries is not None:
            self._root_frame = _Frame(
                root, 1, root_entries, (root_stat.st_dev, root_stat.st_ino)
            )
        self._items: Iterator[WalkItem] = self._generate(stat.S_ISREG(root_stat.st_mode))

    def __iter__(self) -> WalkStream:
        return self

    def __next__(self) -> WalkItem:
        return next(self._items)

    def close(self) -> None:
        self._items.close()  # type: ignore[attr-defined]
        # The generator's cleanup never runs if it was not started.
        if self._root_frame is not None:
            self._root_frame.close()

    def __enter__(self) -> WalkStream:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _accepts(self, is_regular_file: bool) -> bool:
        return is_regular_file or not self._only_files

    def _descends_below(self, depth: int) -> bool:
        return self._max_depth is None or depth < self._max_depth

    def _generate(self, root_is_file: bool) -> Iterator[WalkItem]:
        if self._accepts(root_is_file):
            yield WalkEntry(self.root, root_is_file)
        if self._root_frame is None:
            return

        stack: list[_Frame] = [self._root_frame]
        try:
            while stack:
                frame = stack[-1]
                try:
                    entry = next(frame.entries, None)
                except OSError as e:
                    frame.close()
                    stack.pop()
                    yield WalkError(frame.path, e)
                    continue
                if entry is None:
                    frame.close()
                    stack.pop()
                    continue

                path = frame.path / entry.name
                try:
                    is_dir = entry.is_dir(follow_symlinks=self._follow_links)
                    is_file = entry.is_file(follow_symlinks=self._follow_links)
                except OSError as e:
                    yield WalkError(path, e)
                    continue

                child: _Frame | None = None
                if is_dir and self._descends_below(frame.depth):
                    dir_id: tuple[int, int] | None = None
                    if self._follow_links:
                        try:
                            st = entry.stat(follow_symlinks=True)
                        except OSError as e:
                            yield WalkError(path, e)
                            continue
                        dir_id = (st.st_dev, st.st_ino)
                        if any(f.dir_id == dir_id for f in stack):
                            yield WalkError(
                                path,
                                OSError(errno.ELOOP, "File system loop detected", str(path)),
                            )
                            continue
                    try:
                        child = _Frame(path, frame.depth + 1, os.scandir(path), dir_id)
                    except OSError as e:
                        if self._accepts(is_file):
                            yield WalkEntry(path, is_file)
                        yield WalkError(path, e)
                        continue

                if child is not None:
                    # Pushed before yielding so a close() at the yield releases it.
                    stack.append(child)
                if self._accepts(is_file):
                    yield WalkEntry(path, is_file)
        finally:
            for frame in stack:
                frame.close()


def walk(
    root: str | os.PathLike[str],
    max_depth: int | None = None,
    only_files: bool = True,
    follow_links: bool = True,
) -> WalkStream:
    """
    Walk `root` depth-first.

    Depth 0 is `root` itself (emitted when it passes the type filter, so a root
    that is a regular file yields just that file), depth 1 its children, and
    `max_depth=None` is unlimited. With `only_files=True` only regular files are
    emitted, though directories are still descended. With `follow_links=True`
    symlinked directories are descended and loops are reported as `ELOOP`
    errors; otherwise links are emitted as plain entries and never descended.

    Raises `OSError` if `root` cannot be opened.
    """
    root_path = Path(root)
    root_stat = os.stat(root_path)
    root_entries = None
    if stat.S_ISDIR(root_stat.st_mode) and (max_depth is None or max_depth > 0):
        root_entries = os.scandir(root_path)
    return WalkStream(root_path, root_stat, root_entries, max_depth, only_files, follow_links)
