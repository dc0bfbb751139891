"""
Concurrent merge of per-base scans into one duplicate-free stream.

Every base is scanned on its own worker thread. Workers push paths into a
bounded queue; the consuming thread deduplicates and yields them. Closing the
stream stops every worker, and each worker closes its own scan.

Workers only hold the queue and the stop event, never the stream, so a stream
that is dropped without being closed is still collected, and collecting it
stops its workers.
"""

from __future__ import annotations

import logging
import os
import queue
import threading
import weakref
from collections.abc import Callable, Iterator, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from types import TracebackType

log = logging.getLogger(__name__)

Scan = Callable[[], Iterator[Path]]

_QUEUE_SIZE = 1024
_PUT_TIMEOUT = 0.05


@dataclass(frozen=True)
class _Done:
    pass


@dataclass(frozen=True)
class _Failure:
    error: Exception


_DONE = _Done()

_Item = Path | _Done | _Failure


def default_max_workers(scan_count: int) -> int:
    return max(1, min(scan_count, 32, (os.cpu_count() or 1) + 4))


class PathStream:
    """
    Unordered, duplicate-free stream of paths from several concurrent scans.

    Iterate it once. Use it as a context manager (or call `close()`) so that
    partially consumed scans release their directory handles::

        with find_paths(query) as paths:
            for path in paths:
                ...

    Workers start on the first `next()`; a stream that is never iterated starts
    no threads.
    """

    def __init__(self, scans: Sequence[Scan], max_workers: int | None = None) -> None:
        scan_list = list(scans)
        self._stop: threading.Event = threading.Event()
        self._results: Iterator[Path] = _merge(
            scan_list, max_workers or default_max_workers(len(scan_list)), self._stop
        )
        weakref.finalize(self, self._stop.set)

    def __iter__(self) -> PathStream:
        return self

    def __next__(self) -> Path:
        return next(self._results)

    def close(self) -> None:
        self._stop.set()
        self._results.close()  # type: ignore[attr-defined]

    def __enter__(self) -> PathStream:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def to_sorted_list(self) -> list[Path]:
        """Consume the stream and return its paths sorted."""
        with self:
            return sorted(self)


def _merge(scans: list[Scan], max_workers: int, stop: threading.Event) -> Iterator[Path]:
    if not scans:
        return
    results: queue.Queue[_Item] = queue.Queue(maxsize=_QUEUE_SIZE)
    executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="globpathfinder")
    debug = log.isEnabledFor(logging.DEBUG)
    try:
        for scan in scans:
            executor.submit(_produce, scan, results, stop)

        remaining = len(scans)
        seen: set[Path] = set()
        while remaining:
            item = results.get()
            if isinstance(item, _Done):
                remaining -= 1
                continue
            if isinstance(item, _Failure):
                raise item.error
            if item in seen:
                continue
            seen.add(item)
            if debug:
                log.debug("Emitting %s", item)
            yield item
    finally:
        stop.set()
        executor.shutdown(wait=True, cancel_futures=True)


def _produce(scan: Scan, results: queue.Queue[_Item], stop: threading.Event) -> None:
    paths: Iterator[Path] | None = None
    try:
        paths = scan()
        for path in paths:
            if not _put(results, stop, path):
                return
    except Exception as e:
        _put(results, stop, _Failure(e))
        return
    finally:
        close = getattr(paths, "close", None)
        if close is not None:
            close()
    _put(results, stop, _DONE)


def _put(results: queue.Queue[_Item], stop: threading.Event, item: _Item) -> bool:
    """Block until `item` is queued; `False` if the stream was stopped meanwhile."""
    while not stop.is_set():
        try:
            results.put(item, timeout=_PUT_TIMEOUT)
            return True
        except queue.Full:
            continue
    return False


def aggregate(scans: Sequence[Scan], max_workers: int | None = None) -> PathStream:
    """Merge `scans` concurrently into a single deduplicated `PathStream`."""
    return PathStream(scans, max_workers=max_workers)
