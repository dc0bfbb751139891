"""
Scanning a single base directory.

Each base is walked independently. Read failures inside a base are logged and
cut off only the affected part of that base; other bases never notice.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

from globpathfinder.errors import BaseScanError
from globpathfinder.patterns import BaseGroup
from globpathfinder.pipeline import CompiledPipeline, apply_pipeline
from globpathfinder.query import PathQuery
from globpathfinder.walker import WalkError, WalkItem, walk

log = logging.getLogger(__name__)

FAILED_TO_START_SCANNING_BASE = "Failed to start scanning base '%s'. Skipping this base."


def shield(items: Iterator[WalkItem], base: Path) -> Iterator[Path]:
    """
    Yield the paths of `items`, logging read errors instead of raising them.

    A `WalkError` drops just that subtree. An `OSError` raised while pulling the
    next item ends this base's sequence as if it were exhausted.
    """
    while True:
        try:
            item = next(items)
        except StopIteration:
            return
        except OSError as e:
            log.warning(
                "I/O during traversal of '%s': %s. Skipping the rest of this base.",
                base,
                e,
                exc_info=e,
            )
            return
        if isinstance(item, WalkError):
            log.warning(
                "I/O during traversal of '%s': %s. Skipping %s.", base, item.error, item.path
            )
            continue
        yield item.path


def scan_base(group: BaseGroup, query: PathQuery, pipeline: CompiledPipeline) -> Iterator[Path]:
    """
    Walk one base and yield the paths that pass the global and per-base stages.

    If the base cannot be opened, raises `BaseScanError` when the query is
    fail-fast and otherwise logs a warning and yields nothing. Closing the
    returned generator closes the underlying walk.
    """
    base = group.base
    try:
        stream = walk(
            base,
            max_depth=query.max_depth,
            only_files=query.only_files,
            follow_links=query.follow_links,
        )
    except OSError as e:
        if query.fail_fast_on_error:
            raise BaseScanError(base, FAILED_TO_START_SCANNING_BASE % base) from e
        log.warning(FAILED_TO_START_SCANNING_BASE + " (%s)", base, e)
        return

    with stream:
        found = apply_pipeline(pipeline.global_stage, shield(stream, base))
        yield from apply_pipeline(pipeline.for_base(group), found)
