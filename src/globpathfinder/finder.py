"""
GlobPathFinder: main entry point for finding paths.

Compiles a `PathQuery` once (grouping include globs by base, splitting and
compiling excludes, building the filter pipeline) and then scans every base
concurrently.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType

from globpathfinder.aggregator import PathStream
from globpathfinder.patterns import (
    BaseGroup,
    IncludeRule,
    compile_excludes,
    group_include_patterns,
    partition_excludes,
)
from globpathfinder.pipeline import compile_pipeline
from globpathfinder.query import PathQuery
from globpathfinder.traversal import scan_base

log = logging.getLogger(__name__)


class GlobPathFinder:
    """
    Finds the paths selected by a `PathQuery`.

    All pattern compilation happens in the constructor, so a malformed glob
    raises `GlobSyntaxError` here rather than midway through a scan. The finder
    holds no mutable state and `find()` may be called repeatedly.
    """

    def __init__(self, query: PathQuery, max_workers: int | None = None) -> None:
        self._query: PathQuery = query
        self._max_workers: int | None = max_workers
        self._base_dir: Path = query.normalized_base_dir
        self._base_rules: dict[Path, IncludeRule] = group_include_patterns(
            self._base_dir, query.include_globs
        )
        absolute_excludes, relative_excludes = partition_excludes(query.exclude_globs)
        self._pipeline = compile_pipeline(
            query.allowed_extensions,
            compile_excludes(absolute_excludes),
            compile_excludes(relative_excludes),
        )

    @property
    def query(self) -> PathQuery:
        return self._query

    @property
    def base_groups(self) -> Mapping[Path, IncludeRule]:
        """Include rules keyed by the base directory each scan starts from."""
        return MappingProxyType(self._base_rules)

    def find(self) -> PathStream:
        """
        Start finding. Returns an unordered stream of unique, absolute, normalized
        paths; close it (or use it in a `with` block) to release directory handles.
        """
        log.debug("find_paths: starting with query %s", self._query)
        scans = [
            functools.partial(scan_base, BaseGroup(base, rule), self._query, self._pipeline)
            for base, rule in self._base_rules.items()
        ]
        return PathStream(scans, max_workers=self._max_workers)


def find_paths(query: PathQuery) -> PathStream:
    """Find the paths selected by `query`. See `GlobPathFinder.find()`."""
    return GlobPathFinder(query).find()
