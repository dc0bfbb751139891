"""
Find filesystem paths with include/exclude globs, an extension whitelist, a
depth limit and a symlink policy, scanning each base directory concurrently.

Usage::

    from globpathfinder import PathQuery, find_paths

    query = PathQuery(
        base_dir=".",
        include_globs={"src/**/*.py", "tests"},
        exclude_globs={"**/__pycache__/**"},
    )
    with find_paths(query) as paths:
        for path in paths:
            print(path)
"""

from globpathfinder.aggregator import PathStream
from globpathfinder.errors import BaseScanError, GlobPathFinderError, GlobSyntaxError
from globpathfinder.finder import GlobPathFinder, find_paths
from globpathfinder.glob_compiler import MATCH_ALL, GlobMatcher, compile_glob
from globpathfinder.patterns import (
    decompose_glob,
    group_include_patterns,
    partition_excludes,
)
from globpathfinder.query import PathQuery

__all__ = [
    "MATCH_ALL",
    "BaseScanError",
    "GlobMatcher",
    "GlobPathFinder",
    "GlobPathFinderError",
    "GlobSyntaxError",
    "PathQuery",
    "PathStream",
    "compile_glob",
    "decompose_glob",
    "find_paths",
    "group_include_patterns",
    "partition_excludes",
]
