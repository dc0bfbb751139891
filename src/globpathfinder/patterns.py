"""
Splitting globs into a static base directory plus a wildcard residual, grouping
include globs by base, and separating absolute from relative excludes.

Traversal starts at the deepest directory a glob names literally, so
`/var/log/nginx/*.log` walks `/var/log/nginx` rather than `/`.
"""

from __future__ import annotations

import os
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path, PurePath

from globpathfinder.glob_compiler import MATCH_ALL, GlobMatcher, compile_glob

# Characters that make a path segment a wildcard segment.
_WILDCARD_CHARS = frozenset("*?[]{}")


@dataclass(frozen=True)
class DecomposedGlob:
    base: Path
    matcher: GlobMatcher

    @property
    def is_match_all(self) -> bool:
        return self.matcher is MATCH_ALL


@dataclass(frozen=True)
class MatchAll:
    """Accept every path under the base."""


@dataclass(frozen=True)
class Patterns:
    """Accept paths (relative to the base) that match any of `matchers`."""

    matchers: frozenset[GlobMatcher]

    def matches(self, relative_path: str | os.PathLike[str]) -> bool:
        return any(m.matches(relative_path) for m in self.matchers)


IncludeRule = MatchAll | Patterns

MATCH_ALL_RULE = MatchAll()


@dataclass(frozen=True)
class BaseGroup:
    base: Path
    rule: IncludeRule


def normalize_path(path: str | os.PathLike[str]) -> Path:
    """Absolute and lexically normalized, without resolving symlinks."""
    return Path(os.path.normpath(os.path.abspath(path)))


def is_wildcard_segment(segment: str) -> bool:
    return any(c in _WILDCARD_CHARS for c in segment)


def is_absolute_glob(glob: str) -> bool:
    normalized = glob.replace("\\", "/")
    return normalized.startswith("/") or PurePath(normalized).is_absolute()


def decompose_glob(default_base: Path, glob: str) -> DecomposedGlob:
    """
    Split `glob` into the directory named by its leading literal segments and a
    matcher for the rest.

    - `"/var/log/nginx/*.log"` -> base `/var/log/nginx`, matcher for `*.log`
    - `"src/**/*.java"` with default base `/tmp` -> base `/tmp/src`, matcher for `**/*.java`
    - `"/opt/data/"` -> base `/opt/data`, `MATCH_ALL`

    A trailing slash is kept on the residual. Relative prefixes are resolved
    against `default_base`.
    """
    normalized = glob.replace("\\", "/")
    segments = [s for s in normalized.split("/") if s]

    static_count = 0
    for segment in segments:
        if is_wildcard_segment(segment):
            break
        static_count += 1

    static_prefix = "/".join(segments[:static_count])
    if normalized.startswith("/"):
        static_prefix = "/" + static_prefix

    if not static_prefix:
        base = default_base
    elif PurePath(static_prefix).is_absolute():
        base = normalize_path(static_prefix)
    else:
        base = normalize_path(default_base / static_prefix)

    residual_segments = segments[static_count:]
    if not residual_segments:
        return DecomposedGlob(base=base, matcher=MATCH_ALL)

    residual = "/".join(residual_segments)
    if normalized.endswith("/"):
        residual += "/"
    return DecomposedGlob(base=base, matcher=compile_glob(residual))


def group_include_patterns(default_base: Path, include_globs: Iterable[str]) -> dict[Path, IncludeRule]:
    """
    Group include globs by the base directory they decompose to.

    A base whose globs include a purely static one (e.g. `"src"`) gets `MatchAll`,
    since it already covers every narrower glob under that base. When no usable
    globs remain, everything under `default_base` is included.
    """
    grouped: dict[Path, set[GlobMatcher]] = {}
    for raw in include_globs:
        glob = raw.strip()
        if not glob:
            continue
        decomposed = decompose_glob(default_base, glob)
        grouped.setdefault(decomposed.base, set()).add(decomposed.matcher)

    if not grouped:
        return {default_base: MATCH_ALL_RULE}

    rules: dict[Path, IncludeRule] = {}
    for base, matchers in grouped.items():
        if MATCH_ALL in matchers:
            rules[base] = MATCH_ALL_RULE
        else:
            rules[base] = Patterns(frozenset(matchers))
    return rules


def partition_excludes(exclude_globs: Iterable[str]) -> tuple[tuple[str, ...], tuple[str, ...]]:
    """
    Split exclude globs into `(absolute, relative)`.

    Absolute excludes are matched against the final absolute path; relative ones
    against the path relative to the base it was found under, so `**/test/**`
    applies inside every base.
    """
    absolute: list[str] = []
    relative: list[str] = []
    for raw in exclude_globs:
        glob = raw.strip()
        if not glob:
            continue
        if is_absolute_glob(glob):
            absolute.append(glob)
        else:
            relative.append(glob)
    return tuple(sorted(absolute)), tuple(sorted(relative))


def compile_excludes(globs: Iterable[str]) -> frozenset[GlobMatcher]:
    return frozenset(compile_glob(glob) for glob in globs)
