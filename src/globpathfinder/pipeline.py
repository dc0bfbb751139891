"""
Compiles a query's filters into the smallest pipeline that implements them.

A pipeline is a tuple of stages applied in order to every discovered path.
Stages exist only for filters that are actually configured, so a query with no
extensions and no excludes costs nothing per path beyond the include check.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path

from globpathfinder.glob_compiler import GlobMatcher
from globpathfinder.patterns import BaseGroup, Patterns, normalize_path

log = logging.getLogger(__name__)

TRACE = 5
logging.addLevelName(TRACE, "TRACE")


@dataclass(frozen=True)
class Filter:
    name: str
    predicate: Callable[[Path], bool]


@dataclass(frozen=True)
class Transform:
    name: str
    func: Callable[[Path], Path]


Stage = Filter | Transform

Pipeline = tuple[Stage, ...]


def apply_pipeline(stages: Pipeline, paths: Iterable[Path]) -> Iterator[Path]:
    """Lazily run `paths` through `stages`, dropping paths a filter rejects."""
    if not stages:
        yield from paths
        return
    for path in paths:
        for stage in stages:
            if isinstance(stage, Filter):
                if not stage.predicate(path):
                    break
            else:
                path = stage.func(path)
        else:
            yield path


def file_extension(path: Path) -> str:
    """Lower-cased text after the last dot of the file name, or `""`."""
    name = path.name
    if "." not in name:
        return ""
    return name.rpartition(".")[2].lower()


def _trace(message: str) -> Filter:
    def log_and_pass(path: Path) -> bool:
        log.log(TRACE, "%s %s", message, path)
        return True

    return Filter(f"trace: {message}", log_and_pass)


@dataclass(frozen=True)
class CompiledPipeline:
    """
    `global_stage` runs on every discovered path regardless of base;
    `for_base()` builds the base-specific stages that follow it.
    """

    global_stage: Pipeline
    relative_excludes: frozenset[GlobMatcher]
    tracing: bool = False

    def for_base(self, group: BaseGroup) -> Pipeline:
        """
        Stages for one base: relativize, include match, relative excludes, then back
        to an absolute path. Empty when the base matches everything and there are no
        relative excludes.
        """
        rule = group.rule
        has_includes = isinstance(rule, Patterns)
        has_relative_excludes = bool(self.relative_excludes)
        if not (has_includes or has_relative_excludes):
            return ()

        base = group.base
        stages: list[Stage] = [Transform("relativize", lambda path: path.relative_to(base))]

        if isinstance(rule, Patterns):
            stages.append(Filter("include", rule.matches))
            if self.tracing:
                stages.append(_trace("Passed include filter"))

        if has_relative_excludes:
            excludes = self.relative_excludes
            stages.append(
                Filter("relative exclude", lambda path: not any(m.matches(path) for m in excludes))
            )
            if self.tracing:
                stages.append(_trace("Passed exclude relative filter"))

        stages.append(Transform("absolutize", lambda path: normalize_path(base / path)))
        return tuple(stages)


def compile_pipeline(
    allowed_extensions: Iterable[str],
    absolute_excludes: frozenset[GlobMatcher],
    relative_excludes: frozenset[GlobMatcher],
) -> CompiledPipeline:
    """
    Build the global stage: extension filter, then absolute excludes. Each is
    added only when configured. Extensions are compared lower-cased, without dots.
    """
    tracing = log.isEnabledFor(TRACE)
    stages: list[Stage] = []
    if tracing:
        stages.append(_trace("Found"))

    extensions = frozenset(
        e.strip().lstrip(".").lower() for e in allowed_extensions if e.strip()
    )
    if extensions:
        stages.append(Filter("extension", lambda path: file_extension(path) in extensions))
        if tracing:
            stages.append(_trace("Passed extension filter"))

    if absolute_excludes:
        stages.append(
            Filter(
                "absolute exclude",
                lambda path: not any(m.matches(path) for m in absolute_excludes),
            )
        )
        if tracing:
            stages.append(_trace("Passed exclude absolute filter"))

    return CompiledPipeline(tuple(stages), relative_excludes, tracing)
