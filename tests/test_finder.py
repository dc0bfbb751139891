"""End-to-end tests for GlobPathFinder on real directory trees."""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

from globpathfinder import (
    BaseScanError,
    GlobPathFinder,
    GlobSyntaxError,
    PathQuery,
    find_paths,
)
from globpathfinder.patterns import MATCH_ALL_RULE, Patterns

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="needs POSIX symlinks")


def _write(path: Path, content: str = "") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A small source tree with main and test code, build output and docs."""
    root = tmp_path / "project"
    _write(root / "src" / "main" / "A.java", "class A {}")
    _write(root / "src" / "main" / "B.java", "class B {}")
    _write(root / "src" / "main" / "util" / "C.JAVA", "class C {}")
    _write(root / "src" / "main" / "D.kt", "class D")
    _write(root / "src" / "test" / "ATest.java", "class ATest {}")
    _write(root / "target" / "A.class")
    _write(root / "docs" / "README.md", "# Docs")
    _write(root / "build.gradle")
    return root


def _find(query: PathQuery) -> list[Path]:
    return find_paths(query).to_sorted_list()


def test_default_query_finds_every_file(project: Path):
    found = _find(PathQuery(base_dir=project))
    assert len(found) == 8
    assert all(p.is_absolute() and p.is_file() for p in found)


def test_relative_include(project: Path):
    found = _find(PathQuery(base_dir=project, include_globs=frozenset({"src/**/*.java"})))
    assert found == [
        project / "src" / "main" / "A.java",
        project / "src" / "main" / "B.java",
        project / "src" / "test" / "ATest.java",
    ]


def test_absolute_include(project: Path, tmp_path: Path):
    other = tmp_path / "elsewhere"
    query = PathQuery(
        base_dir=other,
        include_globs=frozenset({f"{(project / 'docs').as_posix()}/*.md"}),
    )
    assert _find(query) == [project / "docs" / "README.md"]


def test_include_with_backslashes(project: Path):
    query = PathQuery(base_dir=project, include_globs=frozenset({"src\\main\\*.kt"}))
    assert _find(query) == [project / "src" / "main" / "D.kt"]


def test_static_include_of_a_single_file(project: Path):
    query = PathQuery(base_dir=project, include_globs=frozenset({"build.gradle"}))
    assert _find(query) == [project / "build.gradle"]


def test_static_include_of_a_directory(project: Path):
    query = PathQuery(base_dir=project, include_globs=frozenset({"docs"}))
    assert _find(query) == [project / "docs" / "README.md"]


def test_overlapping_includes_are_deduplicated(project: Path):
    query = PathQuery(
        base_dir=project,
        include_globs=frozenset({"src/**/*.java", "**/A.java", "src/main", str(project / "src")}),
    )
    found = list(find_paths(query))
    assert len(found) == len(set(found))
    assert project / "src" / "main" / "A.java" in found


def test_relative_exclude(project: Path):
    query = PathQuery(
        base_dir=project,
        include_globs=frozenset({"src/**/*.java"}),
        exclude_globs=frozenset({"**/test/**"}),
    )
    assert _find(query) == [project / "src" / "main" / "A.java", project / "src" / "main" / "B.java"]


def test_absolute_exclude(project: Path):
    query = PathQuery(
        base_dir=project,
        exclude_globs=frozenset({f"{project.as_posix()}/src/**", f"{project.as_posix()}/target/**"}),
    )
    assert _find(query) == [project / "build.gradle", project / "docs" / "README.md"]


def test_allowed_extensions(project: Path):
    query = PathQuery(base_dir=project, allowed_extensions=frozenset({"java", "md"}))
    assert _find(query) == [
        project / "docs" / "README.md",
        project / "src" / "main" / "A.java",
        project / "src" / "main" / "B.java",
        project / "src" / "main" / "util" / "C.JAVA",
        project / "src" / "test" / "ATest.java",
    ]


def test_max_depth(project: Path):
    assert _find(PathQuery(base_dir=project, max_depth=1)) == [project / "build.gradle"]
    assert _find(PathQuery(base_dir=project, max_depth=2)) == [
        project / "build.gradle",
        project / "docs" / "README.md",
        project / "target" / "A.class",
    ]


def test_max_depth_is_relative_to_each_base(project: Path):
    query = PathQuery(base_dir=project, include_globs=frozenset({"src/main/*"}), max_depth=1)
    assert _find(query) == [
        project / "src" / "main" / "A.java",
        project / "src" / "main" / "B.java",
        project / "src" / "main" / "D.kt",
    ]


def test_directories_are_included_when_requested(project: Path):
    query = PathQuery(base_dir=project, include_globs=frozenset({"src/*"}), only_files=False)
    assert _find(query) == [project / "src" / "main", project / "src" / "test"]


def test_base_itself_is_found_with_directories(project: Path):
    found = _find(PathQuery(base_dir=project / "docs", only_files=False))
    assert found == [project / "docs", project / "docs" / "README.md"]


def test_blank_includes_are_like_no_includes(project: Path):
    everything = _find(PathQuery(base_dir=project))
    assert _find(PathQuery(base_dir=project, include_globs=frozenset({"", "  "}))) == everything
    assert _find(PathQuery(base_dir=project, include_globs=frozenset({"**"}))) == everything


def test_results_are_normalized(project: Path):
    query = PathQuery(base_dir=project / "src" / ".." / "docs")
    assert _find(query) == [project / "docs" / "README.md"]


def test_find_is_repeatable(project: Path):
    finder = GlobPathFinder(PathQuery(base_dir=project, include_globs=frozenset({"**/*.java"})))
    first = finder.find().to_sorted_list()
    second = finder.find().to_sorted_list()
    assert first == second
    assert len(first) == 3


def test_base_groups(project: Path):
    finder = GlobPathFinder(
        PathQuery(base_dir=project, include_globs=frozenset({"src/**/*.java", "docs", "**/*.md"}))
    )
    groups = finder.base_groups
    assert set(groups) == {project / "src", project / "docs", project}
    assert groups[project / "docs"] == MATCH_ALL_RULE
    assert isinstance(groups[project / "src"], Patterns)
    with pytest.raises(TypeError):
        groups[project] = MATCH_ALL_RULE  # type: ignore[index]


@pytest.mark.parametrize("bad_glob", ["**.java[", "{*.java,**/*.java", "**.[z-a]", "*.{"])
def test_malformed_include_fails_at_construction(tmp_path: Path, bad_glob: str):
    with pytest.raises(GlobSyntaxError, match="Invalid glob pattern"):
        GlobPathFinder(PathQuery(base_dir=tmp_path, include_globs=frozenset({bad_glob})))


def test_malformed_exclude_fails_at_construction(tmp_path: Path):
    with pytest.raises(GlobSyntaxError):
        GlobPathFinder(PathQuery(base_dir=tmp_path, exclude_globs=frozenset({"**/[z-a]/**"})))


def test_missing_base_fails_fast(tmp_path: Path):
    missing = tmp_path / "missing"
    stream = find_paths(PathQuery(base_dir=missing))
    with pytest.raises(BaseScanError) as exc:
        list(stream)
    assert str(missing) in str(exc.value)
    assert exc.value.base == missing
    assert isinstance(exc.value.__cause__, FileNotFoundError)


def test_missing_base_is_skipped_in_best_effort_mode(project: Path, tmp_path: Path):
    query = PathQuery(
        base_dir=project,
        include_globs=frozenset({"docs/*.md", f"{(tmp_path / 'missing').as_posix()}/*.md"}),
        fail_fast_on_error=False,
    )
    assert _find(query) == [project / "docs" / "README.md"]


def test_partial_consumption_then_close(project: Path):
    with find_paths(PathQuery(base_dir=project)) as paths:
        first = next(paths)
    assert first.is_file()
    assert list(paths) == []


@posix_only
def test_symlinked_directories_are_followed(tmp_path: Path):
    real = tmp_path / "real"
    _write(real / "T.java", "class T {}")
    base = tmp_path / "base"
    base.mkdir()
    os.symlink(real, base / "link")

    assert _find(PathQuery(base_dir=base)) == [base / "link" / "T.java"]
    assert _find(PathQuery(base_dir=base, follow_links=False)) == []


@posix_only
def test_symlink_cycles_terminate(tmp_path: Path, caplog: pytest.LogCaptureFixture):
    _write(tmp_path / "a" / "A.java", "class A {}")
    os.symlink(tmp_path / "a", tmp_path / "a" / "loop")
    assert _find(PathQuery(base_dir=tmp_path)) == [tmp_path / "a" / "A.java"]
    assert "I/O during traversal" in caplog.text


def test_include_and_identical_exclude_yields_nothing(project: Path):
    query = PathQuery(
        base_dir=project,
        include_globs=frozenset({"**/*.java"}),
        exclude_globs=frozenset({"**/*.java"}),
    )
    assert _find(query) == []


def test_single_segment_include_does_not_reach_into_directories(tmp_path: Path):
    _write(tmp_path / "A.java")
    _write(tmp_path / "weird.java" / "notes.txt")
    assert _find(PathQuery(base_dir=tmp_path, include_globs=frozenset({"*.java"}))) == [
        tmp_path / "A.java"
    ]


def test_exclude_naming_a_directory_keeps_its_files(tmp_path: Path):
    _write(tmp_path / "keep.txt")
    _write(tmp_path / "build" / "out.txt")
    assert _find(PathQuery(base_dir=tmp_path, exclude_globs=frozenset({"**/build"}))) == [
        tmp_path / "build" / "out.txt",
        tmp_path / "keep.txt",
    ]
    assert _find(PathQuery(base_dir=tmp_path, exclude_globs=frozenset({"**/build/**"}))) == [
        tmp_path / "keep.txt"
    ]


def test_double_star_prefix_include_crosses_directories(tmp_path: Path):
    _write(tmp_path / "Top.java")
    _write(tmp_path / "a" / "b" / "Deep.java")
    _write(tmp_path / "a" / "Other.kt")
    query = PathQuery(base_dir=tmp_path, include_globs=frozenset({f"{tmp_path.as_posix()}/**.java"}))
    assert _find(query) == [tmp_path / "Top.java", tmp_path / "a" / "b" / "Deep.java"]
