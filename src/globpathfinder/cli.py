#!/usr/bin/env python3
"""
globpathfinder: Find files and directories with include/exclude globs

Common usage:
  globpathfinder . -i 'src/**/*.py'
  globpathfinder /var/log -i 'nginx/*.log' -e '**/old/**'
  globpathfinder . -x java -x kt --sort
  globpathfinder . --include-dirs --max-depth 1

Settings can also come from `.globpathfinder.toml`, `globpathfinder.toml`, or a
`[tool.globpathfinder]` section in `pyproject.toml`. Explicit flags win.
"""

from __future__ import annotations

import argparse
import importlib.metadata
import logging
import sys
from dataclasses import dataclass
from pathlib import Path

from globpathfinder.config import find_config_file, load_config, merge_cli_with_config
from globpathfinder.errors import BaseScanError, GlobSyntaxError
from globpathfinder.finder import GlobPathFinder
from globpathfinder.pipeline import TRACE
from globpathfinder.query import PathQuery


@dataclass
class Options:
    """Command-line options for the globpathfinder tool."""

    base_dir: str
    include: list[str]
    exclude: list[str]
    extensions: list[str]
    max_depth: int | None
    only_files: bool
    follow_links: bool
    fail_fast: bool
    sort: bool
    null: bool
    verbose: int
    version: bool

    def to_query(self) -> PathQuery:
        return PathQuery(
            base_dir=Path(self.base_dir),
            include_globs=frozenset(self.include),
            exclude_globs=frozenset(self.exclude),
            allowed_extensions=frozenset(self.extensions),
            max_depth=self.max_depth,
            only_files=self.only_files,
            follow_links=self.follow_links,
            fail_fast_on_error=self.fail_fast,
        )


def _parse_args(args: list[str] | None = None) -> tuple[Options, set[str]]:
    """
    Parse command-line arguments.

    Returns `(options, explicit_flags)` where `explicit_flags` tracks which
    options the user explicitly passed (for config merge precedence).
    """
    module_doc = __doc__ or ""
    doc_parts = module_doc.split("\n\n")
    description = doc_parts[0]
    epilog = "\n\n".join(doc_parts[1:])

    parser = argparse.ArgumentParser(
        prog="globpathfinder",
        description=description,
        epilog=epilog,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "base_dir",
        nargs="?",
        default=".",
        help="Base directory that relative globs are resolved against (default: %(default)s)",
    )
    parser.add_argument(
        "-i",
        "--include",
        action="append",
        default=[],
        metavar="PATTERN",
        help="Include glob, e.g. 'src/**/*.py'. Can be repeated. Default: everything",
    )
    parser.add_argument(
        "-e",
        "--exclude",
        action="append",
        default=[],
        metavar="PATTERN",
        help="Exclude glob, e.g. '**/test/**'. Can be repeated",
    )
    parser.add_argument(
        "-x",
        "--ext",
        action="append",
        default=[],
        dest="extensions",
        metavar="EXT",
        help="Only keep files with this extension (no dot, case-insensitive). Can be repeated",
    )
    parser.add_argument(
        "-d",
        "--max-depth",
        type=int,
        default=None,
        dest="max_depth",
        metavar="N",
        help="Maximum depth below each base (negative = unlimited, default: unlimited)",
    )
    parser.add_argument(
        "--include-dirs",
        action="store_true",
        dest="include_dirs",
        help="Also list directories and other non-regular entries",
    )
    parser.add_argument(
        "--no-follow-links",
        action="store_true",
        dest="no_follow_links",
        help="Do not descend into symlinked directories",
    )
    parser.add_argument(
        "--best-effort",
        action="store_true",
        dest="best_effort",
        help="Warn and skip bases that cannot be opened instead of failing",
    )
    parser.add_argument(
        "--sort",
        action="store_true",
        help="Sort the output (otherwise paths are printed as they are found)",
    )
    parser.add_argument(
        "-0",
        "--null",
        action="store_true",
        help="Separate paths with NUL instead of newline",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Log more (-v info, -vv debug, -vvv trace) to stderr",
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Show version information and exit",
    )
    opts = parser.parse_args(args)

    # Re-parse with sentinel defaults to detect which flags were actually supplied.
    # append actions use None as sentinel (argparse creates a list when the flag is used).
    _SENTINEL = object()
    _tracked_flags: dict[str, str] = {
        # argparse dest name -> Options field name
        "base_dir": "base_dir",
        "include": "include",
        "exclude": "exclude",
        "extensions": "extensions",
        "max_depth": "max_depth",
        "include_dirs": "only_files",
        "no_follow_links": "follow_links",
        "best_effort": "fail_fast",
    }
    sentinel_parser = argparse.ArgumentParser(add_help=False)
    sentinel_parser.add_argument("base_dir", nargs="?", default=_SENTINEL)
    # Known here so `-0` is not taken for a negative-number positional.
    sentinel_parser.add_argument("-0", "--null", action="store_true")
    sentinel_parser.add_argument("-i", "--include", action="append", default=None)
    sentinel_parser.add_argument("-e", "--exclude", action="append", default=None)
    sentinel_parser.add_argument("-x", "--ext", dest="extensions", action="append", default=None)
    sentinel_parser.add_argument("-d", "--max-depth", type=int, dest="max_depth", default=_SENTINEL)
    sentinel_parser.add_argument(
        "--include-dirs", dest="include_dirs", action="store_true", default=_SENTINEL
    )
    sentinel_parser.add_argument(
        "--no-follow-links", dest="no_follow_links", action="store_true", default=_SENTINEL
    )
    sentinel_parser.add_argument(
        "--best-effort", dest="best_effort", action="store_true", default=_SENTINEL
    )
    sentinel_opts, _ = sentinel_parser.parse_known_args(args if args is not None else sys.argv[1:])

    explicit_flags: set[str] = set()
    for dest_name, field_name in _tracked_flags.items():
        val = getattr(sentinel_opts, dest_name, _SENTINEL)
        # For append actions, None means not supplied; a list means supplied
        if dest_name in ("include", "exclude", "extensions"):
            if val is not None:
                explicit_flags.add(field_name)
        elif val is not _SENTINEL:
            explicit_flags.add(field_name)

    return (
        Options(
            base_dir=opts.base_dir,
            include=opts.include,
            exclude=opts.exclude,
            extensions=opts.extensions,
            max_depth=opts.max_depth,
            only_files=not opts.include_dirs,
            follow_links=not opts.no_follow_links,
            fail_fast=not opts.best_effort,
            sort=opts.sort,
            null=opts.null,
            verbose=opts.verbose,
            version=opts.version,
        ),
        explicit_flags,
    )


def _configure_logging(verbose: int) -> None:
    levels = [logging.WARNING, logging.INFO, logging.DEBUG, TRACE]
    logging.basicConfig(
        level=levels[min(verbose, len(levels) - 1)],
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def main(args: list[str] | None = None) -> int:
    """
    Main entry point for the globpathfinder CLI.

    Args:
        args: Command-line arguments (uses sys.argv if None)

    Returns:
        Exit code (0 for success, 1 for a bad pattern, 2 for I/O errors)
    """
    options, explicit_flags = _parse_args(args)

    if options.version:
        try:
            version = importlib.metadata.version("globpathfinder")
            print(f"v{version}")
        except importlib.metadata.PackageNotFoundError:
            print("unknown (package not installed)")
        return 0

    _configure_logging(options.verbose)

    config_path = find_config_file(Path.cwd())
    if config_path:
        config = load_config(config_path)
        merge_cli_with_config(options, config, explicit_flags)

    try:
        finder = GlobPathFinder(options.to_query())
    except GlobSyntaxError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    terminator = "\0" if options.null else "\n"
    try:
        with finder.find() as paths:
            found = sorted(paths) if options.sort else paths
            for path in found:
                sys.stdout.write(f"{path}{terminator}")
    except BaseScanError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    return 0


if __name__ == "__main__":
    sys.exit(main())
