"""
Glob pattern compilation on top of `pathspec`.

Patterns are matched against the whole path, from its first segment:

- `*` and `?` stay within one path segment.
- `**` as a whole segment spans any number of segments (including none), so
  `**/*.java` matches both `A.java` and `a/b/A.java`.
- `**` inside a segment crosses directories too, so `**.java` matches
  `a/b/T.java`.
- `[...]` is a character class and `{a,b}` lists alternatives.

A pattern names paths, not subtrees: `*.java` does not match
`weird.java/notes.txt`. Use a trailing `/**` to match everything below a
directory.

Each alternative is translated with pathspec's gitignore pattern factory,
after dropping the gitignore rule that lets a match on a directory match its
descendants.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field

import pathspec
from pathspec.patterns.gitignore import GitIgnorePatternError

from globpathfinder.errors import GlobSyntaxError

_gitignore_pattern = pathspec.lookup_pattern("gitignore")

# gitignore's tail for a last segment that may also be a parent directory.
_DESCENDANT_TAIL = "(?:/|$)"


@dataclass(frozen=True)
class GlobMatcher:
    """A compiled glob. Matchers compare equal when their source patterns do."""

    pattern: str
    _regexes: tuple[re.Pattern[str], ...] = field(compare=False, repr=False)

    def matches(self, path: str | os.PathLike[str]) -> bool:
        """
        Check a relative or absolute path against this glob. Absolute paths only
        match absolute patterns (both are compared without the leading root).
        """
        text = os.fspath(path).replace("\\", "/")
        if text.startswith("/"):
            text = text[1:]
        elif text.startswith("./"):
            text = text[2:]
        elif text == ".":
            text = ""
        return any(regex.search(text) for regex in self._regexes)


@dataclass(frozen=True)
class _MatchAllMatcher(GlobMatcher):
    def matches(self, path: str | os.PathLike[str]) -> bool:
        return True


MATCH_ALL: GlobMatcher = _MatchAllMatcher(pattern="**", _regexes=())
"""Matches every path. Used for static include patterns like `src` or `/opt/data/`."""


def compile_glob(pattern: str) -> GlobMatcher:
    """
    Compile a glob into a `GlobMatcher`. Raises `GlobSyntaxError` naming the
    pattern when it is malformed (unbalanced braces, unclosed or reversed
    character classes, or nothing to match).
    """
    normalized = pattern.strip().replace("\\", "/")
    if not normalized:
        raise GlobSyntaxError(pattern, "empty pattern")

    regexes: list[re.Pattern[str]] = []
    for alternative in _expand_braces(normalized, pattern):
        _check_char_classes(alternative, pattern)
        for segment_glob in _expand_globstars(alternative):
            regex = _translate(segment_glob, pattern)
            if regex not in regexes:
                regexes.append(regex)
    return GlobMatcher(pattern=normalized, _regexes=tuple(regexes))


def _translate(glob: str, original: str) -> re.Pattern[str]:
    # Anchor to the start of the matched path, so `*.log` does not match `sub/a.log`.
    line = glob if glob.startswith("/") else "/" + glob
    try:
        compiled = _gitignore_pattern(line).regex
    except GitIgnorePatternError as e:
        raise GlobSyntaxError(original, str(e)) from e
    if compiled is None:
        raise GlobSyntaxError(original, "nothing to match")

    regex = compiled.pattern
    if regex.endswith(_DESCENDANT_TAIL):
        regex = regex[: -len(_DESCENDANT_TAIL)] + "$"
    return re.compile(regex)


def _expand_globstars(glob: str) -> list[str]:
    """
    Rewrite a `**` embedded in a segment into whole-segment alternatives:
    `a**b` becomes `a*b` (same segment) and `a*/**/*b` (any deeper segment).
    """
    segments = glob.split("/")
    for i, segment in enumerate(segments):
        if "**" not in segment or segment == "**":
            continue
        head, _, tail = segment.partition("**")
        expanded: list[str] = []
        for replacement in (f"{head}*{tail}", f"{head}*/**/*{tail}"):
            rewritten = "/".join(segments[:i] + [replacement] + segments[i + 1 :])
            for candidate in _expand_globstars(rewritten):
                if candidate not in expanded:
                    expanded.append(candidate)
        return expanded
    return [glob]


def _expand_braces(text: str, original: str) -> list[str]:
    """Expand the first top-level `{...}` group, recursing into the results."""
    start = text.find("{")
    if start < 0:
        if "}" in text:
            raise GlobSyntaxError(original, "unmatched '}'")
        return [text]
    if "}" in text[:start]:
        raise GlobSyntaxError(original, "unmatched '}'")

    depth = 0
    options: list[str] = []
    option_start = start + 1
    for i in range(start, len(text)):
        c = text[i]
        if c == "{":
            depth += 1
        elif c == "," and depth == 1:
            options.append(text[option_start:i])
            option_start = i + 1
        elif c == "}":
            depth -= 1
            if depth == 0:
                options.append(text[option_start:i])
                prefix, suffix = text[:start], text[i + 1 :]
                expanded: list[str] = []
                for option in options:
                    for candidate in _expand_braces(prefix + option + suffix, original):
                        if candidate not in expanded:
                            expanded.append(candidate)
                return expanded

    raise GlobSyntaxError(original, "unclosed '{'")


def _check_char_classes(text: str, original: str) -> None:
    i = 0
    while i < len(text):
        if text[i] != "[":
            i += 1
            continue
        j = i + 1
        if j < len(text) and text[j] in "!^":
            j += 1
        # A `]` right after the opening bracket is a literal member.
        if j < len(text) and text[j] == "]":
            j += 1
        close = text.find("]", j)
        if close < 0:
            raise GlobSyntaxError(original, "unclosed character class '['")
        members = text[i + 1 : close].lstrip("!^")
        for k in range(1, len(members) - 1):
            if members[k] == "-" and members[k - 1] > members[k + 1]:
                raise GlobSyntaxError(
                    original, f"invalid range '{members[k - 1]}-{members[k + 1]}'"
                )
        i = close + 1
