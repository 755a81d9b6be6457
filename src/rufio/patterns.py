"""Glob pattern matching for repository-relative paths.

Patterns follow shell glob conventions extended with a globstar:

- ``*`` matches any run of characters inside one path segment
- ``**`` as a whole segment matches zero or more segments
- ``?`` matches exactly one character (never ``/``)
- ``[abc]`` / ``[!abc]`` match one character from (or outside) a set
- ``{a,b}`` expands to alternatives

Wildcards and ``**`` skip names that start with a dot, as in the shell.
A pattern segment that itself starts with ``.`` matches dotfiles.

Paths are matched after being made relative to a base directory with
forward-slash separators.  A path that escapes the base directory never
matches, whatever the pattern.

Example
-------
>>> matches("src/lib/app.ts", "**/*.ts")
True
>>> matches("app.ts", "**/*.ts")
True
>>> matches("src/app.ts", "*.ts")
False
"""
from __future__ import annotations

import functools
import os
import re
from pathlib import Path, PurePosixPath

__all__ = [
    "matches",
    "relative_to_base",
]


def matches(relative_path: str, pattern: str) -> bool:
    """Return ``True`` when *relative_path* matches the glob *pattern*.

    Absolute paths and paths beginning with ``..`` are rejected before the
    pattern is consulted.
    """
    if not relative_path or not pattern:
        return False
    normalized = relative_path.replace(os.sep, "/")
    if normalized.startswith("/") or _escapes(normalized):
        return False
    return any(regex.fullmatch(normalized) for regex in _compile(pattern))


def relative_to_base(path: str | Path, base: str | Path) -> str | None:
    """Express *path* relative to *base* as a forward-slash string.

    Relative *path* values are taken to be relative to *base* already.
    Returns ``None`` when the path lies outside *base*.
    """
    base_path = Path(os.path.abspath(base))
    candidate = Path(path)
    if not candidate.is_absolute():
        candidate = base_path / candidate
    rel = os.path.relpath(os.path.abspath(candidate), base_path)
    posix = PurePosixPath(*Path(rel).parts).as_posix()
    if _escapes(posix):
        return None
    return posix


def _escapes(posix_path: str) -> bool:
    return posix_path == ".." or posix_path.startswith("../")


# ---------------------------------------------------------------------------
# Pattern compilation
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=256)
def _compile(pattern: str) -> tuple[re.Pattern[str], ...]:
    """Compile a glob (with brace alternatives) to anchored regexes."""
    cleaned = pattern.replace(os.sep, "/")
    if cleaned.startswith("./"):
        cleaned = cleaned[2:]
    return tuple(re.compile(_translate(p)) for p in _expand_braces(cleaned))


def _expand_braces(pattern: str) -> list[str]:
    """Expand ``{a,b}`` groups into separate patterns, recursively."""
    start = pattern.find("{")
    if start == -1:
        return [pattern]
    end = pattern.find("}", start + 1)
    if end == -1:
        return [pattern]

    before = pattern[:start]
    inside = pattern[start + 1 : end]
    after = pattern[end + 1 :]

    parts = inside.split(",")
    if len(parts) <= 1:
        return [pattern]

    out: list[str] = []
    for part in parts:
        out.extend(_expand_braces(f"{before}{part}{after}"))
    return out


# One path segment that does not start with a dot.
_VISIBLE_SEGMENT = r"(?!\.)[^/]*"


def _translate(pattern: str) -> str:
    segments = pattern.split("/")
    pieces: list[str] = []
    last = len(segments) - 1

    for index, segment in enumerate(segments):
        if segment == "**":
            if index == last:
                # Trailing globstar: everything below, including nothing.
                if pieces and pieces[-1] == "/":
                    pieces[-1] = f"(?:/{_VISIBLE_SEGMENT})*"
                else:
                    pieces.append(f"{_VISIBLE_SEGMENT}(?:/{_VISIBLE_SEGMENT})*")
            else:
                pieces.append(f"(?:{_VISIBLE_SEGMENT}/)*")
            continue

        pieces.append(_translate_segment(segment))
        if index != last:
            pieces.append("/")

    return "".join(pieces)


def _translate_segment(segment: str) -> str:
    out: list[str] = []
    if segment[:1] in ("*", "?", "["):
        # Wildcards never match a leading dot; spell the dot out instead.
        out.append(r"(?!\.)")
    i = 0
    n = len(segment)
    while i < n:
        char = segment[i]
        i += 1
        if char == "*":
            while i < n and segment[i] == "*":
                i += 1
            out.append("[^/]*")
        elif char == "?":
            out.append("[^/]")
        elif char == "[":
            close = segment.find("]", i + 1 if i < n and segment[i] in "!^" else i)
            if close == -1:
                out.append(re.escape(char))
                continue
            body = segment[i:close]
            i = close + 1
            if body[:1] in ("!", "^"):
                body = "^" + body[1:]
            out.append("[" + body.replace("\\", "\\\\") + "]")
        else:
            out.append(re.escape(char))
    return "".join(out)
