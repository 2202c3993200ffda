"""Delimiter-aware helpers for scanning Go source text.

Structural scanning works on a *masked* copy of the source: the contents of
string, raw string and rune literals and of comments are blanked to spaces.
The masked text has the same length and the same newlines as the original,
so every offset found in it indexes the original text too. Brace matching
and top-level splitting on masked text never trip over a ``{`` inside an
HCL template or a ``,`` inside a comment.
"""

from __future__ import annotations

import bisect
import re

_CLOSERS = {"(": ")", "[": "]", "{": "}"}
_OPENERS = frozenset(_CLOSERS)
_CLOSING = frozenset(_CLOSERS.values())

# A double-quoted Go string literal (no raw strings)
_QUOTED_RE = re.compile(r'"((?:[^"\\\n]|\\.)*)"')


def _blank(chars: list[str], start: int, end: int) -> None:
    for i in range(start, min(end, len(chars))):
        if chars[i] != "\n":
            chars[i] = " "


def mask_literals(source: str, *, strings: bool = True, comments: bool = True) -> str:
    """Blank literal and/or comment contents, keeping length and newlines.

    String delimiters are kept so masked text still shows where a literal
    was; comment markers are blanked with the comment.
    """
    chars = list(source)
    i = 0
    n = len(source)
    while i < n:
        c = source[i]
        nxt = source[i + 1] if i + 1 < n else ""
        if c == "/" and nxt == "/":
            end = source.find("\n", i)
            end = n if end == -1 else end
            if comments:
                _blank(chars, i, end)
            i = end
        elif c == "/" and nxt == "*":
            end = source.find("*/", i + 2)
            end = n if end == -1 else end + 2
            if comments:
                _blank(chars, i, end)
            i = end
        elif c == "`":
            end = source.find("`", i + 1)
            end = n if end == -1 else end
            if strings:
                _blank(chars, i + 1, end)
            i = end + 1
        elif c in "\"'":
            j = i + 1
            while j < n and source[j] != c and source[j] != "\n":
                j += 2 if source[j] == "\\" else 1
            if strings:
                _blank(chars, i + 1, j)
            i = j + 1
        else:
            i += 1
    return "".join(chars)


def match_brace(masked: str, open_index: int) -> int:
    """Offset of the delimiter closing the one at ``open_index``, or -1."""
    opener = masked[open_index]
    closer = _CLOSERS[opener]
    depth = 0
    for i in range(open_index, len(masked)):
        c = masked[i]
        if c == opener:
            depth += 1
        elif c == closer:
            depth -= 1
            if depth == 0:
                return i
    return -1


def value_end(masked: str, start: int, *, stop_at_newline: bool = False) -> int:
    """End offset of the expression starting at ``start``.

    The expression ends at the first top-level ``,`` or at the delimiter
    closing the enclosing construct. With ``stop_at_newline`` a top-level
    newline also ends it (statement context).
    """
    depth = 0
    for i in range(start, len(masked)):
        c = masked[i]
        if c in _OPENERS:
            depth += 1
        elif c in _CLOSING:
            if depth == 0:
                return i
            depth -= 1
        elif depth == 0 and (c == "," or (stop_at_newline and c in "\n;")):
            return i
    return len(masked)


def split_top_level(masked: str, start: int, end: int, sep: str = ",") -> list[tuple[int, int]]:
    """Spans of ``sep``-separated items in ``masked[start:end]`` at nesting depth 0.

    Spans are trimmed of surrounding whitespace; empty items are dropped.
    """
    spans: list[tuple[int, int]] = []
    depth = 0
    item_start = start
    for i in range(start, end):
        c = masked[i]
        if c in _OPENERS:
            depth += 1
        elif c in _CLOSING:
            depth -= 1
        elif c == sep and depth == 0:
            spans.append((item_start, i))
            item_start = i + 1
    spans.append((item_start, end))

    trimmed: list[tuple[int, int]] = []
    for s, e in spans:
        while s < e and masked[s].isspace():
            s += 1
        while e > s and masked[e - 1].isspace():
            e -= 1
        if s < e:
            trimmed.append((s, e))
    return trimmed


def quoted_values(text: str) -> list[str]:
    """Contents of every double-quoted literal in ``text``."""
    return _QUOTED_RE.findall(text)


class LineIndex:
    """Offset to 1-based line number lookups for one text."""

    def __init__(self, text: str, first_line: int = 1) -> None:
        self._starts = [0] + [i + 1 for i, c in enumerate(text) if c == "\n"]
        self._first_line = first_line

    def __len__(self) -> int:
        return len(self._starts)

    def line_of(self, offset: int) -> int:
        return bisect.bisect_right(self._starts, offset) - 1 + self._first_line
