"""Bracket- and string-aware scanning helpers shared by the lexer and parser.

Directive arguments and interpolations hold arbitrary expressions, so
terminators are only recognised outside string literals and at bracket
depth zero: ``@if(in_array(x, [1, 2]))`` and ``{{ {'a': {'b': 1}} }}`` both
delimit correctly.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass

_OPENERS = {"(": ")", "[": "]", "{": "}"}
_CLOSERS = frozenset(_OPENERS.values())
_QUOTES = frozenset("'\"")


def skip_string(source: str, pos: int) -> int:
    """Return the index just past the string literal starting at ``pos``.

    Handles single, double and triple quotes with backslash escapes.
    Returns ``-1`` when the literal is not terminated.
    """
    quote = source[pos]
    if source.startswith(quote * 3, pos):
        end = pos + 3
        delimiter = quote * 3
        while end < len(source):
            if source[end] == "\\":
                end += 2
                continue
            if source.startswith(delimiter, end):
                return end + 3
            end += 1
        return -1
    end = pos + 1
    while end < len(source):
        char = source[end]
        if char == "\\":
            end += 2
            continue
        if char == quote:
            return end + 1
        if char == "\n":
            return -1
        end += 1
    return -1


def iter_top_level(source: str, start: int = 0, stop: int | None = None) -> Iterator[int]:
    """Yield indices of characters outside strings at bracket depth zero.

    Opening brackets at depth zero are yielded before the depth increases,
    closing brackets that return to depth zero are not yielded.
    """
    stop = len(source) if stop is None else stop
    depth = 0
    pos = start
    while pos < stop:
        char = source[pos]
        if char in _QUOTES:
            end = skip_string(source, pos)
            if end == -1:
                return
            if depth == 0:
                yield pos
            pos = end
            continue
        if depth == 0:
            yield pos
        if char in _OPENERS:
            depth += 1
        elif char in _CLOSERS and depth > 0:
            depth -= 1
        pos += 1


def find_matching(source: str, pos: int) -> int:
    """Return the index of the bracket closing the one at ``pos``, or ``-1``.

    Nesting is unlimited and brackets inside string literals are ignored.
    """
    stack = [_OPENERS[source[pos]]]
    index = pos + 1
    while index < len(source):
        char = source[index]
        if char in _QUOTES:
            end = skip_string(source, index)
            if end == -1:
                return -1
            index = end
            continue
        if char in _OPENERS:
            stack.append(_OPENERS[char])
        elif char in _CLOSERS:
            if char != stack[-1]:
                return -1
            stack.pop()
            if not stack:
                return index
        index += 1
    return -1


def find_terminator(source: str, pos: int, terminator: str) -> int:
    """Find ``terminator`` at depth zero from ``pos``; ``-1`` if absent."""
    for index in iter_top_level(source, pos):
        if source.startswith(terminator, index):
            return index
    return -1


def split_top_level(source: str, separator: str = ",") -> list[str]:
    """Split on a single-character separator at depth zero, stripping parts.

    An empty source yields an empty list.
    """
    if not source.strip():
        return []
    parts: list[str] = []
    last = 0
    for index in iter_top_level(source):
        if source[index] == separator:
            parts.append(source[last:index].strip())
            last = index + 1
    parts.append(source[last:].strip())
    return parts


def find_keyword(source: str, keyword: str) -> int:
    """Index of the first top-level ``keyword`` surrounded by whitespace, or ``-1``."""
    size = len(keyword)
    for index in iter_top_level(source):
        if (
            source.startswith(keyword, index)
            and index > 0
            and source[index - 1].isspace()
            and index + size < len(source)
            and source[index + size].isspace()
        ):
            return index
    return -1


def find_assignment(source: str) -> int:
    """Index of the first top-level ``=`` that is not part of a comparison."""
    for index in iter_top_level(source):
        if source[index] != "=":
            continue
        before = source[index - 1] if index > 0 else " "
        after = source[index + 1] if index + 1 < len(source) else " "
        if before not in "=!<>" and after != "=":
            return index
    return -1


# ---------------------------------------------------------------------------
# HTML tag scanning
# ---------------------------------------------------------------------------

_ATTR_NAME_RE = re.compile(r"[^\s\"'>/=]+")
_UNQUOTED_VALUE_RE = re.compile(r"[^\s>]+")


@dataclass(frozen=True, slots=True)
class RawAttribute:
    """An attribute as written in a tag.

    Offsets are relative to the scanned text: ``start``/``end`` span the whole
    attribute, ``value_start`` is the first character of the value (``-1``
    for bare attributes).
    """

    name: str
    value: str | None
    start: int
    end: int
    value_start: int = -1


def _skip_interpolation(source: str, pos: int) -> int:
    """If an echo starts at ``pos`` return the index past it, else ``pos``."""
    if source.startswith("{{", pos):
        end = find_terminator(source, pos + 2, "}}")
        return -1 if end == -1 else end + 2
    if source.startswith("{!!", pos):
        end = find_terminator(source, pos + 3, "!!}")
        return -1 if end == -1 else end + 3
    return pos


def scan_tag_end(source: str, pos: int) -> int:
    """Index of the ``>`` closing the tag that starts at ``pos``, or ``-1``.

    Quoted attribute values and interpolations may contain ``>``.
    """
    index = pos + 1
    quote: str | None = None
    while index < len(source):
        skipped = _skip_interpolation(source, index)
        if skipped == -1:
            return -1
        if skipped != index:
            index = skipped
            continue
        char = source[index]
        if quote is not None:
            if char == quote:
                quote = None
        elif char in _QUOTES:
            quote = char
        elif char == ">":
            return index
        elif char == "<":
            return -1
        index += 1
    return -1


def iter_attributes(text: str) -> Iterator[RawAttribute]:
    """Yield the attributes of a tag body such as ``title="Hi" :count="n" disabled``.

    Interpolations inside quoted values may use the same quote character.
    """
    pos = 0
    size = len(text)
    while pos < size:
        if text[pos].isspace() or text[pos] == "/":
            pos += 1
            continue
        skipped = _skip_interpolation(text, pos)
        if skipped != pos:
            pos = size if skipped == -1 else skipped
            continue
        match = _ATTR_NAME_RE.match(text, pos)
        if match is None:
            pos += 1
            continue
        name = match.group()
        look = match.end()
        while look < size and text[look].isspace():
            look += 1
        if look >= size or text[look] != "=":
            yield RawAttribute(name, None, pos, match.end())
            pos = match.end()
            continue
        look += 1
        while look < size and text[look].isspace():
            look += 1
        if look < size and text[look] in _QUOTES:
            quote = text[look]
            close = look + 1
            while close < size and text[close] != quote:
                skipped = _skip_interpolation(text, close)
                if skipped == -1:
                    close = size
                elif skipped != close:
                    close = skipped
                else:
                    close += 1
            yield RawAttribute(name, text[look + 1 : close], pos, min(close + 1, size), look + 1)
            pos = close + 1
            continue
        value_match = _UNQUOTED_VALUE_RE.match(text, look)
        value = value_match.group() if value_match else ""
        end = value_match.end() if value_match else look
        yield RawAttribute(name, value, pos, end, look)
        pos = end
