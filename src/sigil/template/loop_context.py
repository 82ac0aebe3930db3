"""Loop iteration metadata for Sigil ``@foreach`` and ``@for`` blocks."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Any


class LoopContext:
    """Loop iteration metadata accessible as `loop` inside `@foreach` blocks.

    Provides index tracking, boundary detection, and utility methods for
    common iteration patterns. All properties are computed on-access. The
    iterable is materialized up front so ``length`` and ``last`` are known;
    ``None`` iterates as an empty sequence.

    Properties:
        index: 1-based iteration count (1, 2, 3, ...)
        index0: 0-based iteration count (0, 1, 2, ...)
        first: True on the first iteration
        last: True on the final iteration
        length: Total number of items in the sequence
        revindex: Reverse 1-based index (counts down to 1)
        revindex0: Reverse 0-based index (counts down to 0)
        previtem: Previous item in sequence (None on first)
        nextitem: Next item in sequence (None on last)
        even / odd: Parity of ``index``
        parent: The enclosing loop's context, or None
        depth: Nesting level, 1 for the outermost loop

    Methods:
        cycle(*values): Return values[index0 % len(values)]

    Example:
            ```
            <ul>
            @foreach(items as item)
                <li class="{{ loop.cycle('odd', 'even') }}">
                    {{ loop.index }}/{{ loop.length }}: {{ item }}
                    @if(loop.first) (first) @endif
                </li>
            @endforeach
            </ul>
            ```
    """

    __slots__ = ("_index", "_items", "_length", "parent")

    def __init__(self, items: Iterable[Any] | None, parent: LoopContext | None = None) -> None:
        self._items = list(items) if items is not None else []
        self._length = len(self._items)
        self._index = 0
        self.parent = parent

    def __iter__(self) -> Iterator[Any]:
        """Iterate through items, updating index for each."""
        for i, item in enumerate(self._items):
            self._index = i
            yield item

    @property
    def index(self) -> int:
        """1-based iteration count."""
        return self._index + 1

    @property
    def index0(self) -> int:
        return self._index

    @property
    def first(self) -> bool:
        return self._index == 0

    @property
    def last(self) -> bool:
        return self._index == self._length - 1

    @property
    def length(self) -> int:
        return self._length

    @property
    def revindex(self) -> int:
        """Reverse 1-based index (counts down to 1)."""
        return self._length - self._index

    @property
    def revindex0(self) -> int:
        return self._length - self._index - 1

    @property
    def previtem(self) -> Any:
        if self._index == 0:
            return None
        return self._items[self._index - 1]

    @property
    def nextitem(self) -> Any:
        if self._index >= self._length - 1:
            return None
        return self._items[self._index + 1]

    @property
    def even(self) -> bool:
        return self.index % 2 == 0

    @property
    def odd(self) -> bool:
        return self.index % 2 == 1

    @property
    def depth(self) -> int:
        depth = 1
        parent = self.parent
        while parent is not None:
            depth += 1
            parent = parent.parent
        return depth

    def cycle(self, *values: Any) -> Any:
        """Cycle through the given values.

        Example:
            {{ loop.cycle('odd', 'even') }}
        """
        if not values:
            return None
        return values[self._index % len(values)]

    def __repr__(self) -> str:
        return f"<LoopContext {self.index}/{self.length}>"
