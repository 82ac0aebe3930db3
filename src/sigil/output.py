"""Call-scoped output accumulator with nested capture regions.

Compiled templates write into the innermost open region. Components, slots
and includes open a region with ``capture()`` and always close exactly the
regions they opened, on success and on error.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager


class Captured:
    """Result holder filled in when a ``capture()`` block exits normally."""

    __slots__ = ("value",)

    def __init__(self) -> None:
        self.value = ""


class OutputBuffer:
    """StringBuilder-style buffer with a stack of regions.

    Example:
        >>> out = OutputBuffer()
        >>> out.write("a")
        >>> with out.capture() as inner:
        ...     out.write("b")
        >>> inner.value, out.getvalue()
        ('b', 'a')
    """

    __slots__ = ("_regions",)

    def __init__(self) -> None:
        self._regions: list[list[str]] = [[]]

    @property
    def depth(self) -> int:
        return len(self._regions)

    def write(self, text: str) -> None:
        self._regions[-1].append(text)

    def begin(self) -> int:
        """Open a region; returns the depth to ``unwind`` to on failure."""
        mark = len(self._regions)
        self._regions.append([])
        return mark

    def end(self) -> str:
        """Close the innermost region and return its text."""
        if len(self._regions) == 1:
            raise RuntimeError("cannot close the root output region")
        return "".join(self._regions.pop())

    def unwind(self, depth: int) -> None:
        """Discard regions opened above ``depth`` (never the root)."""
        del self._regions[max(depth, 1) :]

    @contextmanager
    def capture(self) -> Iterator[Captured]:
        captured = Captured()
        mark = self.begin()
        try:
            yield captured
            captured.value = "".join(self._regions[mark])
        finally:
            self.unwind(mark)

    def discard(self) -> None:
        """Drop everything written so far, including the root region."""
        self._regions = [[]]

    def getvalue(self) -> str:
        return "".join(self._regions[0])
