"""Variable scope stack.

One ``ScopeStack`` exists per render call. Only the top frame is visible to
template expressions. Components and slots push *isolated* frames (declared
defaults overridden by explicit values, nothing inherited); includes push
*inherited* frames (a copy of the parent frame plus explicit values).

    >>> scopes = ScopeStack({"user": "ada"})
    >>> with scopes.isolated({"b": 0}, {"a": 1, "b": 2}):
    ...     scopes.current()
    {'a': 1, 'b': 0}
    >>> scopes.get("user")
    'ada'
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any

logger = logging.getLogger(__name__)

#: Returned by ``ScopeStack.lookup`` for unbound names.
MISSING = object()


class ScopeStack:
    """Stack of variable frames; the root frame can never be popped."""

    __slots__ = ("_frames", "_root")

    def __init__(self, root: Mapping[str, Any] | None = None) -> None:
        self._root = dict(root or {})
        self._frames: list[dict[str, Any]] = [dict(self._root)]

    @property
    def depth(self) -> int:
        return len(self._frames)

    def current(self) -> dict[str, Any]:
        return self._frames[-1]

    def snapshot(self) -> dict[str, Any]:
        """Copy of the current frame, for deferred work that must see it later."""
        return dict(self._frames[-1])

    def push_isolated(
        self,
        explicit: Mapping[str, Any] | None = None,
        defaults: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Push a frame of ``defaults`` overridden by ``explicit``.

        Key presence decides the override, so explicit ``""``, ``0``,
        ``False`` and ``None`` all replace a default.
        """
        frame = dict(defaults or {})
        if explicit:
            frame.update(explicit)
        logger.debug(
            "isolated frame at depth %d: defaults=%s explicit=%s",
            len(self._frames) + 1,
            sorted(defaults or ()),
            sorted(explicit or ()),
        )
        self._frames.append(frame)
        return frame

    def push_inherited(self, additional: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """Push a copy of the current frame updated with ``additional``."""
        frame = dict(self._frames[-1])
        if additional:
            frame.update(additional)
        self._frames.append(frame)
        return frame

    def pop(self) -> None:
        """Pop the top frame; a no-op when only the root frame remains."""
        if len(self._frames) > 1:
            self._frames.pop()

    def unwind(self, depth: int) -> None:
        """Pop frames until ``depth`` remain (never below the root)."""
        del self._frames[max(depth, 1) :]

    def get(self, name: str, default: Any = None) -> Any:
        return self._frames[-1].get(name, default)

    def lookup(self, name: str) -> Any:
        """Value of ``name`` in the current frame, or ``MISSING``."""
        return self._frames[-1].get(name, MISSING)

    def set(self, name: str, value: Any) -> None:
        self._frames[-1][name] = value

    def has(self, name: str) -> bool:
        return name in self._frames[-1]

    def reset(self) -> None:
        """Drop every pushed frame and restore the root frame's original data."""
        self._frames = [dict(self._root)]

    @contextmanager
    def isolated(
        self,
        explicit: Mapping[str, Any] | None = None,
        defaults: Mapping[str, Any] | None = None,
    ) -> Iterator[dict[str, Any]]:
        """``push_isolated`` for the duration of a ``with`` block."""
        depth = len(self._frames)
        frame = self.push_isolated(explicit, defaults)
        try:
            yield frame
        finally:
            self.unwind(depth)

    @contextmanager
    def inherited(self, additional: Mapping[str, Any] | None = None) -> Iterator[dict[str, Any]]:
        """``push_inherited`` for the duration of a ``with`` block."""
        depth = len(self._frames)
        frame = self.push_inherited(additional)
        try:
            yield frame
        finally:
            self.unwind(depth)

    def __repr__(self) -> str:
        return f"<ScopeStack depth={len(self._frames)} names={sorted(self._frames[-1])}>"

