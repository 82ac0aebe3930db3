"""HTML escaping and the ``Markup`` safe-string type.

Anything exposing ``__html__`` is treated as already-safe markup and passes
through ``html_escape`` unchanged. ``Slot``, ``SlotMap`` and
``AttributeBag`` implement ``__html__`` so their rendered output is never
escaped twice.
"""

from __future__ import annotations

import json
from typing import Any

_ESCAPE_TABLE = str.maketrans(
    {
        "&": "&amp;",
        "<": "&lt;",
        ">": "&gt;",
        '"': "&quot;",
        "'": "&#39;",
    }
)

# JSON hex escapes that keep serialized data inert inside <script> and attributes.
_JSON_HEX_TABLE = str.maketrans(
    {
        "<": "\\u003c",
        ">": "\\u003e",
        "&": "\\u0026",
        "'": "\\u0027",
    }
)


class Markup(str):
    """A string that is safe to emit without escaping.

    Concatenation with plain strings escapes the plain side:

        >>> Markup("<b>") + "<i>"
        Markup('<b>&lt;i&gt;')
    """

    __slots__ = ()

    def __new__(cls, value: object = "") -> Markup:
        if hasattr(value, "__html__"):
            value = value.__html__()
        return super().__new__(cls, value)

    def __html__(self) -> Markup:
        return self

    def __add__(self, other: object) -> Markup:
        if isinstance(other, str) or hasattr(other, "__html__"):
            return Markup(str.__add__(self, html_escape(other)))
        return NotImplemented

    def __radd__(self, other: object) -> Markup:
        if isinstance(other, str) or hasattr(other, "__html__"):
            return Markup(str.__add__(html_escape(other), self))
        return NotImplemented

    def join(self, seq: Any) -> Markup:
        return Markup(str.join(self, (html_escape(item) for item in seq)))

    def __repr__(self) -> str:
        return f"Markup({str.__repr__(self)})"

    @classmethod
    def escape(cls, value: object) -> Markup:
        """Escape ``value`` and mark the result safe."""
        return html_escape(value)


def html_escape(value: object) -> Markup:
    """Escape ``value`` for HTML text and attribute contexts.

    ``None`` becomes the empty string; objects with ``__html__`` are trusted.
    """
    if value is None:
        return Markup("")
    if hasattr(value, "__html__"):
        return Markup(value.__html__())
    return Markup(str(value).translate(_ESCAPE_TABLE))


def str_safe(value: object) -> str:
    """``str`` for raw output: ``None`` becomes the empty string."""
    if value is None:
        return ""
    if hasattr(value, "__html__"):
        return str(value.__html__())
    return str(value)


def json_for_html(value: Any) -> Markup:
    """Serialize ``value`` to JSON that is safe to embed in HTML."""
    return Markup(json.dumps(value, default=str).translate(_JSON_HEX_TABLE))


def json_for_script(value: Any) -> Markup:
    """Serialize ``value`` to a JavaScript literal, keeping unicode as-is."""
    return Markup(json.dumps(value, ensure_ascii=False, default=str).replace("</", "<\\/"))
