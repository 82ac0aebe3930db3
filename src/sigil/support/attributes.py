"""Component attribute bag and class/style list helpers.

Inside a component, ``attributes`` is an ``AttributeBag`` holding every
attribute that was not declared with ``@props``:

    <button {{ attributes.merge({'class': 'btn'}) }}>{{ slot }}</button>

Class and style values accept a string, a list/tuple of strings (falsy
entries skipped, dicts allowed as entries), or a dict mapping a class name
to a condition. ``None`` and ``False`` mean "nothing". Any other type raises
``TypeError`` rather than being dropped silently.
"""

from __future__ import annotations

import fnmatch
from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from sigil.utils.html import Markup, html_escape


def _conditional_items(value: Any, what: str) -> Iterator[str]:
    """Yield the enabled entries of a class/style specification."""
    if value is None or value is False:
        return
    if isinstance(value, str):
        yield value
        return
    if isinstance(value, Mapping):
        for key, condition in value.items():
            if not isinstance(key, str):
                raise TypeError(f"{what} names must be strings, got {type(key).__name__}")
            if condition:
                yield key
        return
    if isinstance(value, (list, tuple)):
        for item in value:
            yield from _conditional_items(item, what)
        return
    raise TypeError(
        f"Unsupported {what} value of type {type(value).__name__}: "
        "expected str, list, tuple or dict"
    )


def class_list(value: Any) -> str:
    """Space-separated class string with duplicates removed, first one wins.

        >>> class_list(["btn", {"active": True, "hidden": False}, None])
        'btn active'
    """
    seen: dict[str, None] = {}
    for entry in _conditional_items(value, "class"):
        for name in entry.split():
            seen.setdefault(name, None)
    return " ".join(seen)


def style_list(value: Any) -> str:
    """``;``-terminated style declarations.

        >>> style_list(["color: red", {"display: none": False}])
        'color: red;'
    """
    declarations = [entry.strip().rstrip(";") for entry in _conditional_items(value, "style")]
    return " ".join(f"{declaration};" for declaration in declarations if declaration)


def _matches(key: str, patterns: Iterable[str]) -> bool:
    for pattern in patterns:
        if "*" in pattern:
            if fnmatch.fnmatchcase(key, pattern):
                return True
        elif key == pattern:
            return True
    return False


class AttributeBag(Mapping[str, Any]):
    """Ordered, immutable-by-convention collection of HTML attributes.

    Renders as ``key="escaped value"`` pairs separated by spaces. ``True``
    renders the bare key, while ``False``, ``None`` and ``""`` are omitted.
    """

    __slots__ = ("_attributes",)

    def __init__(self, attributes: Mapping[str, Any] | None = None) -> None:
        self._attributes: dict[str, Any] = dict(attributes or {})

    # Mapping protocol
    def __getitem__(self, key: str) -> Any:
        return self._attributes[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._attributes)

    def __len__(self) -> int:
        return len(self._attributes)

    def all(self) -> dict[str, Any]:
        return dict(self._attributes)

    def get(self, key: str, default: Any = None) -> Any:
        return self._attributes.get(key, default)

    def has(self, key: str) -> bool:
        return key in self._attributes

    def set(self, key: str, value: Any) -> AttributeBag:
        """Set ``key`` in place and return the bag for chaining."""
        self._attributes[key] = value
        return self

    def merge(self, defaults: Mapping[str, Any] | None = None) -> AttributeBag:
        """New bag of ``defaults`` overridden by these attributes.

        ``class`` values are combined (defaults first, deduplicated) and
        ``style`` values are concatenated instead of replaced.
        """
        merged = dict(defaults or {})
        for key, value in self._attributes.items():
            if key == "class" and "class" in merged:
                merged["class"] = class_list([merged["class"], value])
            elif key == "style" and "style" in merged:
                merged["style"] = style_list([merged["style"], value])
            else:
                merged[key] = value
        return AttributeBag(merged)

    def only(self, keys: str | Iterable[str]) -> AttributeBag:
        """Attributes whose names match ``keys`` (``*`` wildcards allowed)."""
        patterns = [keys] if isinstance(keys, str) else list(keys)
        return AttributeBag({k: v for k, v in self._attributes.items() if _matches(k, patterns)})

    def exclude(self, keys: str | Iterable[str]) -> AttributeBag:
        """Attributes whose names do not match ``keys`` (``*`` wildcards allowed)."""
        patterns = [keys] if isinstance(keys, str) else list(keys)
        return AttributeBag(
            {k: v for k, v in self._attributes.items() if not _matches(k, patterns)}
        )

    def with_prefix(self, prefix: str) -> AttributeBag:
        """Attributes starting with ``prefix``, e.g. ``with_prefix('data-')``."""
        return self.only([f"{prefix}*"])

    def class_names(self, classes: Any) -> AttributeBag:
        """Merge a conditional class specification into ``class``."""
        return self.merge({"class": class_list(classes)})

    @staticmethod
    def conditional(classes: Any) -> str:
        """Conditional class string; see ``class_list``."""
        return class_list(classes)

    def to_html(self) -> Markup:
        parts: list[str] = []
        for key, value in self._attributes.items():
            if value is True:
                parts.append(key)
            elif value is False or value is None or value == "":
                continue
            else:
                parts.append(f'{key}="{html_escape(value)}"')
        return Markup(" ".join(parts))

    def __html__(self) -> Markup:
        return self.to_html()

    def __str__(self) -> str:
        return str(self.to_html())

    def __bool__(self) -> bool:
        return bool(self._attributes)

    def __repr__(self) -> str:
        return f"AttributeBag({self._attributes!r})"
