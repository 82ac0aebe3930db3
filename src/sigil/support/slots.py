"""Slots: deferred, lexically scoped content passed into components.

A ``Slot`` wraps the compiled body of ``<x-slot:name>`` (or of a component's
un-named content) together with a copy of the frame that was active where
the slot was written. Rendering pushes that frame back, so the slot sees the
caller's variables even though it runs inside the component's isolated
scope:

    @set(label = 'Save')
    <x-button>{{ label }}</x-button>   {{-- renders "Save", not the component's label --}}
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import TYPE_CHECKING, Any

from sigil.utils.html import Markup, html_escape

if TYPE_CHECKING:
    from sigil.render_context import RenderContext


class Slot:
    """A renderable slot. Output is produced once and memoized.

    Renders as safe markup (``__html__``), so ``{{ slot }}`` never escapes
    it. Truthiness reflects whether the slot has non-whitespace content.
    """

    __slots__ = ("_body", "_frame", "_rc", "_rendered", "name")

    def __init__(
        self,
        rc: RenderContext | None = None,
        body: Callable[[], None] | None = None,
        frame: Mapping[str, Any] | None = None,
        *,
        name: str = "default",
        content: str | None = None,
    ) -> None:
        self.name = name
        self._rc = rc
        self._body = body
        self._frame = dict(frame or {})
        self._rendered: Markup | None = None if body is not None else html_escape(content)

    @classmethod
    def empty(cls, name: str = "default") -> Slot:
        return cls(name=name, content="")

    def render(self) -> Markup:
        if self._rendered is None:
            rc = self._rc
            assert rc is not None and self._body is not None
            try:
                with rc.output.capture() as captured, rc.scopes.isolated(self._frame):
                    self._body()
            except Exception as exc:
                enhanced = rc.enhance_error(exc)
                if enhanced is exc:
                    raise
                raise enhanced from exc
            self._rendered = Markup(captured.value)
        return self._rendered

    def is_empty(self) -> bool:
        return not self.render().strip()

    def has_content(self) -> bool:
        return not self.is_empty()

    def __html__(self) -> Markup:
        return self.render()

    def __str__(self) -> str:
        return str(self.render())

    def __bool__(self) -> bool:
        return self.has_content()

    def __repr__(self) -> str:
        return f"<Slot {self.name!r}>"


def _as_slot(name: str, content: Any) -> Slot:
    if isinstance(content, Slot):
        return content
    if callable(content):
        return Slot(name=name, content=html_escape(content()))
    return Slot(name=name, content=content)


class SlotMap:
    """Named slots of one component invocation plus its default slot.

    Access styles, all returning safe markup:

        {{ slots.footer }}            {{ slots['footer'] }}
        {{ slots.get('footer', 'No footer') }}
        @if(slots.has('footer')) ... @endif

    A slot whose content is empty or whitespace-only counts as absent.

    Dot access only reaches slots whose names are not methods of this class.
    A slot called ``get``, ``set``, ``has``, ``is_empty``, ``names``, ``all``,
    ``render``, ``wrapped`` or ``default`` must be read as ``slots['render']``
    or ``slots.get('render')``; ``slots.render`` is the method.
    """

    __slots__ = ("_default", "_slots")

    def __init__(
        self,
        slots: Mapping[str, Any] | None = None,
        default: Any = None,
    ) -> None:
        self._slots: dict[str, Slot] = {
            name: _as_slot(name, content) for name, content in (slots or {}).items()
        }
        self._default: Slot | None = None if default is None else _as_slot("default", default)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SlotMap:
        """Build from a plain dict; the ``slot`` key becomes the default slot."""
        named = {key: value for key, value in data.items() if key != "slot"}
        return cls(named, data.get("slot"))

    def set(self, name: str, content: Any) -> SlotMap:
        self._slots[name] = _as_slot(name, content)
        return self

    def set_default(self, content: Any) -> SlotMap:
        self._default = _as_slot("default", content)
        return self

    def get(self, name: str, default: Any = "") -> Markup:
        slot = self._slots.get(name)
        if slot is None:
            return html_escape(default() if callable(default) else default)
        return slot.render()

    def has(self, name: str) -> bool:
        slot = self._slots.get(name)
        return slot is not None and slot.has_content()

    def is_empty(self, name: str) -> bool:
        return not self.has(name)

    @property
    def default(self) -> Slot:
        """The default slot (an empty slot when the component had no body)."""
        return self._default if self._default is not None else Slot.empty()

    def get_default(self, fallback: Any = "") -> Markup:
        if self._default is None:
            return html_escape(fallback() if callable(fallback) else fallback)
        return self._default.render()

    def has_default(self) -> bool:
        return self._default is not None and self._default.has_content()

    def names(self) -> list[str]:
        return list(self._slots)

    def all(self) -> dict[str, Slot]:
        return dict(self._slots)

    def wrapped(self, name: str, wrapper: str, default: Any = "") -> Markup:
        """Slot content substituted for ``{slot}`` in ``wrapper``, or ``default``.

            {{ slots.wrapped('title', '<h2 class="card-title">{slot}</h2>') }}
        """
        if not self.has(name):
            return html_escape(default() if callable(default) else default)
        return Markup(str(wrapper).replace("{slot}", self.get(name)))

    def render(self, names: Iterable[str], separator: str = "") -> Markup:
        """Content of every slot in ``names`` that has content, joined."""
        return Markup(separator.join(self.get(name) for name in names if self.has(name)))

    def __getattr__(self, name: str) -> Markup:
        if name.startswith("_"):
            raise AttributeError(name)
        return self.get(name)

    def __getitem__(self, name: str) -> Markup:
        return self.get(name)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.has(name)

    def __html__(self) -> Markup:
        return self.get_default()

    def __str__(self) -> str:
        return str(self.get_default())

    def __repr__(self) -> str:
        return f"<SlotMap {self.names()}>"
