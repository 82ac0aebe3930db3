"""Component, slot and bound-attribute nodes."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from sigil.nodes.base import Node
from sigil.nodes.expressions import Expression


class AttributeKind(Enum):
    """How a component attribute's value is produced."""

    LITERAL = "literal"  # title="Hello"
    ESCAPED = "escaped"  # title="{{ expr }}"
    RAW = "raw"  # title="{!! expr !!}"
    INTERPOLATED = "interpolated"  # title="Hi {{ name }}"
    BOUND = "bound"  # :items="expr"
    BOOLEAN = "boolean"  # disabled


@dataclass(frozen=True, slots=True)
class Attribute(Node):
    """One attribute on a component tag.

    ``value`` is a ``str`` for literals, an ``Expression`` for escaped, raw
    and bound values, a tuple of ``str | Output`` parts for
    interpolated literals, and ``None`` for boolean flags.
    """

    name: str
    kind: AttributeKind
    value: str | Expression | tuple[str | Node, ...] | None = None


@dataclass(frozen=True, slots=True)
class SlotBlock(Node):
    """Named slot: ``<x-slot:name>``, ``<x-slot name="...">`` or ``@slot('name')``."""

    name: str
    body: Sequence[Node]


@dataclass(frozen=True, slots=True)
class Component(Node):
    """Component invocation: ``<x-name ...>body</x-name>`` or ``<x-name ... />``.

    Named slots declared directly inside the body are lifted into ``slots``;
    the remaining body becomes the default slot.
    """

    name: str
    attributes: Sequence[Attribute]
    body: Sequence[Node] = ()
    slots: Sequence[SlotBlock] = ()
    self_closing: bool = False


@dataclass(frozen=True, slots=True)
class BoundAttribute(Node):
    """``:attr="expr"`` on a plain HTML tag (``:class``, ``:style``, ``:disabled``...)."""

    name: str
    expr: Expression
