"""Output nodes."""

from __future__ import annotations

from dataclasses import dataclass

from sigil.nodes.base import Node
from sigil.nodes.expressions import Expression


@dataclass(frozen=True, slots=True)
class Data(Node):
    """Literal text between template constructs."""

    value: str


@dataclass(frozen=True, slots=True)
class Output(Node):
    """Interpolation: ``{{ expr }}`` (escaped) or ``{!! expr !!}`` (raw)."""

    expr: Expression
    escape: bool = True


@dataclass(frozen=True, slots=True)
class Raw(Node):
    """Protected text emitted verbatim (``@verbatim``, ``<code>``, ``@@``)."""

    value: str
