"""Control flow nodes."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from sigil.nodes.base import Node
from sigil.nodes.expressions import Expression


@dataclass(frozen=True, slots=True)
class If(Node):
    """``@if(cond) ... @elseif(cond) ... @else ... @endif``"""

    test: Expression
    body: Sequence[Node]
    elif_: Sequence[tuple[Expression, Sequence[Node]]] = ()
    else_: Sequence[Node] = ()


@dataclass(frozen=True, slots=True)
class For(Node):
    """Iteration over ``iter`` binding ``target`` names in the current frame.

    Both ``@foreach(items as item)`` and ``@for(item in items)`` produce
    this node; ``directive`` records which spelling was used.
    """

    target: tuple[str, ...]
    iter: Expression
    body: Sequence[Node]
    directive: str = "foreach"
    uses_loop: bool = False


@dataclass(frozen=True, slots=True)
class While(Node):
    """``@while(cond) ... @endwhile``"""

    test: Expression
    body: Sequence[Node]


@dataclass(frozen=True, slots=True)
class Break(Node):
    """``@break`` or ``@break(cond)``"""

    test: Expression | None = None


@dataclass(frozen=True, slots=True)
class Continue(Node):
    """``@continue`` or ``@continue(cond)``"""

    test: Expression | None = None
