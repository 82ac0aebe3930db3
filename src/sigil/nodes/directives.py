"""Helper directive nodes."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from sigil.nodes.base import Node
from sigil.nodes.expressions import Expression


@dataclass(frozen=True, slots=True)
class HelperCall(Node):
    """Single-statement helper: ``@class``, ``@style``, ``@json``, ``@csrf``...

    ``args`` holds the comma-separated argument expressions in order.
    """

    name: str
    args: Sequence[Expression] = ()


@dataclass(frozen=True, slots=True)
class ConditionalRegion(Node):
    """Paired helper region: ``@env``, ``@auth``, ``@guest``, ``@error``.

    ``argument`` is the environment list for ``@env`` and the field name
    for ``@error``.
    """

    kind: str
    body: Sequence[Node]
    argument: Expression | None = None
