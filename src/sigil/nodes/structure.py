"""Template structure nodes: layouts, sections, includes, declarations."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from sigil.nodes.base import Node
from sigil.nodes.expressions import Expression


@dataclass(frozen=True, slots=True)
class Extends(Node):
    """``@extends('layouts.app')``"""

    template: str


@dataclass(frozen=True, slots=True)
class Section(Node):
    """``@section('name') ... @endsection`` or ``@section('name', expr)``"""

    name: str
    body: Sequence[Node]


@dataclass(frozen=True, slots=True)
class Yield(Node):
    """``@yield('name')`` placeholder, optionally with a default expression."""

    name: str
    default: Expression | None = None


@dataclass(frozen=True, slots=True)
class Include(Node):
    """``@include('name', {...})``; ``@includeIf`` sets ``ignore_missing``."""

    template: Expression
    with_values: Expression | None = None
    ignore_missing: bool = False


@dataclass(frozen=True, slots=True)
class Set(Node):
    """``@set(name = expr)``"""

    name: str
    value: Expression


@dataclass(frozen=True, slots=True)
class Template(Node):
    """Root node of a parsed template.

    ``extends``, ``sections`` and ``props`` are collected from the top level
    during parsing; they never appear in ``body``.
    """

    body: Sequence[Node]
    extends: Extends | None = None
    sections: Sequence[Section] = ()
    props: tuple[tuple[str, Any], ...] | None = None

    def section_map(self) -> dict[str, Sequence[Node]]:
        return {section.name: section.body for section in self.sections}

    def prop_defaults(self) -> dict[str, Any]:
        return dict(self.props or ())
