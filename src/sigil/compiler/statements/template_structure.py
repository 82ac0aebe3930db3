"""Template structure compilation: ``@include`` and ``@includeIf``.

Layout inheritance (``@extends``/``@section``/``@yield``) is resolved on
the node tree before compilation (see ``sigil.layout``), so only includes
reach the compiler as runtime calls.
"""

from __future__ import annotations

import ast
from typing import TYPE_CHECKING

from sigil.compiler.utils import call, const, expr_stmt, load

if TYPE_CHECKING:
    from sigil.nodes import Expression, Include


class TemplateStructureMixin:
    """Mixin for compiling includes."""

    if TYPE_CHECKING:

        def _compile_expr(self, expression: Expression) -> ast.expr: ...

    def _compile_include(self, node: Include) -> list[ast.stmt]:
        """Compile @include(name, values) to _include(_rc, name, values, ignore_missing)."""
        values = self._compile_expr(node.with_values) if node.with_values else const(None)
        return [
            expr_stmt(
                call(
                    "_include",
                    load("_rc"),
                    self._compile_expr(node.template),
                    values,
                    const(node.ignore_missing),
                )
            )
        ]
