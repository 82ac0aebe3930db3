"""Basic statement compilation for the Sigil compiler.

Provides the mixin for output statements (text, echoes, ``@set``, bound
HTML attributes and leftover ``@yield`` placeholders).
"""

from __future__ import annotations

import ast
from typing import TYPE_CHECKING

from sigil.compiler.utils import call, const, expr_stmt, method

if TYPE_CHECKING:
    from sigil.nodes import BoundAttribute, Data, Expression, Output, Raw, Set, Yield


class BasicStatementMixin:
    """Mixin for compiling output statements."""

    if TYPE_CHECKING:
        # From ExpressionCompilationMixin
        def _compile_expr(self, expression: Expression) -> ast.expr: ...

        def _is_safe_output(self, expression: Expression) -> bool: ...

        # From Compiler core
        def _emit_output(self, value_expr: ast.expr) -> ast.stmt: ...

    def _compile_data(self, node: Data) -> list[ast.stmt]:
        """Compile template text: _append("literal text")"""
        if not node.value:
            return []
        return [self._emit_output(const(node.value))]

    def _compile_raw(self, node: Raw) -> list[ast.stmt]:
        """Compile protected text (``@verbatim``, ``<code>``, ``@@``)."""
        return self._compile_data(node)

    def _compile_output(self, node: Output) -> list[ast.stmt]:
        """Compile {{ expression }} and {!! expression !!} output.

        Escaped: _append(_e(expr))
        Bare slot/attribute container: _append(_container(expr))
        Raw: _append(_s(expr))
        """
        expr = self._compile_expr(node.expr)
        if node.escape:
            if self._is_safe_output(node.expr):
                return [self._emit_output(call("_container", expr))]
            return [self._emit_output(call("_e", expr))]
        return [self._emit_output(call("_s", expr))]

    def _compile_set(self, node: Set) -> list[ast.stmt]:
        """Compile ``@set(name = expr)``: _scopes.set('name', expr)"""
        return [expr_stmt(method("_scopes", "set", const(node.name), self._compile_expr(node.value)))]

    def _compile_bound_attribute(self, node: BoundAttribute) -> list[ast.stmt]:
        """Compile ``:attr="expr"`` on a plain tag: _append(_bound_attr('attr', expr))"""
        return [
            self._emit_output(call("_bound_attr", const(node.name), self._compile_expr(node.expr)))
        ]

    def _compile_yield(self, node: Yield) -> list[ast.stmt]:
        """Compile a ``@yield`` that no section filled: its escaped default, or nothing."""
        if node.default is None:
            return []
        return [self._emit_output(call("_e", self._compile_expr(node.default)))]
