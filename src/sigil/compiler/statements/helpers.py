"""Helper directive compilation: ``@csrf``, ``@class``, ``@auth`` and friends.

Single-statement helpers compile to one ``_append(_h_<name>(_rc, ...))``
call; the runtime functions live in ``sigil.template.helpers``. Paired
helpers (``@env``, ``@auth``, ``@guest``, ``@error``) compile to an ``if``.
"""

from __future__ import annotations

import ast
from typing import TYPE_CHECKING

from sigil.compiler.utils import assign, call, const, expr_stmt, load, method
from sigil.template.helpers import HELPER_FUNCTIONS

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sigil.nodes import ConditionalRegion, Expression, HelperCall, Node


class HelperDirectiveMixin:
    """Mixin for compiling ``HelperCall`` and ``ConditionalRegion`` nodes."""

    if TYPE_CHECKING:
        _block_counter: int

        def _compile_expr(self, expression: Expression) -> ast.expr: ...

        def _compile_body(self, nodes: Sequence[Node]) -> list[ast.stmt]: ...

        def _emit_output(self, value_expr: ast.expr) -> ast.stmt: ...

    def _compile_helper_call(self, node: HelperCall) -> list[ast.stmt]:
        func = HELPER_FUNCTIONS[node.name]
        args = [self._compile_expr(arg) for arg in node.args]
        return [self._emit_output(call(func, load("_rc"), *args))]

    def _compile_conditional_region(self, node: ConditionalRegion) -> list[ast.stmt]:
        body = self._compile_body(node.body) or [ast.Pass()]
        kind = node.kind
        if kind == "env":
            test: ast.expr = call("_env_matches", load("_rc"), self._compile_expr(node.argument))
        elif kind == "auth":
            test = call("_auth_check", load("_rc"))
        elif kind == "guest":
            test = ast.UnaryOp(op=ast.Not(), operand=call("_auth_check", load("_rc")))
        elif kind == "error":
            return self._compile_error_region(node, body)
        else:
            raise ValueError(f"Unknown conditional region '{kind}'")
        return [ast.If(test=test, body=body, orelse=[])]

    def _compile_error_region(self, node: ConditionalRegion, body: list[ast.stmt]) -> list[ast.stmt]:
        """Compile @error('field'):

            _error_1 = _error_message(_rc, 'field')
            if _error_1 is not None:
                _scopes.set('message', _error_1)
                ...
        """
        self._block_counter += 1
        message_var = f"_error_{self._block_counter}"
        return [
            assign(message_var, call("_error_message", load("_rc"), self._compile_expr(node.argument))),
            ast.If(
                test=ast.Compare(
                    left=load(message_var), ops=[ast.IsNot()], comparators=[const(None)]
                ),
                body=[
                    expr_stmt(method("_scopes", "set", const("message"), load(message_var))),
                    *body,
                ],
                orelse=[],
            ),
        ]
