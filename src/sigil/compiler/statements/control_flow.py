"""Control flow statement compilation for the Sigil compiler.

Directives map one-to-one onto Python statements:

    @if / @elseif / @else      ->  if / elif / else
    @foreach / @for            ->  for
    @while                     ->  while
    @break(cond)               ->  if cond: break
"""

from __future__ import annotations

import ast
from typing import TYPE_CHECKING

from sigil.compiler.utils import assign, call, const, expr_stmt, load, method, store

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sigil.nodes import Break, Continue, Expression, For, If, Node, While


class ControlFlowMixin:
    """Mixin for compiling control flow statements."""

    if TYPE_CHECKING:
        _block_counter: int

        def _compile_expr(self, expression: Expression) -> ast.expr: ...

        def _compile_body(self, nodes: Sequence[Node]) -> list[ast.stmt]: ...

    def _compile_if(self, node: If) -> list[ast.stmt]:
        """Compile @if, chaining each @elseif as a nested ``if`` in ``orelse``."""
        orelse: list[ast.stmt] = self._compile_body(node.else_)
        for test, body in reversed(node.elif_):
            orelse = [
                ast.If(
                    test=self._compile_expr(test),
                    body=self._compile_body(body) or [ast.Pass()],
                    orelse=orelse,
                )
            ]
        return [
            ast.If(
                test=self._compile_expr(node.test),
                body=self._compile_body(node.body) or [ast.Pass()],
                orelse=orelse,
            )
        ]

    def _compile_for(self, node: For) -> list[ast.stmt]:
        """Compile @foreach / @for.

        Loop variables are bound in the current frame. When the body uses
        ``loop``:

            _loop_1 = _enter_loop(_scopes, items)
            for _item_1 in _loop_1:
                _scopes.set('loop', _loop_1)
                _scopes.set('item', _item_1)
                ...
            _exit_loop(_scopes, _loop_1)

        Otherwise the iterable goes through ``_iter`` (``None`` -> nothing).
        """
        self._block_counter += 1
        n = self._block_counter
        item_var = f"_item_{n}"
        loop_var = f"_loop_{n}"

        if len(node.target) == 1:
            binding = method("_scopes", "set", const(node.target[0]), load(item_var))
        else:
            binding = call(
                "_bind",
                load("_scopes"),
                ast.Tuple(elts=[const(name) for name in node.target], ctx=ast.Load()),
                load(item_var),
            )
        body: list[ast.stmt] = [expr_stmt(binding)]
        body.extend(self._compile_body(node.body))

        iterable = self._compile_expr(node.iter)
        if not node.uses_loop:
            return [
                ast.For(
                    target=store(item_var),
                    iter=call("_iter", iterable),
                    body=body,
                    orelse=[],
                )
            ]

        body.insert(0, expr_stmt(method("_scopes", "set", const("loop"), load(loop_var))))
        return [
            assign(loop_var, call("_enter_loop", load("_scopes"), iterable)),
            ast.For(target=store(item_var), iter=load(loop_var), body=body, orelse=[]),
            expr_stmt(call("_exit_loop", load("_scopes"), load(loop_var))),
        ]

    def _compile_while(self, node: While) -> list[ast.stmt]:
        return [
            ast.While(
                test=self._compile_expr(node.test),
                body=self._compile_body(node.body) or [ast.Pass()],
                orelse=[],
            )
        ]

    def _loop_exit(self, test: Expression | None, statement: ast.stmt) -> list[ast.stmt]:
        if test is None:
            return [statement]
        return [ast.If(test=self._compile_expr(test), body=[statement], orelse=[])]

    def _compile_break(self, node: Break) -> list[ast.stmt]:
        return self._loop_exit(node.test, ast.Break())

    def _compile_continue(self, node: Continue) -> list[ast.stmt]:
        return self._loop_exit(node.test, ast.Continue())
