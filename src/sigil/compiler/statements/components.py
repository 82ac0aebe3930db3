"""Component invocation compilation for the Sigil compiler.

``<x-card :title="post.title">Body <x-slot:footer>F</x-slot:footer></x-card>``
compiles to:

    def _slot_1():
        _append('F')
    def _slot_2():
        _append('Body ')
    _snapshot_3 = _scopes.snapshot()
    _rc.line = 1
    _append(_component(_rc, 'card', {'title': <post.title>},
        _SlotMap({'footer': _Slot(_rc, _slot_1, _snapshot_3, name='footer')},
                 _Slot(_rc, _slot_2, _snapshot_3))))

Slot bodies are nested functions, so they close over the caller's
``_append``/``_scopes`` and run only when the component renders them. Each
``_Slot`` keeps its own copy of the snapshot taken where the component was
written (lexical capture).
"""

from __future__ import annotations

import ast
from typing import TYPE_CHECKING

from sigil.compiler.utils import assign, call, const, function, load, method
from sigil.nodes import AttributeKind, Output

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sigil.nodes import Attribute, Component, Expression, Node, SlotBlock


class ComponentMixin:
    """Mixin for compiling ``Component`` nodes and their slots."""

    if TYPE_CHECKING:
        _block_counter: int

        def _compile_expr(self, expression: Expression) -> ast.expr: ...

        def _compile_body(self, nodes: Sequence[Node]) -> list[ast.stmt]: ...

        def _emit_output(self, value_expr: ast.expr) -> ast.stmt: ...

        def _make_line_marker(self, lineno: int) -> ast.stmt: ...

    def _compile_component(self, node: Component) -> list[ast.stmt]:
        stmts: list[ast.stmt] = []
        named: list[tuple[str, str]] = []
        for slot in node.slots:
            stmts.append(self._slot_function(slot.body))
            named.append((slot.name, stmts[-1].name))  # type: ignore[attr-defined]
        default_fn: str | None = None
        if not node.self_closing:
            stmts.append(self._slot_function(node.body))
            default_fn = stmts[-1].name  # type: ignore[attr-defined]

        snapshot: ast.expr = const(None)
        if named or default_fn:
            self._block_counter += 1
            snapshot_var = f"_snapshot_{self._block_counter}"
            stmts.append(assign(snapshot_var, method("_scopes", "snapshot")))
            snapshot = load(snapshot_var)

        slot_map = call(
            "_SlotMap",
            ast.Dict(
                keys=[const(name) for name, _fn in named],
                values=[
                    call("_Slot", load("_rc"), load(fn), snapshot, name=const(name))
                    for name, fn in named
                ],
            ),
            call("_Slot", load("_rc"), load(default_fn), snapshot) if default_fn else const(None),
        )
        stmts.append(self._make_line_marker(node.lineno))
        stmts.append(
            self._emit_output(
                call(
                    "_component",
                    load("_rc"),
                    const(node.name),
                    self._compile_attributes(node.attributes),
                    slot_map,
                )
            )
        )
        return stmts

    def _slot_function(self, body: Sequence[Node]) -> ast.FunctionDef:
        self._block_counter += 1
        return function(f"_slot_{self._block_counter}", [], self._compile_body(body))

    def _compile_slot_block(self, node: SlotBlock) -> list[ast.stmt]:
        # Slots are lifted into their component by the parser
        return []

    def _compile_attributes(self, attributes: Sequence[Attribute]) -> ast.Dict:
        """Attribute map as a dict literal, one value per attribute kind."""
        keys: list[ast.expr | None] = []
        values: list[ast.expr] = []
        for attribute in attributes:
            keys.append(const(attribute.name))
            values.append(self._attribute_value(attribute))
        return ast.Dict(keys=keys, values=values)

    def _attribute_value(self, attribute: Attribute) -> ast.expr:
        kind = attribute.kind
        value = attribute.value
        if kind is AttributeKind.BOOLEAN:
            return const(True)
        if kind is AttributeKind.LITERAL:
            return const(value)
        if kind is AttributeKind.ESCAPED:
            return call("_e", self._compile_expr(value))  # type: ignore[arg-type]
        if kind is AttributeKind.RAW or kind is AttributeKind.BOUND:
            return self._compile_expr(value)  # type: ignore[arg-type]
        # INTERPOLATED: literal text kept, expressions escaped or raw
        parts: list[ast.expr] = []
        for part in value:  # type: ignore[union-attr]
            if isinstance(part, Output):
                compiled = self._compile_expr(part.expr)
                parts.append(call("_e" if part.escape else "_s", compiled))
            else:
                parts.append(const(part))
        return call("_interpolate", *parts)
