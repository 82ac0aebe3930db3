"""Sigil Compiler Core: main Compiler class.

The Compiler transforms a Sigil node tree into a Python ``ast.Module``, then
compiles it to an executable code object. Uses a mixin-based design for
maintainability.

Design Principles:
1. **AST-to-AST**: Generate ``ast.Module``, not source strings
2. **Explicit render context**: ``render(_rc)`` receives all per-render state
3. **Local caching**: ``_append``, ``_e``, ``_s`` and ``_scopes`` are locals
4. **O(1) dispatch**: Dict-based node type → handler lookup

Generated module:
    ```python
    __compiled_from__ = 'templates/pages/home.sigil.html'

    def render(_rc):
        _scopes = _rc.scopes
        _append = _rc.output.write
        _e = _escape
        _s = _str_safe
        _append('<h1>')
        _rc.line = 1
        _append(_e(_lookup(_rc, 'title')))
        _append('</h1>')
    ```

Layout inheritance is resolved on the node tree before compilation, so a
compiled unit is always self-contained.
"""

from __future__ import annotations

import ast
import logging
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING

from sigil.compiler.expressions import (
    ExpressionCompilationMixin,
    ExpressionEvaluator,
    PythonEvaluator,
)
from sigil.compiler.statements import StatementCompilationMixin
from sigil.compiler.utils import assign, call, const, function, load

if TYPE_CHECKING:
    import types

    from sigil.nodes import Node
    from sigil.nodes import Template as TemplateNode

logger = logging.getLogger(__name__)


class Compiler(ExpressionCompilationMixin, StatementCompilationMixin):
    """Compile a Sigil node tree to Python code objects.

    Attributes:
        _evaluator: Turns ``Expression`` values into Python AST
        _name: Template name for error messages
        _filename: Source path; becomes the code object's filename
        _source: Template source, for error snippets
        _block_counter: Counter for unique generated names

    Node Dispatch:
        Uses O(1) dict lookup for node type → handler:
            ```python
            handler = dispatch[type(node).__name__]
            ```

    Line Tracking:
        For nodes that can raise at render time (Output, If, Include, ...)
        generates ``_rc.line = N`` before the node's code, so runtime errors
        name the template line.

    Example:
        >>> from sigil.parser import parse
        >>> code = Compiler().compile(parse("Hello, {{ name }}!"), name="greeting")
        >>> namespace = dict(STATIC_NAMESPACE)
        >>> exec(code, namespace)
        >>> namespace["render"](rc)
    """

    __slots__ = (
        "_block_counter",
        "_evaluator",
        "_filename",
        "_name",
        "_node_dispatch",
        "_source",
    )

    _LINE_TRACKED_NODES = frozenset(
        {
            "Output",
            "If",
            "For",
            "While",
            "Break",
            "Continue",
            "Set",
            "Include",
            "Yield",
            "HelperCall",
            "ConditionalRegion",
            "BoundAttribute",
        }
    )

    def __init__(self, evaluator: ExpressionEvaluator | None = None) -> None:
        self._evaluator: ExpressionEvaluator = evaluator or PythonEvaluator()
        self._name: str | None = None
        self._filename: str | None = None
        self._source: str | None = None
        self._block_counter = 0

    def compile(
        self,
        node: TemplateNode,
        name: str | None = None,
        filename: str | None = None,
        source: str | None = None,
    ) -> types.CodeType:
        """Compile a template node to a code object defining ``render(_rc)``.

        Raises:
            TemplateSyntaxError: An expression failed to parse or validate
        """
        module = self.compile_module(node, name, filename, source)
        code = compile(module, filename or name or "<template>", "exec")
        logger.debug("compiled %s (%d top-level nodes)", name or "<string>", len(node.body))
        return code

    def compile_module(
        self,
        node: TemplateNode,
        name: str | None = None,
        filename: str | None = None,
        source: str | None = None,
    ) -> ast.Module:
        """Generate the Python module for ``node`` (``ast.unparse``-able)."""
        self._name = name
        self._filename = filename
        self._source = source
        self._block_counter = 0
        module = ast.Module(
            body=[
                assign("__compiled_from__", const(filename or name or "<template>")),
                self._make_render_function(node),
            ],
            type_ignores=[],
        )
        return ast.fix_missing_locations(module)

    def _make_render_function(self, node: TemplateNode) -> ast.FunctionDef:
        body: list[ast.stmt] = [
            assign("_scopes", ast.Attribute(value=load("_rc"), attr="scopes", ctx=ast.Load())),
            assign(
                "_append",
                ast.Attribute(
                    value=ast.Attribute(value=load("_rc"), attr="output", ctx=ast.Load()),
                    attr="write",
                    ctx=ast.Load(),
                ),
            ),
            assign("_e", load("_escape")),
            assign("_s", load("_str_safe")),
        ]
        body.extend(self._compile_body(node.body))
        return function("render", ["_rc"], body)

    def _emit_output(self, value_expr: ast.expr) -> ast.stmt:
        """_append(value)"""
        return ast.Expr(value=call("_append", value_expr))

    def _make_line_marker(self, lineno: int) -> ast.stmt:
        """_rc.line = lineno"""
        return ast.Assign(
            targets=[ast.Attribute(value=load("_rc"), attr="line", ctx=ast.Store())],
            value=const(lineno),
        )

    def _compile_body(self, nodes: Sequence[Node]) -> list[ast.stmt]:
        stmts: list[ast.stmt] = []
        for child in nodes:
            stmts.extend(self._compile_node(child))
        return stmts

    def _compile_node(self, node: Node) -> list[ast.stmt]:
        """Compile a single node to Python statements.

        Nodes that can fail at render time get a line marker first.
        """
        node_type = type(node).__name__
        handler = self._get_node_dispatch().get(node_type)
        if handler is None:
            raise TypeError(f"Cannot compile node type {node_type}")
        stmts = handler(node)
        if stmts and node_type in self._LINE_TRACKED_NODES:
            stmts.insert(0, self._make_line_marker(node.lineno))
        return stmts

    def _get_node_dispatch(self) -> dict[str, Callable[[Node], list[ast.stmt]]]:
        """Get node type dispatch table (cached on first call)."""
        if not hasattr(self, "_node_dispatch"):
            self._node_dispatch = {
                "Data": self._compile_data,
                "Raw": self._compile_raw,
                "Output": self._compile_output,
                "Set": self._compile_set,
                "BoundAttribute": self._compile_bound_attribute,
                "Yield": self._compile_yield,
                "If": self._compile_if,
                "For": self._compile_for,
                "While": self._compile_while,
                "Break": self._compile_break,
                "Continue": self._compile_continue,
                "Component": self._compile_component,
                "SlotBlock": self._compile_slot_block,
                "Include": self._compile_include,
                "HelperCall": self._compile_helper_call,
                "ConditionalRegion": self._compile_conditional_region,
            }
        return self._node_dispatch
