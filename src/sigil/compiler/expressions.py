"""Expression compilation for the Sigil compiler.

Template expressions are opaque ``Expression`` values until the compiler
hands them to the environment's evaluator, which turns each one into a
Python ``ast.expr`` for the generated render function.

Evaluators:
- ``PythonEvaluator`` (default): expressions use Python syntax. Free names
  become ``_lookup(_rc, 'name')`` calls (frame, then environment globals,
  then safe builtins), attribute access becomes ``_getattr(obj, 'attr')``
  so mappings can be read with dots. Names bound by comprehensions and
  lambdas stay ordinary Python locals.
- ``CallableEvaluator(func)``: every expression compiles to a runtime call
  ``func(source, bindings)``; the pipeline never parses the expression.

    >>> PythonEvaluator().to_source(Expression("user.name | 'x'", 1))
    "_getattr(_lookup(_rc, 'user'), 'name') | 'x'"
"""

from __future__ import annotations

import ast
import re
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from sigil.compiler.utils import call, const, load
from sigil.environment.exceptions import ErrorCode, TemplateSyntaxError
from sigil.nodes import Expression

# Bare container names: a component's slot, slot map and attribute bag
_SAFE_SHAPE_RE = re.compile(r"^(?:slot|slots|attributes)$")


def is_safe_shape(source: str) -> bool:
    """Whether ``{{ source }}`` names a slot or attribute container.

    Such output goes through ``_container``, which emits the container's own
    markup and still escapes any other value bound to the same name. Member
    access (``attributes.get('title')``, ``slots.footer``) is escaped like any
    other expression.
    """
    return bool(_SAFE_SHAPE_RE.match(source.strip()))


@runtime_checkable
class ExpressionEvaluator(Protocol):
    """Turns template expressions into Python AST for generated code.

    ``compile`` raises ``TemplateSyntaxError`` for invalid expressions.
    Evaluators that defer work to render time also implement
    ``evaluate(source, bindings)``, called through the ``_evaluate`` helper.
    """

    def compile(self, expression: Expression) -> ast.expr: ...


class _Validator(ast.NodeVisitor):
    """Rejects constructs that have no place in a template expression."""

    def __init__(self, expression: Expression) -> None:
        self._expression = expression

    def _reject(self, message: str, suggestion: str | None = None) -> None:
        raise TemplateSyntaxError(
            message,
            self._expression.lineno,
            col_offset=self._expression.col_offset,
            suggestion=suggestion,
            code=ErrorCode.INVALID_EXPRESSION,
        )

    def visit_Attribute(self, node: ast.Attribute) -> None:
        if node.attr.startswith("__"):
            self._reject(f"Access to '{node.attr}' is not allowed in templates")
        self.generic_visit(node)

    def visit_NamedExpr(self, node: ast.NamedExpr) -> None:
        self._reject(
            "Assignment expressions (':=') are not allowed in templates",
            "Use '@set(name = value)'",
        )

    def visit_Await(self, node: ast.Await) -> None:
        self._reject("'await' is not allowed in templates")

    def visit_Yield(self, node: ast.Yield) -> None:
        self._reject("'yield' is not allowed in templates")

    visit_YieldFrom = visit_Yield


class _NameRewriter(ast.NodeTransformer):
    """Rewrite free names to frame lookups and attribute reads to ``_getattr``."""

    def __init__(self) -> None:
        # Names bound by enclosing comprehensions and lambdas, innermost last
        self._bound: list[frozenset[str]] = []

    def _is_local(self, name: str) -> bool:
        return any(name in scope for scope in self._bound)

    def visit_Name(self, node: ast.Name) -> ast.AST:
        if isinstance(node.ctx, ast.Load) and not self._is_local(node.id):
            return ast.copy_location(call("_lookup", load("_rc"), const(node.id)), node)
        return node

    def visit_Attribute(self, node: ast.Attribute) -> ast.AST:
        node.value = self.visit(node.value)
        if isinstance(node.ctx, ast.Load):
            return ast.copy_location(call("_getattr", node.value, const(node.attr)), node)
        return node

    @staticmethod
    def _target_names(target: ast.AST) -> set[str]:
        return {n.id for n in ast.walk(target) if isinstance(n, ast.Name)}

    def _visit_comprehension(self, node: Any) -> ast.AST:
        generators: list[ast.comprehension] = node.generators
        # The first iterable is evaluated in the enclosing scope
        generators[0].iter = self.visit(generators[0].iter)
        names: set[str] = set()
        for generator in generators:
            names |= self._target_names(generator.target)
        self._bound.append(frozenset(names))
        try:
            for index, generator in enumerate(generators):
                if index:
                    generator.iter = self.visit(generator.iter)
                generator.ifs = [self.visit(condition) for condition in generator.ifs]
            if isinstance(node, ast.DictComp):
                node.key = self.visit(node.key)
                node.value = self.visit(node.value)
            else:
                node.elt = self.visit(node.elt)
        finally:
            self._bound.pop()
        return node

    visit_ListComp = _visit_comprehension
    visit_SetComp = _visit_comprehension
    visit_GeneratorExp = _visit_comprehension
    visit_DictComp = _visit_comprehension

    def visit_Lambda(self, node: ast.Lambda) -> ast.AST:
        args = node.args
        args.defaults = [self.visit(default) for default in args.defaults]
        args.kw_defaults = [
            self.visit(default) if default is not None else None for default in args.kw_defaults
        ]
        names = {arg.arg for arg in (*args.posonlyargs, *args.args, *args.kwonlyargs)}
        if args.vararg:
            names.add(args.vararg.arg)
        if args.kwarg:
            names.add(args.kwarg.arg)
        self._bound.append(frozenset(names))
        try:
            node.body = self.visit(node.body)
        finally:
            self._bound.pop()
        return node


class PythonEvaluator:
    """Default evaluator: Python expression syntax over the render's frame."""

    def parse(self, expression: Expression) -> ast.expr:
        """Parse and validate ``expression`` without rewriting names."""
        try:
            tree = ast.parse(expression.source.strip(), mode="eval")
        except SyntaxError as exc:
            raise TemplateSyntaxError(
                f"Invalid expression '{expression.source}': {exc.msg}",
                expression.lineno,
                col_offset=expression.col_offset,
                code=ErrorCode.INVALID_EXPRESSION,
            ) from None
        _Validator(expression).visit(tree)
        return tree.body

    def compile(self, expression: Expression) -> ast.expr:
        return _NameRewriter().visit(self.parse(expression))

    def to_source(self, expression: Expression) -> str:
        """Generated Python for ``expression`` (diagnostics)."""
        return ast.unparse(self.compile(expression))

    def __repr__(self) -> str:
        return "PythonEvaluator()"


class CallableEvaluator:
    """Delegate every expression to ``func(source, bindings)`` at render time.

    ``bindings`` is a read-only mapping of the current frame, environment
    globals and safe builtins, in lookup order.

    Example:
        >>> env = Environment(evaluator=CallableEvaluator(
        ...     lambda source, names: names[source.strip()]))
        >>> env.from_string("{{ title }}").render(title="Hi")
        'Hi'
    """

    def __init__(self, func: Callable[[str, Mapping[str, Any]], Any]) -> None:
        self.func = func

    def compile(self, expression: Expression) -> ast.expr:
        return call("_evaluate", load("_rc"), const(expression.source))

    def evaluate(self, source: str, bindings: Mapping[str, Any]) -> Any:
        return self.func(source, bindings)

    def __repr__(self) -> str:
        return f"CallableEvaluator({self.func!r})"


class ExpressionCompilationMixin:
    """Mixin for compiling ``Expression`` values through the evaluator.

    Required Host Attributes:
        _evaluator, _name, _filename, _source
    """

    if TYPE_CHECKING:
        _evaluator: ExpressionEvaluator
        _name: str | None
        _filename: str | None
        _source: str | None

    def _compile_expr(self, expression: Expression) -> ast.expr:
        try:
            return self._evaluator.compile(expression)
        except TemplateSyntaxError as exc:
            raise exc.with_template(self._name, self._filename, self._source) from None

    def _is_safe_output(self, expression: Expression) -> bool:
        return is_safe_shape(expression.source)
