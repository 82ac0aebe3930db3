"""Small builders for the Python AST emitted by the compiler."""

from __future__ import annotations

import ast
from typing import Any


def load(name: str) -> ast.Name:
    """``name`` in load context."""
    return ast.Name(id=name, ctx=ast.Load())


def store(name: str) -> ast.Name:
    return ast.Name(id=name, ctx=ast.Store())


def const(value: Any) -> ast.Constant:
    return ast.Constant(value=value)


def call(func: str | ast.expr, *args: ast.expr, **keywords: ast.expr) -> ast.Call:
    """``func(*args, **keywords)`` where ``func`` is a name or an expression."""
    return ast.Call(
        func=load(func) if isinstance(func, str) else func,
        args=list(args),
        keywords=[ast.keyword(arg=key, value=value) for key, value in keywords.items()],
    )


def method(obj: str, name: str, *args: ast.expr) -> ast.Call:
    """``obj.name(*args)``"""
    return call(ast.Attribute(value=load(obj), attr=name, ctx=ast.Load()), *args)


def assign(target: str, value: ast.expr) -> ast.Assign:
    return ast.Assign(targets=[store(target)], value=value)


def expr_stmt(value: ast.expr) -> ast.Expr:
    return ast.Expr(value=value)


def function(name: str, args: list[str], body: list[ast.stmt]) -> ast.FunctionDef:
    """``def name(*args): body`` (``pass`` when the body is empty)."""
    return ast.FunctionDef(
        name=name,
        args=ast.arguments(
            posonlyargs=[],
            args=[ast.arg(arg=arg) for arg in args],
            vararg=None,
            kwonlyargs=[],
            kw_defaults=[],
            kwarg=None,
            defaults=[],
        ),
        body=body or [ast.Pass()],
        decorator_list=[],
        returns=None,
        type_params=[],
    )
