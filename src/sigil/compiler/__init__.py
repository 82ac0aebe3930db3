"""Sigil Compiler: node tree → Python AST → code object.

Each template compiles to a module defining ``render(_rc)``, which writes
into the render context's output buffer. Expressions are compiled by a
pluggable ``ExpressionEvaluator`` (``PythonEvaluator`` by default).
"""

from __future__ import annotations

from sigil.compiler.core import Compiler
from sigil.compiler.expressions import (
    CallableEvaluator,
    ExpressionEvaluator,
    PythonEvaluator,
    is_safe_shape,
)

__all__ = [
    "CallableEvaluator",
    "Compiler",
    "ExpressionEvaluator",
    "PythonEvaluator",
    "is_safe_shape",
]
