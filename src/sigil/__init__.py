"""Sigil: a Blade-style template compiler and renderer.

Templates combine HTML with ``@directives``, ``{{ }}`` interpolation,
``<x-component>`` tags with slots, and ``@extends``/``@section`` layouts.

Quickstart:
    >>> from sigil import Environment
    >>> env = Environment()
    >>> env.from_string("Hello, {{ name }}!").render(name="World")
    'Hello, World!'

File-based templates:
    >>> from sigil import Environment, FileSystemLoader
    >>> env = Environment(loader=FileSystemLoader("templates/"), cache_dir=".sigil-cache")
    >>> env.render("pages.home", {"user": user})

Architecture:
Template Source → Lexer → Parser → Node tree → Layout merge → Compiler → Python AST → exec()

Pipeline stages:
1. **Lexer**: Tokenizes source into text, echoes, directives and component tags
2. **Parser**: Builds an immutable node tree; unterminated constructs raise
3. **LayoutResolver**: Replaces ``@yield`` placeholders by section bodies
4. **Compiler**: Transforms the node tree into an ``ast.Module``
5. **Template**: Executes the code object against a fresh ``RenderContext``

Scoping:
Components render in an isolated frame (declared ``@props`` defaults
overridden by passed attributes, nothing inherited). Includes inherit the
caller's bindings. Slots render with the bindings that were visible where
they were written.

Strict Mode:
Undefined names raise ``UndefinedError`` with a "did you mean" suggestion.
"""

# environment first: it owns the exception module every other stage imports
from sigil.environment import (
    ChoiceLoader,
    DictLoader,
    Environment,
    ErrorCode,
    FileSystemLoader,
    HostFunctions,
    Loader,
    SourceSnippet,
    TemplateError,
    TemplateNotFoundError,
    TemplateRuntimeError,
    TemplateSyntaxError,
    UndefinedError,
    build_source_snippet,
)
from sigil._types import Token, TokenType
from sigil.bytecode_cache import BytecodeCache
from sigil.compiler import CallableEvaluator, ExpressionEvaluator, PythonEvaluator
from sigil.render_context import RenderContext, get_render_context, render_context
from sigil.scope import ScopeStack
from sigil.support import AttributeBag, Slot, SlotMap
from sigil.template import LoopContext, Template
from sigil.utils.html import Markup, html_escape

__version__ = "0.1.0"

__all__ = [
    "AttributeBag",
    "BytecodeCache",
    "CallableEvaluator",
    "ChoiceLoader",
    "DictLoader",
    "Environment",
    "ErrorCode",
    "ExpressionEvaluator",
    "FileSystemLoader",
    "HostFunctions",
    "Loader",
    "LoopContext",
    "Markup",
    "PythonEvaluator",
    "RenderContext",
    "ScopeStack",
    "Slot",
    "SlotMap",
    "SourceSnippet",
    "Template",
    "TemplateError",
    "TemplateNotFoundError",
    "TemplateRuntimeError",
    "TemplateSyntaxError",
    "Token",
    "TokenType",
    "UndefinedError",
    "__version__",
    "build_source_snippet",
    "get_render_context",
    "html_escape",
    "render_context",
]
