"""Per-render state for Sigil.

A ``RenderContext`` is created for every ``Environment.render`` call and
passed explicitly to compiled code as ``_rc``. It owns the render's
``ScopeStack`` and ``OutputBuffer``; nothing about a render lives in module
or environment globals, so concurrent renders cannot interfere.

Components and includes run with a *child* context that shares the scope
stack, output buffer and metadata, and records the call chain
(``template_stack``) for error messages.

The active top-level context is also published in a ``ContextVar`` so host
helpers (CSRF token, authentication, translations) can read per-request
metadata without it being threaded through every call.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar, Token
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from sigil.output import OutputBuffer
from sigil.scope import ScopeStack

if TYPE_CHECKING:
    from sigil.environment.core import Environment


@dataclass
class RenderContext:
    """State for one render call.

    Attributes:
        environment: Environment used to resolve components and includes
        scopes: The render's scope stack
        output: The render's output accumulator
        template_name: Template currently executing (for error messages)
        filename: Its source path
        source: Its source text (for error snippets)
        line: Current source line, updated by generated code
        include_depth: Component/include nesting depth (recursion guard)
        max_include_depth: Maximum allowed nesting depth
        template_stack: ``(template_name, line)`` chain of callers
    """

    environment: Environment | None = None
    scopes: ScopeStack = field(default_factory=ScopeStack)
    output: OutputBuffer = field(default_factory=OutputBuffer)

    template_name: str | None = None
    filename: str | None = None
    source: str | None = None
    line: int = 0

    # 50 is deeper than any real component tree and stops runaway recursion early.
    include_depth: int = 0
    max_include_depth: int = 50

    template_stack: list[tuple[str, int]] = field(default_factory=list)

    # Request metadata (csrf_token, authenticated, old_input, errors, translations)
    _meta: dict[str, object] = field(default_factory=dict)

    def get_meta(self, key: str, default: object = None) -> object:
        """Get request metadata set by the embedding application.

        Example:
            env.render("auth.login", data, meta={"csrf_token": session.csrf})
            # @csrf in the template reads it through the default host helpers
        """
        return self._meta.get(key, default)

    def set_meta(self, key: str, value: object) -> None:
        self._meta[key] = value

    def check_include_depth(self, template_name: str) -> None:
        """Raise if entering ``template_name`` would exceed the nesting limit."""
        if self.include_depth >= self.max_include_depth:
            from sigil.environment.exceptions import ErrorCode, TemplateRuntimeError

            error = TemplateRuntimeError(
                f"Maximum component/include depth exceeded ({self.max_include_depth}) "
                f"when entering '{template_name}'",
                template_name=self.template_name,
                lineno=self.line or None,
                suggestion="Check for a component or include that renders itself",
                template_stack=self.template_stack,
            )
            error.code = ErrorCode.INCLUDE_DEPTH
            raise error

    def enhance_error(self, error: Exception) -> Exception:
        """Wrap ``error`` in a TemplateRuntimeError located at the current line.

        Template errors pass through, except an ``UndefinedError`` raised
        without a template name, which is re-created with this context's
        location, snippet and stack.
        """
        from sigil.environment.exceptions import (
            TemplateError,
            TemplateRuntimeError,
            UndefinedError,
            build_source_snippet,
        )

        lineno = self.line or None
        snippet = None
        if self.source and lineno:
            snippet = build_source_snippet(self.source, lineno)

        if isinstance(error, UndefinedError) and error.template is None:
            return UndefinedError(
                error.name,
                self.template_name,
                lineno,
                available_names=error.available_names,
                source_snippet=snippet,
                template_stack=self.template_stack,
            )
        if isinstance(error, TemplateError):
            return error

        error_str = str(error).strip()
        if not error_str:
            error_str = f"{type(error).__name__} (no details available)"
        elif isinstance(error, (KeyError, TypeError, ValueError, AttributeError)):
            error_str = f"{type(error).__name__}: {error_str}"
        return TemplateRuntimeError(
            error_str,
            template_name=self.template_name,
            lineno=lineno,
            source_snippet=snippet,
            template_stack=self.template_stack,
        )

    def child_context(
        self,
        template_name: str,
        filename: str | None = None,
        source: str | None = None,
    ) -> RenderContext:
        """Context for a component or include entered from the current line."""
        new_stack = self.template_stack.copy()
        if self.template_name and self.line > 0:
            new_stack.append((self.template_name, self.line))
        return RenderContext(
            environment=self.environment,
            scopes=self.scopes,
            output=self.output,
            template_name=template_name,
            filename=filename,
            source=source,
            line=0,
            include_depth=self.include_depth + 1,
            max_include_depth=self.max_include_depth,
            template_stack=new_stack,
            _meta=self._meta,
        )


_render_context: ContextVar[RenderContext | None] = ContextVar("sigil_render_context", default=None)


def get_render_context() -> RenderContext | None:
    """Current render context, or ``None`` outside a render."""
    return _render_context.get()


@contextmanager
def render_context(
    environment: Environment | None = None,
    data: Mapping[str, Any] | None = None,
    *,
    template_name: str | None = None,
    filename: str | None = None,
    source: str | None = None,
    max_include_depth: int = 50,
    meta: Mapping[str, object] | None = None,
) -> Iterator[RenderContext]:
    """Create a fresh RenderContext and make it current for the ``with`` block.

    The root frame of the scope stack is a copy of ``data``.

    Example:
        with render_context(env, {"user": user}, template_name="home") as rc:
            template.execute(rc)
        html = rc.output.getvalue()
    """
    ctx = RenderContext(
        environment=environment,
        scopes=ScopeStack(data),
        output=OutputBuffer(),
        template_name=template_name,
        filename=filename,
        source=source,
        max_include_depth=max_include_depth,
        _meta=dict(meta or {}),
    )
    token: Token[RenderContext | None] = _render_context.set(ctx)
    try:
        yield ctx
    finally:
        _render_context.reset(token)
