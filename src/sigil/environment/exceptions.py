"""Exceptions for the Sigil template system.

Exception Hierarchy:
TemplateError (base)
├── TemplateNotFoundError     # Template, component, include or layout missing
├── TemplateSyntaxError       # Lexer / parser / expression compile failure
│   └── ParseError            # (sigil.parser.errors) parser-level failure
└── TemplateRuntimeError      # Exception raised while executing a template
    └── UndefinedError        # Name not bound in the active frame

Every error carries a searchable ``ErrorCode``. Syntax and runtime errors
include the template name, line and a source snippet where available:

    ```
    S-RUN-001: Undefined variable 'titl' in article:5
       |
    >  5 | <h1>{{ titl }}</h1>
       |
      Hint: Did you mean 'title'?
    ```
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from difflib import get_close_matches
from enum import Enum
from typing import Any

from sigil.environment import terminal


class ErrorCode(Enum):
    """Searchable error codes.

    Format: S-{CATEGORY}-{NUMBER}
    Categories: LEX (lexer), PAR (parser), RUN (runtime), TPL (template loading)
    """

    # Lexer errors (S-LEX-xxx)
    UNCLOSED_ECHO = "S-LEX-001"
    UNCLOSED_COMMENT = "S-LEX-002"
    UNCLOSED_ARGUMENTS = "S-LEX-003"
    UNCLOSED_TAG = "S-LEX-004"
    UNCLOSED_VERBATIM = "S-LEX-005"

    # Parser errors (S-PAR-xxx)
    UNEXPECTED_TOKEN = "S-PAR-001"
    UNCLOSED_BLOCK = "S-PAR-002"
    INVALID_EXPRESSION = "S-PAR-003"
    INVALID_ARGUMENTS = "S-PAR-004"
    NESTING_TOO_DEEP = "S-PAR-005"

    # Runtime errors (S-RUN-xxx)
    UNDEFINED_VARIABLE = "S-RUN-001"
    INCLUDE_DEPTH = "S-RUN-002"
    RUNTIME_ERROR = "S-RUN-003"

    # Template loading errors (S-TPL-xxx)
    TEMPLATE_NOT_FOUND = "S-TPL-001"
    SYNTAX_ERROR = "S-TPL-002"
    LAYOUT_ERROR = "S-TPL-003"

    @property
    def category(self) -> str:
        """Error category (``lexer``, ``parser``, ``runtime`` or ``template``)."""
        prefix = self.value.split("-")[1]
        return {
            "LEX": "lexer",
            "PAR": "parser",
            "RUN": "runtime",
            "TPL": "template",
        }.get(prefix, "unknown")


# ---------------------------------------------------------------------------
# Source snippets
# ---------------------------------------------------------------------------


def format_template_stack(stack: list[tuple[str, int]] | None) -> str:
    """Format the component/include chain that led to an error.

    Example:
        >>> print(format_template_stack([("pages.home", 4), ("components.card", 2)]))
        Template stack:
          • pages.home:4
          • components.card:2
    """
    if not stack:
        return ""
    lines = [terminal.dim_text("Template stack:")]
    for template_name, line_num in stack:
        lines.append(f"  • {terminal.location(f'{template_name}:{line_num}')}")
    return "\n".join(lines)


@dataclass(frozen=True, slots=True)
class SourceSnippet:
    """Lines of template source surrounding an error.

    Attributes:
        lines: ``(line_number, content)`` pairs around the error.
        error_line: 1-based line of the error.
        column: Optional 0-based column for a caret pointer.
    """

    lines: tuple[tuple[int, str], ...]
    error_line: int
    column: int | None = None

    def format(self) -> str:
        parts: list[str] = [terminal.dim_text("   |")]
        for lineno, content in self.lines:
            parts.append(
                terminal.format_source_line(lineno, content, is_error=lineno == self.error_line)
            )
        if self.column is not None:
            caret = " " * self.column + "^"
            parts.append(f"{terminal.dim_text('   |')} {terminal.colorize(caret, 'bright_red')}")
        parts.append(terminal.dim_text("   |"))
        return "\n".join(parts)


def build_source_snippet(
    source: str,
    error_line: int,
    *,
    context_lines: int = 2,
    column: int | None = None,
) -> SourceSnippet:
    """Build a SourceSnippet for ``error_line`` (1-based) of ``source``."""
    all_lines = source.splitlines()
    start = max(0, error_line - 1 - context_lines)
    end = min(len(all_lines), error_line + context_lines)
    lines = tuple((i + 1, all_lines[i]) for i in range(start, end))
    return SourceSnippet(lines=lines, error_line=error_line, column=column)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class TemplateError(Exception):
    """Base exception for all Sigil template errors.

        >>> try:
        ...     env.render("pages.home", data)
        ... except TemplateError as e:
        ...     log.error("template failed: %s", e.format_compact())
    """

    code: ErrorCode | None = None

    def format_compact(self) -> str:
        """Error code plus message, without traceback noise."""
        header = str(self)
        if self.code and self.code.value not in header:
            header = f"{self.code.value}: {header}"
        return header


class TemplateNotFoundError(TemplateError):
    """A template, component, include or parent layout could not be found.

    ``candidates`` lists every logical name or path that was searched.

    Example:
        >>> env.render("components.missing")
        TemplateNotFoundError: Template 'components.missing' not found (searched: ...)
    """

    code: ErrorCode | None = ErrorCode.TEMPLATE_NOT_FOUND

    def __init__(self, name: str, candidates: Iterable[str] = (), message: str | None = None):
        self.name = name
        self.candidates = tuple(candidates)
        if message is None:
            message = f"Template '{name}' not found"
            if self.candidates:
                message += f" (searched: {', '.join(self.candidates)})"
        self.message = message
        super().__init__(message)


class TemplateSyntaxError(TemplateError):
    """Compile-time failure in template source.

    Raised for unterminated constructs, mismatched end directives, malformed
    directive arguments and invalid expressions. When ``source`` and ``lineno``
    are known the message includes the offending line, with a caret at
    ``col_offset`` when given.
    """

    code: ErrorCode | None = ErrorCode.SYNTAX_ERROR

    def __init__(
        self,
        message: str,
        lineno: int | None = None,
        name: str | None = None,
        filename: str | None = None,
        source: str | None = None,
        col_offset: int | None = None,
        *,
        suggestion: str | None = None,
        code: ErrorCode | None = None,
    ):
        self.message = message
        self.lineno = lineno
        self.name = name
        self.filename = filename
        self.source = source
        self.col_offset = col_offset
        self.suggestion = suggestion
        if code is not None:
            self.code = code
        super().__init__(self._format_message())

    def _location(self) -> str:
        location = self.filename or self.name or "<template>"
        if self.lineno:
            location += f":{self.lineno}"
            if self.col_offset is not None:
                location += f":{self.col_offset}"
        return location

    def _format_message(self) -> str:
        parts = [f"Syntax Error: {self.message}", f"  --> {self._location()}"]
        if self.source and self.lineno:
            lines = self.source.splitlines()
            if 0 < self.lineno <= len(lines):
                parts.append("   |")
                parts.append(f"{self.lineno:>3} | {lines[self.lineno - 1]}")
                if self.col_offset is not None:
                    parts.append(f"   | {' ' * self.col_offset}^")
        if self.suggestion:
            parts.append(f"  Suggestion: {self.suggestion}")
        return "\n".join(parts)

    def with_template(
        self, name: str | None, filename: str | None, source: str | None
    ) -> TemplateSyntaxError:
        """Return a copy located in the given template (keeps the subclass)."""
        return type(self)(
            self.message,
            self.lineno,
            self.name or name,
            self.filename or filename,
            self.source or source,
            self.col_offset,
            suggestion=self.suggestion,
            code=self.code,
        )

    def format_compact(self) -> str:
        parts = [terminal.format_error_header(self.code.value if self.code else None, self.message)]
        parts.append(f"  --> {terminal.location(self._location())}")
        if self.source and self.lineno:
            parts.append(
                build_source_snippet(self.source, self.lineno, column=self.col_offset).format()
            )
        if self.suggestion:
            parts.append(f"  {terminal.hint('Hint:')} {self.suggestion}")
        return "\n".join(parts)


class TemplateRuntimeError(TemplateError):
    """Exception raised while executing a compiled template.

    The original exception is chained as ``__cause__``. ``template_stack``
    holds the ``(template_name, line)`` chain of components and includes
    that led to the failing template.

    Output Format:
        ```
        Runtime Error: 'NoneType' object has no attribute 'title'
          Location: components.card:3
          Expression: {{ post.title }}
        ```
    """

    code: ErrorCode | None = ErrorCode.RUNTIME_ERROR

    def __init__(
        self,
        message: str,
        *,
        expression: str | None = None,
        values: dict[str, Any] | None = None,
        template_name: str | None = None,
        lineno: int | None = None,
        suggestion: str | None = None,
        source_snippet: SourceSnippet | None = None,
        template_stack: list[tuple[str, int]] | None = None,
    ):
        self.message = message
        self.expression = expression
        self.values = values or {}
        self.template_name = template_name
        self.lineno = lineno
        self.suggestion = suggestion
        self.source_snippet = source_snippet
        self.template_stack = template_stack or []
        super().__init__(self._format_message())

    def _location(self) -> str:
        loc = self.template_name or "<template>"
        if self.lineno:
            loc += f":{self.lineno}"
        return loc

    def _format_message(self) -> str:
        parts = [f"Runtime Error: {self.message}"]
        if self.template_name or self.lineno:
            parts.append(f"  Location: {terminal.location(self._location())}")
        if self.source_snippet:
            parts.append(self.source_snippet.format())
        if self.template_stack:
            parts.append("")
            parts.append(format_template_stack(self.template_stack))
        if self.expression:
            parts.append(f"  Expression: {self.expression}")
        if self.values:
            parts.append("  Values:")
            for name, value in self.values.items():
                value_repr = repr(value)
                if len(value_repr) > 80:
                    value_repr = value_repr[:77] + "..."
                parts.append(f"    {name} = {value_repr} ({type(value).__name__})")
        if self.suggestion:
            parts.append(f"\n  {terminal.hint('Suggestion:')} {self.suggestion}")
        return "\n".join(parts)

    def format_compact(self) -> str:
        parts = [terminal.format_error_header(self.code.value if self.code else None, self.message)]
        parts.append(f"  Location: {terminal.location(self._location())}")
        if self.source_snippet:
            parts.append(self.source_snippet.format())
        if self.template_stack:
            parts.append("")
            parts.append(format_template_stack(self.template_stack))
        if self.suggestion:
            parts.append(f"  {terminal.hint('Hint:')} {self.suggestion}")
        return "\n".join(parts)


class UndefinedError(TemplateRuntimeError):
    """A template referenced a name that is not bound.

    Lookup order is the active frame, environment globals, then the safe
    builtins. Components see only their own isolated frame, so a name from
    the caller is undefined inside a component unless passed as an attribute.

    If ``available_names`` is given, a close match is offered as a
    suggestion (``difflib.get_close_matches``).

    Example:
        >>> env.from_string("{{ undefined_var }}").render()
        UndefinedError: Undefined variable 'undefined_var' in <template>:1
    """

    code: ErrorCode | None = ErrorCode.UNDEFINED_VARIABLE

    def __init__(
        self,
        name: str,
        template: str | None = None,
        lineno: int | None = None,
        available_names: frozenset[str] | None = None,
        source_snippet: SourceSnippet | None = None,
        template_stack: list[tuple[str, int]] | None = None,
    ):
        self.name = name
        self.template = template
        self.available_names = available_names or frozenset()
        suggestion = None
        matches = get_close_matches(name, self.available_names, n=1, cutoff=0.6)
        if matches:
            suggestion = f"Did you mean '{terminal.suggestion(matches[0])}'?"
        else:
            suggestion = f"Pass '{name}' in the render data or as a component attribute"
        location = template or "<template>"
        if lineno:
            location += f":{lineno}"
        super().__init__(
            f"Undefined variable '{name}' in {location}",
            template_name=template,
            lineno=lineno,
            suggestion=suggestion,
            source_snippet=source_snippet,
            template_stack=template_stack,
        )
