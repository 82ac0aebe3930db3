"""Recursive-descent parser for Sigil templates.

Builds an immutable node tree from the lexer's token stream. Each directive
family is parsed by a mixin; this module holds token navigation, the block
stack and statement dispatch.

Block structure is validated while parsing: every opening directive or tag
must be closed by its matching end directive or tag, otherwise a
``ParseError`` names the construct and the line it was opened on.
"""

from __future__ import annotations

import ast
from collections.abc import Sequence
from typing import Any

from sigil._types import Token, TokenType
from sigil.environment.exceptions import ErrorCode
from sigil.nodes import BoundAttribute, Data, Expression, Node, Output, Raw, Template
from sigil.parser.blocks import (
    ComponentBlockParsingMixin,
    ControlFlowBlockParsingMixin,
    HelperBlockParsingMixin,
    TemplateStructureBlockParsingMixin,
)
from sigil.parser.errors import ParseError
from sigil.scanning import split_top_level

#: Directives that end (or continue) an enclosing block.
END_DIRECTIVES = frozenset(
    {
        "elseif",
        "else",
        "endif",
        "endforeach",
        "endfor",
        "endwhile",
        "endsection",
        "endslot",
        "endenv",
        "endauth",
        "endguest",
        "enderror",
    }
)

# Closing directive for each directive-opened block
BLOCK_END = {
    "if": "endif",
    "foreach": "endforeach",
    "for": "endfor",
    "while": "endwhile",
    "section": "endsection",
    "slot": "endslot",
    "env": "endenv",
    "auth": "endauth",
    "guest": "endguest",
    "error": "enderror",
}


class Parser(
    ControlFlowBlockParsingMixin,
    TemplateStructureBlockParsingMixin,
    ComponentBlockParsingMixin,
    HelperBlockParsingMixin,
):
    """Parse a token list into a ``Template`` node.

    Example:
        >>> from sigil.lexer import tokenize
        >>> tree = Parser(tokenize("Hi {{ name }}")).parse()
        >>> [type(n).__name__ for n in tree.body]
        ['Data', 'Output']
    """

    _DIRECTIVE_PARSERS = {
        "if": "_parse_if",
        "foreach": "_parse_foreach",
        "for": "_parse_for",
        "while": "_parse_while",
        "break": "_parse_break",
        "continue": "_parse_continue",
        "extends": "_parse_extends",
        "section": "_parse_section",
        "yield": "_parse_yield",
        "include": "_parse_include",
        "includeIf": "_parse_include",
        "props": "_parse_props",
        "set": "_parse_set",
        "slot": "_parse_slot_directive",
        "env": "_parse_conditional_region",
        "auth": "_parse_conditional_region",
        "guest": "_parse_conditional_region",
        "error": "_parse_conditional_region",
    }

    def __init__(
        self,
        tokens: Sequence[Token],
        name: str | None = None,
        filename: str | None = None,
        source: str | None = None,
        *,
        max_nesting_depth: int = 100,
    ) -> None:
        self._tokens = tokens
        self._pos = 0
        self._name = name
        self._filename = filename
        self._source = source
        self._max_nesting_depth = max_nesting_depth
        # (kind, opening token) for every open block, innermost last
        self._block_stack: list[tuple[str, Token]] = []
        self._extends: Any = None
        self._sections: list[Any] = []
        self._props: tuple[tuple[str, Any], ...] | None = None

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def parse(self) -> Template:
        body = self._parse_body()
        if self._current.type is not TokenType.EOF:
            raise self._unexpected_closer(self._current)
        return Template(
            lineno=1,
            col_offset=0,
            body=tuple(body),
            extends=self._extends,
            sections=tuple(self._sections),
            props=self._props,
        )

    # ------------------------------------------------------------------
    # Token navigation
    # ------------------------------------------------------------------

    @property
    def _current(self) -> Token:
        return self._tokens[self._pos]

    def _advance(self) -> Token:
        token = self._tokens[self._pos]
        if token.type is not TokenType.EOF:
            self._pos += 1
        return token

    def _at_directive(self, *names: str) -> bool:
        token = self._current
        return token.type is TokenType.DIRECTIVE and token.value in names

    # ------------------------------------------------------------------
    # Block stack
    # ------------------------------------------------------------------

    def _push_block(self, kind: str, token: Token) -> None:
        if len(self._block_stack) >= self._max_nesting_depth:
            raise self._error(
                f"Nesting deeper than {self._max_nesting_depth} levels",
                token,
                code=ErrorCode.NESTING_TOO_DEEP,
                suggestion="Split the template into components or includes",
            )
        self._block_stack.append((kind, token))

    def _pop_block(self) -> None:
        self._block_stack.pop()

    def _in_block(self, *kinds: str, stop_at: tuple[str, ...] = ()) -> bool:
        """Whether an enclosing block is one of ``kinds``, searching outward
        until a block in ``stop_at`` is reached."""
        for kind, _token in reversed(self._block_stack):
            if kind in kinds:
                return True
            if kind in stop_at:
                return False
        return False

    def _at_top_level(self) -> bool:
        return not self._block_stack

    def _consume_end(self, kind: str, opener: Token) -> Token:
        """Consume the end directive for a ``kind`` block opened by ``opener``."""
        end_name = BLOCK_END[kind]
        token = self._current
        if token.type is TokenType.DIRECTIVE and token.value == end_name:
            return self._advance()
        if token.type is TokenType.EOF:
            raise self._error(
                f"Unclosed '@{opener.value}' (opened on line {opener.lineno})",
                opener,
                code=ErrorCode.UNCLOSED_BLOCK,
                suggestion=f"Add '@{end_name}'",
            )
        raise self._error(
            f"Unexpected {self._describe(token)} inside '@{opener.value}' "
            f"(opened on line {opener.lineno}); expected '@{end_name}'",
            token,
            code=ErrorCode.UNCLOSED_BLOCK,
        )

    # ------------------------------------------------------------------
    # Body parsing
    # ------------------------------------------------------------------

    def _parse_body(self) -> list[Node]:
        """Parse statements until EOF, an end directive or a closing tag."""
        nodes: list[Node] = []
        while True:
            token = self._current
            kind = token.type
            if kind is TokenType.EOF or kind in (TokenType.COMPONENT_CLOSE, TokenType.SLOT_CLOSE):
                return nodes
            if kind is TokenType.DIRECTIVE and token.value in END_DIRECTIVES:
                return nodes
            node = self._parse_statement()
            if node is not None:
                nodes.append(node)

    def _parse_statement(self) -> Node | None:
        token = self._current
        kind = token.type
        if kind is TokenType.DATA:
            self._advance()
            return Data(token.lineno, token.col_offset, token.value)
        if kind is TokenType.RAW:
            self._advance()
            return Raw(token.lineno, token.col_offset, token.value)
        if kind is TokenType.ECHO or kind is TokenType.RAW_ECHO:
            self._advance()
            return Output(
                token.lineno,
                token.col_offset,
                self._expression(token.value, token),
                escape=kind is TokenType.ECHO,
            )
        if kind is TokenType.BOUND_ATTR:
            self._advance()
            return BoundAttribute(
                token.lineno,
                token.col_offset,
                token.value,
                self._expression(token.args or "", token),
            )
        if kind is TokenType.COMPONENT_OPEN:
            return self._parse_component()
        if kind is TokenType.SLOT_OPEN:
            return self._parse_slot_tag()
        if kind is TokenType.DIRECTIVE:
            method = self._DIRECTIVE_PARSERS.get(token.value)
            if method is not None:
                return getattr(self, method)()
            return self._parse_helper()
        raise self._error(f"Unexpected {self._describe(token)}", token)

    # ------------------------------------------------------------------
    # Argument helpers
    # ------------------------------------------------------------------

    def _expression(self, source: str, token: Token) -> Expression:
        source = source.strip()
        if not source:
            raise self._error(
                f"Missing expression in {self._describe(token)}",
                token,
                code=ErrorCode.INVALID_EXPRESSION,
            )
        return Expression(source, token.lineno, token.col_offset)

    def _arguments(
        self, token: Token, minimum: int, maximum: int | None = None
    ) -> list[str]:
        """Split a directive's arguments and check the count."""
        args = split_top_level(token.args or "")
        maximum = minimum if maximum is None else maximum
        if not minimum <= len(args) <= maximum:
            expected = str(minimum) if minimum == maximum else f"{minimum} to {maximum}"
            raise self._error(
                f"'@{token.value}' takes {expected} argument(s), got {len(args)}",
                token,
                code=ErrorCode.INVALID_ARGUMENTS,
            )
        if any(not arg for arg in args):
            raise self._error(
                f"Empty argument in '@{token.value}'",
                token,
                code=ErrorCode.INVALID_ARGUMENTS,
            )
        return args

    def _literal(self, source: str, token: Token, what: str) -> Any:
        try:
            return ast.literal_eval(source)
        except (ValueError, SyntaxError, TypeError, MemoryError, RecursionError):
            raise self._error(
                f"{what} in '@{token.value}' must be a literal, got: {source}",
                token,
                code=ErrorCode.INVALID_ARGUMENTS,
            ) from None

    def _literal_string(self, source: str, token: Token, what: str) -> str:
        value = self._literal(source, token, what)
        if not isinstance(value, str) or not value:
            raise self._error(
                f"{what} in '@{token.value}' must be a non-empty string, got: {source}",
                token,
                code=ErrorCode.INVALID_ARGUMENTS,
            )
        return value

    # ------------------------------------------------------------------
    # Errors
    # ------------------------------------------------------------------

    @staticmethod
    def _describe(token: Token) -> str:
        kind = token.type
        if kind is TokenType.DIRECTIVE:
            return f"'@{token.value}'"
        if kind is TokenType.COMPONENT_CLOSE:
            return f"'</x-{token.value}>'"
        if kind is TokenType.COMPONENT_OPEN:
            return f"'<x-{token.value}>'"
        if kind is TokenType.SLOT_CLOSE:
            return "'</x-slot>'"
        if kind is TokenType.SLOT_OPEN:
            return "'<x-slot>'"
        if kind is TokenType.EOF:
            return "end of template"
        return kind.value

    def _unexpected_closer(self, token: Token) -> ParseError:
        return self._error(
            f"Unexpected {self._describe(token)} without a matching opening",
            token,
            code=ErrorCode.UNEXPECTED_TOKEN,
        )

    def _error(
        self,
        message: str,
        token: Token | None = None,
        *,
        code: ErrorCode | None = None,
        suggestion: str | None = None,
    ) -> ParseError:
        return ParseError(
            message,
            token or self._current,
            self._source,
            self._filename,
            suggestion,
            name=self._name,
            code=code,
        )


def parse(
    source: str,
    name: str | None = None,
    filename: str | None = None,
    **lexer_options: Any,
) -> Template:
    """Lex and parse ``source`` into a ``Template`` node."""
    from sigil.lexer import Lexer

    max_nesting_depth = lexer_options.pop("max_nesting_depth", 100)
    tokens = Lexer(source, name=name, filename=filename, **lexer_options).tokenize()
    return Parser(
        tokens, name, filename, source, max_nesting_depth=max_nesting_depth
    ).parse()
