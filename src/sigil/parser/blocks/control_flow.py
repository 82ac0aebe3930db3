"""Control flow block parsing: conditionals, loops, break/continue."""

from __future__ import annotations

import keyword
import re
from typing import TYPE_CHECKING

from sigil._types import TokenType
from sigil.environment.exceptions import ErrorCode
from sigil.nodes import Break, Continue, Expression, For, If, Node, While
from sigil.scanning import find_keyword

if TYPE_CHECKING:
    from sigil._types import Token

_LOOP_KINDS = ("foreach", "for", "while")
# Bodies compiled as separate functions; a loop outside them cannot be broken from inside.
_FUNCTION_BOUNDARIES = ("component", "slot")
_LOOP_REFERENCE_RE = re.compile(r"\bloop\b")

# Included templates share the frame, so they may read `loop` too
_INCLUDE_DIRECTIVES = frozenset({"include", "includeIf"})


class ControlFlowBlockParsingMixin:
    """Mixin for ``@if``, ``@foreach``, ``@for``, ``@while``, ``@break`` and ``@continue``.

    Required Host Attributes:
        _current, _advance, _at_directive, _push_block, _pop_block,
        _consume_end, _parse_body, _expression, _in_block, _error, _tokens, _pos
    """

    def _parse_if(self) -> If:
        """Parse ``@if(cond) ... [@elseif(cond) ...] [@else ...] @endif``."""
        start = self._advance()
        self._push_block("if", start)
        test = self._expression(start.args or "", start)
        body = self._parse_body()

        elif_: list[tuple[Expression, tuple[Node, ...]]] = []
        else_: list[Node] = []
        seen_else = False
        while self._at_directive("elseif", "else"):
            branch = self._advance()
            if branch.value == "elseif":
                if seen_else:
                    raise self._error("'@elseif' after '@else'", branch)
                elif_test = self._expression(branch.args or "", branch)
                elif_.append((elif_test, tuple(self._parse_body())))
            else:
                if seen_else:
                    raise self._error("Duplicate '@else'", branch)
                seen_else = True
                else_ = self._parse_body()

        self._consume_end("if", start)
        self._pop_block()
        return If(
            lineno=start.lineno,
            col_offset=start.col_offset,
            test=test,
            body=tuple(body),
            elif_=tuple(elif_),
            else_=tuple(else_),
        )

    def _parse_foreach(self) -> For:
        """Parse ``@foreach(items as item)`` / ``@foreach(pairs as key, value)``.

        ``@foreach(item in items)`` is accepted too.
        """
        start = self._current
        args = start.args or ""
        split = find_keyword(args, "as")
        if split != -1:
            iter_source, target_source = args[:split], args[split + 2 :]
        else:
            split = find_keyword(args, "in")
            if split == -1:
                raise self._error(
                    "Expected '@foreach(items as item)'",
                    start,
                    code=ErrorCode.INVALID_ARGUMENTS,
                )
            target_source, iter_source = args[:split], args[split + 2 :]
        return self._parse_loop("foreach", target_source, iter_source)

    def _parse_for(self) -> For:
        """Parse ``@for(target in iterable) ... @endfor``."""
        start = self._current
        args = start.args or ""
        split = find_keyword(args, "in")
        if split == -1:
            raise self._error(
                "Expected '@for(item in items)'",
                start,
                code=ErrorCode.INVALID_ARGUMENTS,
            )
        return self._parse_loop("for", args[:split], args[split + 2 :])

    def _parse_loop(self, kind: str, target_source: str, iter_source: str) -> For:
        start = self._advance()
        target = self._loop_target(target_source, start)
        iterable = self._expression(iter_source, start)
        self._push_block(kind, start)
        body_start = self._pos
        body = self._parse_body()
        uses_loop = self._references_loop(body_start, self._pos)
        self._consume_end(kind, start)
        self._pop_block()
        return For(
            lineno=start.lineno,
            col_offset=start.col_offset,
            target=target,
            iter=iterable,
            body=tuple(body),
            directive=kind,
            uses_loop=uses_loop,
        )

    def _parse_while(self) -> While:
        start = self._advance()
        self._push_block("while", start)
        test = self._expression(start.args or "", start)
        body = self._parse_body()
        self._consume_end("while", start)
        self._pop_block()
        return While(lineno=start.lineno, col_offset=start.col_offset, test=test, body=tuple(body))

    def _parse_break(self) -> Break:
        start = self._loop_exit()
        test = self._expression(start.args, start) if start.args is not None else None
        return Break(lineno=start.lineno, col_offset=start.col_offset, test=test)

    def _parse_continue(self) -> Continue:
        start = self._loop_exit()
        test = self._expression(start.args, start) if start.args is not None else None
        return Continue(lineno=start.lineno, col_offset=start.col_offset, test=test)

    # ------------------------------------------------------------------

    def _loop_exit(self) -> Token:
        token = self._advance()
        if not self._in_block(*_LOOP_KINDS, stop_at=_FUNCTION_BOUNDARIES):
            raise self._error(
                f"'@{token.value}' outside of a loop",
                token,
                suggestion="Use it inside @foreach, @for or @while in the same template",
            )
        return token

    def _loop_target(self, source: str, token: Token) -> tuple[str, ...]:
        text = source.strip()
        if text.startswith("(") and text.endswith(")"):
            text = text[1:-1]
        names = tuple(part.strip() for part in text.split(","))
        for name in names:
            if not name.isidentifier() or keyword.iskeyword(name):
                raise self._error(
                    f"Invalid loop variable '{name}' in '@{token.value}'",
                    token,
                    code=ErrorCode.INVALID_ARGUMENTS,
                    suggestion="Loop targets are names: 'item' or 'key, value'",
                )
        return names

    def _references_loop(self, start: int, end: int) -> bool:
        """Whether any token between ``start`` and ``end`` mentions ``loop``.

        An include counts as a mention: the included template sees the
        loop's frame and is compiled separately.
        """
        for token in self._tokens[start:end]:
            if token.type is TokenType.DIRECTIVE and token.value in _INCLUDE_DIRECTIVES:
                return True
            if token.type in (TokenType.ECHO, TokenType.RAW_ECHO):
                text = token.value
            elif token.type in (
                TokenType.DIRECTIVE,
                TokenType.COMPONENT_OPEN,
                TokenType.BOUND_ATTR,
            ):
                text = token.args or ""
            else:
                continue
            if _LOOP_REFERENCE_RE.search(text):
                return True
        return False
