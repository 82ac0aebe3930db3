"""Lexer for Sigil templates.

Turns template source into a flat token stream. The lexer owns everything
that is decided purely by text: comments are dropped, protected regions
(``@verbatim``, ``<code>`` blocks, ``@@`` escapes) become RAW tokens, and
interpolation/directive boundaries are found with bracket- and string-aware
scanning so nested calls and dict literals inside expressions work.

Unterminated constructs raise ``TemplateSyntaxError`` with the position of
the opening delimiter.
"""

from __future__ import annotations

import re
from bisect import bisect_right
from enum import Enum

from sigil._types import Token, TokenType
from sigil.environment.exceptions import ErrorCode, TemplateSyntaxError
from sigil.scanning import find_matching, find_terminator, iter_attributes, scan_tag_end


class ArgMode(Enum):
    NONE = "none"
    REQUIRED = "required"
    OPTIONAL = "optional"


#: Directive vocabulary. Any other ``@word`` is left as text.
DIRECTIVES: dict[str, ArgMode] = {
    # control flow
    "if": ArgMode.REQUIRED,
    "elseif": ArgMode.REQUIRED,
    "else": ArgMode.NONE,
    "endif": ArgMode.NONE,
    "foreach": ArgMode.REQUIRED,
    "endforeach": ArgMode.NONE,
    "for": ArgMode.REQUIRED,
    "endfor": ArgMode.NONE,
    "while": ArgMode.REQUIRED,
    "endwhile": ArgMode.NONE,
    "break": ArgMode.OPTIONAL,
    "continue": ArgMode.OPTIONAL,
    # structure
    "extends": ArgMode.REQUIRED,
    "section": ArgMode.REQUIRED,
    "endsection": ArgMode.NONE,
    "yield": ArgMode.REQUIRED,
    "include": ArgMode.REQUIRED,
    "includeIf": ArgMode.REQUIRED,
    "props": ArgMode.REQUIRED,
    "slot": ArgMode.REQUIRED,
    "endslot": ArgMode.NONE,
    "set": ArgMode.REQUIRED,
    # helpers
    "class": ArgMode.REQUIRED,
    "style": ArgMode.REQUIRED,
    "checked": ArgMode.REQUIRED,
    "selected": ArgMode.REQUIRED,
    "disabled": ArgMode.REQUIRED,
    "readonly": ArgMode.REQUIRED,
    "json": ArgMode.REQUIRED,
    "js": ArgMode.REQUIRED,
    "csrf": ArgMode.NONE,
    "method": ArgMode.REQUIRED,
    "old": ArgMode.REQUIRED,
    "lang": ArgMode.REQUIRED,
    "upper": ArgMode.REQUIRED,
    "dump": ArgMode.REQUIRED,
    "env": ArgMode.REQUIRED,
    "endenv": ArgMode.NONE,
    "auth": ArgMode.NONE,
    "endauth": ArgMode.NONE,
    "guest": ArgMode.NONE,
    "endguest": ArgMode.NONE,
    "error": ArgMode.REQUIRED,
    "enderror": ArgMode.NONE,
    # protected region
    "verbatim": ArgMode.NONE,
}

_SPECIAL_RE = re.compile(
    r"\{\{--|\{\{|\{!!|@|</x-|<x-|<code\b|<[A-Za-z]",
    re.IGNORECASE,
)
_NAME_RE = re.compile(r"[A-Za-z_]\w*")
_COMPONENT_NAME_RE = re.compile(r"<x-([\w.:-]+)")
_COMPONENT_CLOSE_RE = re.compile(r"</x-([\w.:-]+)\s*>")
_CODE_CLOSE_RE = re.compile(r"</code\s*>", re.IGNORECASE)
_ENDVERBATIM = "@endverbatim"


class Lexer:
    """Tokenize Sigil template source.

    Example:
        >>> tokens = Lexer("Hello {{ name }}!").tokenize()
        >>> [t.type.name for t in tokens]
        ['DATA', 'ECHO', 'DATA', 'EOF']

    Args:
        source: Template source text.
        name: Logical template name for error messages.
        filename: Source path for error messages.
        bound_attributes: Recognise ``:attr="expr"`` on plain HTML tags.
        protect_code_blocks: Emit ``<code>...</code>`` content verbatim.
    """

    __slots__ = (
        "_bound",
        "_data",
        "_data_start",
        "_line_starts",
        "_tokens",
        "bound_attributes",
        "filename",
        "name",
        "protect_code_blocks",
        "source",
    )

    def __init__(
        self,
        source: str,
        *,
        name: str | None = None,
        filename: str | None = None,
        bound_attributes: bool = True,
        protect_code_blocks: bool = True,
    ) -> None:
        self.source = source
        self.name = name
        self.filename = filename
        self.bound_attributes = bound_attributes
        self.protect_code_blocks = protect_code_blocks
        self._line_starts = [0] + [m.end() for m in re.finditer(r"\n", source)]
        self._tokens: list[Token] = []
        self._data: list[str] = []
        self._data_start = 0
        # Pending :attr spans inside plain HTML tags: (start, end, name, expr)
        self._bound: list[tuple[int, int, str, str]] = []

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def tokenize(self) -> list[Token]:
        source = self.source
        pos = 0
        while pos < len(source):
            match = _SPECIAL_RE.search(source, pos)
            special = match.start() if match else len(source)
            if self._bound and self._bound[0][0] <= special:
                start, end, attr_name, expr = self._bound.pop(0)
                self._text(source[pos:start], pos)
                self._emit(TokenType.BOUND_ATTR, attr_name, start, args=expr)
                pos = end
                continue
            if match is None:
                self._text(source[pos:], pos)
                break
            self._text(source[pos:special], pos)
            pos = self._dispatch(match.group(), special)
        self._flush()
        self._tokens.append(Token(TokenType.EOF, "", *self._position(len(source))))
        return self._tokens

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _dispatch(self, marker: str, pos: int) -> int:
        """Handle the construct starting at ``pos``; return the resume index."""
        if marker == "{{--":
            return self._comment(pos)
        if marker == "{{":
            return self._echo(pos, "{{", "}}", TokenType.ECHO)
        if marker == "{!!":
            return self._echo(pos, "{!!", "!!}", TokenType.RAW_ECHO)
        if marker == "@":
            return self._at(pos)
        if marker == "<x-":
            return self._component_open(pos)
        if marker == "</x-":
            return self._component_close(pos)
        if marker.lower() == "<code":
            return self._code_block(pos)
        return self._html_tag(pos)

    def _comment(self, pos: int) -> int:
        end = self.source.find("--}}", pos + 4)
        if end == -1:
            raise self._error(
                "Unclosed comment '{{--'",
                pos,
                code=ErrorCode.UNCLOSED_COMMENT,
                suggestion="Close the comment with '--}}'",
            )
        return end + 4

    def _echo(self, pos: int, opener: str, closer: str, kind: TokenType) -> int:
        start = pos + len(opener)
        end = find_terminator(self.source, start, closer)
        if end == -1:
            raise self._error(
                f"Unclosed interpolation '{opener}'",
                pos,
                code=ErrorCode.UNCLOSED_ECHO,
                suggestion=f"Close the interpolation with '{closer}'",
            )
        expr = self.source[start:end]
        if not expr.strip():
            raise self._error(
                f"Empty interpolation '{opener} {closer}'",
                pos,
                code=ErrorCode.UNCLOSED_ECHO,
            )
        self._emit(kind, expr.strip(), pos)
        return end + len(closer)

    def _at(self, pos: int) -> int:
        source = self.source
        previous = source[pos - 1] if pos > 0 else ""
        if source.startswith("@@", pos):
            # @@name renders a literal @name
            self._text("@", pos)
            return pos + 2
        if previous and (previous.isalnum() or previous in "._@"):
            self._text("@", pos)
            return pos + 1
        match = _NAME_RE.match(source, pos + 1)
        if match is None or match.group() not in DIRECTIVES:
            self._text("@", pos)
            return pos + 1
        name = match.group()
        end = match.end()
        if name == "verbatim":
            return self._verbatim(pos, end)
        mode = DIRECTIVES[name]
        if mode is ArgMode.NONE:
            self._emit(TokenType.DIRECTIVE, name, pos)
            return end
        paren = end
        if mode is ArgMode.REQUIRED:
            while paren < len(source) and source[paren] in " \t":
                paren += 1
        if paren >= len(source) or source[paren] != "(":
            if mode is ArgMode.OPTIONAL:
                self._emit(TokenType.DIRECTIVE, name, pos)
                return end
            raise self._error(
                f"Directive '@{name}' requires arguments",
                pos,
                code=ErrorCode.UNCLOSED_ARGUMENTS,
                suggestion=f"Write '@{name}(...)', or '@@{name}' for a literal '@{name}'",
            )
        close = find_matching(source, paren)
        if close == -1:
            raise self._error(
                f"Unclosed argument list for '@{name}'",
                pos,
                code=ErrorCode.UNCLOSED_ARGUMENTS,
                suggestion="Check for a missing ')' or an unterminated string",
            )
        self._emit(TokenType.DIRECTIVE, name, pos, args=source[paren + 1 : close])
        return close + 1

    def _verbatim(self, pos: int, body_start: int) -> int:
        end = self.source.find(_ENDVERBATIM, body_start)
        if end == -1:
            raise self._error(
                "Unclosed '@verbatim' block",
                pos,
                code=ErrorCode.UNCLOSED_VERBATIM,
                suggestion="Close the block with '@endverbatim'",
            )
        self._emit(TokenType.RAW, self.source[body_start:end], pos)
        return end + len(_ENDVERBATIM)

    def _code_block(self, pos: int) -> int:
        if not self.protect_code_blocks:
            return self._html_tag(pos)
        match = _CODE_CLOSE_RE.search(self.source, pos)
        if match is None:
            raise self._error(
                "Unclosed '<code>' block",
                pos,
                code=ErrorCode.UNCLOSED_TAG,
                suggestion="Close the block with '</code>'",
            )
        self._emit(TokenType.RAW, self.source[pos : match.end()], pos)
        return match.end()

    # ------------------------------------------------------------------
    # Tags
    # ------------------------------------------------------------------

    def _component_open(self, pos: int) -> int:
        source = self.source
        name_match = _COMPONENT_NAME_RE.match(source, pos)
        if name_match is None:
            self._text("<", pos)
            return pos + 1
        end = scan_tag_end(source, pos)
        if end == -1:
            raise self._error(
                f"Unclosed tag '<x-{name_match.group(1)}'",
                pos,
                code=ErrorCode.UNCLOSED_TAG,
                suggestion="Close the tag with '>' or '/>'",
            )
        inner = source[name_match.end() : end]
        self_closing = inner.rstrip().endswith("/")
        if self_closing:
            inner = inner.rstrip()[:-1]
        name = name_match.group(1)
        if name == "slot" or name.startswith("slot:"):
            self._emit(TokenType.SLOT_OPEN, name[5:], pos, args=inner)
            if self_closing:
                self._emit(TokenType.SLOT_CLOSE, name[5:], pos)
        else:
            self._emit(TokenType.COMPONENT_OPEN, name, pos, args=inner, self_closing=self_closing)
        return end + 1

    def _component_close(self, pos: int) -> int:
        match = _COMPONENT_CLOSE_RE.match(self.source, pos)
        if match is None:
            raise self._error(
                "Malformed closing tag",
                pos,
                code=ErrorCode.UNCLOSED_TAG,
                suggestion="Closing tags look like '</x-name>'",
            )
        name = match.group(1)
        if name == "slot" or name.startswith("slot:"):
            self._emit(TokenType.SLOT_CLOSE, name[5:], pos)
        else:
            self._emit(TokenType.COMPONENT_CLOSE, name, pos)
        return match.end()

    def _html_tag(self, pos: int) -> int:
        """Plain HTML start tag: register ``:attr="expr"`` spans, then rescan as text."""
        self._text("<", pos)
        if not self.bound_attributes:
            return pos + 1
        end = scan_tag_end(self.source, pos)
        if end == -1:
            return pos + 1
        tag = self.source[pos:end]
        for attr in iter_attributes(tag[1:]):
            if (
                attr.name.startswith(":")
                and len(attr.name) > 1
                and not attr.name.startswith("::")
                and attr.value is not None
            ):
                self._bound.append(
                    (pos + 1 + attr.start, pos + 1 + attr.end, attr.name[1:], attr.value)
                )
        return pos + 1

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _text(self, text: str, pos: int) -> None:
        if not text:
            return
        if not self._data:
            self._data_start = pos
        self._data.append(text)

    def _flush(self) -> None:
        if self._data:
            value = "".join(self._data)
            self._data = []
            self._tokens.append(Token(TokenType.DATA, value, *self._position(self._data_start)))

    def _emit(
        self,
        kind: TokenType,
        value: str,
        pos: int,
        *,
        args: str | None = None,
        self_closing: bool = False,
    ) -> None:
        self._flush()
        lineno, col = self._position(pos)
        self._tokens.append(Token(kind, value, lineno, col, args, self_closing))

    def _position(self, pos: int) -> tuple[int, int]:
        index = bisect_right(self._line_starts, pos) - 1
        return index + 1, pos - self._line_starts[index]

    def _error(
        self,
        message: str,
        pos: int,
        *,
        code: ErrorCode,
        suggestion: str | None = None,
    ) -> TemplateSyntaxError:
        lineno, col = self._position(pos)
        return TemplateSyntaxError(
            message,
            lineno,
            self.name,
            self.filename,
            self.source,
            col,
            suggestion=suggestion,
            code=code,
        )


def tokenize(source: str, **kwargs: object) -> list[Token]:
    """Convenience wrapper: ``Lexer(source, **kwargs).tokenize()``."""
    return Lexer(source, **kwargs).tokenize()  # type: ignore[arg-type]
