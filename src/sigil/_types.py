"""Token types shared by the lexer and parser."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class TokenType(Enum):
    DATA = "data"
    ECHO = "echo"  # {{ expr }}
    RAW_ECHO = "raw_echo"  # {!! expr !!}
    DIRECTIVE = "directive"  # @name / @name(args)
    COMPONENT_OPEN = "component_open"  # <x-name ...> / <x-name ... />
    COMPONENT_CLOSE = "component_close"  # </x-name>
    SLOT_OPEN = "slot_open"  # <x-slot:name> / <x-slot name="...">
    SLOT_CLOSE = "slot_close"  # </x-slot:name> / </x-slot>
    BOUND_ATTR = "bound_attr"  # :attr="expr" on a plain HTML tag
    RAW = "raw"  # protected text
    EOF = "eof"


@dataclass(frozen=True, slots=True)
class Token:
    """A lexed token.

    ``value`` is the text for DATA/RAW, the expression source for echoes,
    and the name for directives, components, slots and bound attributes.
    ``args`` carries directive arguments (without the parentheses), the raw
    attribute text of a component/slot tag, or a bound attribute's
    expression.
    """

    type: TokenType
    value: str
    lineno: int
    col_offset: int
    args: str | None = None
    self_closing: bool = False

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.value!r}, {self.lineno}:{self.col_offset})"
