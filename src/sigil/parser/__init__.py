"""Sigil parser: token stream to immutable node tree."""

from sigil.parser.core import Parser, parse
from sigil.parser.errors import ParseError

__all__ = ["ParseError", "Parser", "parse"]
