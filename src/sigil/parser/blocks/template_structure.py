"""Template structure parsing: layouts, sections, includes, declarations."""

from __future__ import annotations

import keyword

from sigil.environment.exceptions import ErrorCode
from sigil.nodes import Extends, Include, Output, Section, Set, Yield
from sigil.scanning import find_assignment


class TemplateStructureBlockParsingMixin:
    """Mixin for ``@extends``, ``@section``, ``@yield``, ``@include``, ``@props`` and ``@set``.

    ``@extends``, ``@section`` and ``@props`` are only valid at the top level
    of a template. They are recorded on the parser and returned as ``None``
    so they never appear in the rendered body.

    Required Host Attributes:
        _current, _advance, _push_block, _pop_block, _consume_end, _parse_body,
        _expression, _arguments, _literal, _literal_string, _at_top_level,
        _error, _extends, _sections, _props
    """

    def _parse_extends(self) -> None:
        """Parse ``@extends('layouts.app')``."""
        start = self._advance()
        self._require_top_level(start)
        (name_source,) = self._arguments(start, 1)
        if self._extends is not None:
            raise self._error(
                "A template can only '@extends' one layout",
                start,
                suggestion=f"Already extending '{self._extends.template}'",
            )
        self._extends = Extends(
            lineno=start.lineno,
            col_offset=start.col_offset,
            template=self._literal_string(name_source, start, "Layout name"),
        )
        return None

    def _parse_section(self) -> None:
        """Parse ``@section('name') ... @endsection`` or ``@section('name', expr)``."""
        start = self._advance()
        self._require_top_level(start)
        args = self._arguments(start, 1, 2)
        name = self._literal_string(args[0], start, "Section name")
        if any(section.name == name for section in self._sections):
            raise self._error(f"Duplicate section '{name}'", start)
        if len(args) == 2:
            body: tuple = (
                Output(start.lineno, start.col_offset, self._expression(args[1], start)),
            )
        else:
            self._push_block("section", start)
            body = tuple(self._parse_body())
            self._consume_end("section", start)
            self._pop_block()
        self._sections.append(
            Section(lineno=start.lineno, col_offset=start.col_offset, name=name, body=body)
        )
        return None

    def _parse_yield(self) -> Yield:
        """Parse ``@yield('name')`` or ``@yield('name', default)``."""
        start = self._advance()
        args = self._arguments(start, 1, 2)
        return Yield(
            lineno=start.lineno,
            col_offset=start.col_offset,
            name=self._literal_string(args[0], start, "Section name"),
            default=self._expression(args[1], start) if len(args) == 2 else None,
        )

    def _parse_include(self) -> Include:
        """Parse ``@include(name[, values])`` and ``@includeIf(name[, values])``."""
        start = self._advance()
        args = self._arguments(start, 1, 2)
        return Include(
            lineno=start.lineno,
            col_offset=start.col_offset,
            template=self._expression(args[0], start),
            with_values=self._expression(args[1], start) if len(args) == 2 else None,
            ignore_missing=start.value == "includeIf",
        )

    def _parse_props(self) -> None:
        """Parse ``@props({'title': 'Untitled'})`` or ``@props(['title'])``."""
        start = self._advance()
        self._require_top_level(start)
        if self._props is not None:
            raise self._error("Duplicate '@props' declaration", start)
        declared = self._literal(start.args or "", start, "Declaration")
        if isinstance(declared, dict):
            items = list(declared.items())
        elif isinstance(declared, (list, tuple)):
            items = [(name, None) for name in declared]
        else:
            raise self._error(
                "'@props' takes a dict of defaults or a list of names",
                start,
                code=ErrorCode.INVALID_ARGUMENTS,
            )
        for name, _default in items:
            if not isinstance(name, str) or not name:
                raise self._error(
                    f"Prop names must be non-empty strings, got {name!r}",
                    start,
                    code=ErrorCode.INVALID_ARGUMENTS,
                )
        self._props = tuple(items)
        return None

    def _parse_set(self) -> Set:
        """Parse ``@set(name = expr)``."""
        start = self._advance()
        args = start.args or ""
        split = find_assignment(args)
        name = args[:split].strip() if split != -1 else ""
        if split == -1 or not name.isidentifier() or keyword.iskeyword(name):
            raise self._error(
                "Expected '@set(name = value)'",
                start,
                code=ErrorCode.INVALID_ARGUMENTS,
            )
        return Set(
            lineno=start.lineno,
            col_offset=start.col_offset,
            name=name,
            value=self._expression(args[split + 1 :], start),
        )

    def _require_top_level(self, token) -> None:
        if not self._at_top_level():
            raise self._error(
                f"'@{token.value}' must be at the top level of the template",
                token,
                suggestion="Move it out of any @if, loop or component",
            )
