"""Helper directive parsing."""

from __future__ import annotations

from sigil.nodes import ConditionalRegion, HelperCall

# name -> (min args, max args)
HELPER_ARITY: dict[str, tuple[int, int]] = {
    "class": (1, 1),
    "style": (1, 1),
    "checked": (1, 1),
    "selected": (1, 1),
    "disabled": (1, 1),
    "readonly": (1, 1),
    "json": (1, 1),
    "js": (1, 1),
    "csrf": (0, 0),
    "method": (1, 1),
    "old": (1, 2),
    "lang": (1, 2),
    "upper": (1, 1),
    "dump": (1, 1),
}


class HelperBlockParsingMixin:
    """Mixin for single-statement helpers and paired helper regions.

    Required Host Attributes:
        _current, _advance, _push_block, _pop_block, _consume_end, _parse_body,
        _expression, _arguments, _error
    """

    def _parse_helper(self) -> HelperCall:
        start = self._advance()
        arity = HELPER_ARITY.get(start.value)
        if arity is None:
            raise self._error(f"Unexpected '@{start.value}'", start)
        args = self._arguments(start, *arity)
        return HelperCall(
            lineno=start.lineno,
            col_offset=start.col_offset,
            name=start.value,
            args=tuple(self._expression(arg, start) for arg in args),
        )

    def _parse_conditional_region(self) -> ConditionalRegion:
        """Parse ``@env(...)``, ``@auth``, ``@guest`` and ``@error(field)`` regions."""
        start = self._advance()
        kind = start.value
        argument = None
        if kind in ("env", "error"):
            (source,) = self._arguments(start, 1)
            argument = self._expression(source, start)
        self._push_block(kind, start)
        body = self._parse_body()
        self._consume_end(kind, start)
        self._pop_block()
        return ConditionalRegion(
            lineno=start.lineno,
            col_offset=start.col_offset,
            kind=kind,
            body=tuple(body),
            argument=argument,
        )
