"""Component and slot parsing."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sigil._types import TokenType
from sigil.environment.exceptions import ErrorCode
from sigil.nodes import Attribute, AttributeKind, Component, Node, Output, SlotBlock
from sigil.scanning import find_terminator, iter_attributes

if TYPE_CHECKING:
    from sigil._types import Token


class ComponentBlockParsingMixin:
    """Mixin for ``<x-name>`` components, ``<x-slot>`` tags and ``@slot`` blocks.

    A component's body is parsed completely before the ``Component`` node is
    built, so nested components and slots are resolved inside-out. Named
    slots that are direct children of the body are lifted out; the rest is
    the default slot.

    Required Host Attributes:
        _current, _advance, _push_block, _pop_block, _consume_end, _parse_body,
        _expression, _arguments, _literal_string, _block_stack, _describe, _error
    """

    def _parse_component(self) -> Component:
        start = self._advance()
        attributes = self._parse_attributes(start)
        if start.self_closing:
            return Component(
                lineno=start.lineno,
                col_offset=start.col_offset,
                name=start.value,
                attributes=attributes,
                self_closing=True,
            )

        self._push_block("component", start)
        children = self._parse_body()
        closing = self._current
        if closing.type is not TokenType.COMPONENT_CLOSE or closing.value != start.value:
            if closing.type is TokenType.EOF:
                message = f"Unclosed '<x-{start.value}>' (opened on line {start.lineno})"
            else:
                message = (
                    f"Unexpected {self._describe(closing)} inside '<x-{start.value}>' "
                    f"(opened on line {start.lineno})"
                )
            raise self._error(
                message,
                closing if closing.type is not TokenType.EOF else start,
                code=ErrorCode.UNCLOSED_BLOCK,
                suggestion=f"Close the component with '</x-{start.value}>'",
            )
        self._advance()
        self._pop_block()

        body: list[Node] = []
        slots: list[SlotBlock] = []
        for child in children:
            if isinstance(child, SlotBlock):
                if any(slot.name == child.name for slot in slots):
                    raise self._error(
                        f"Duplicate slot '{child.name}' in '<x-{start.value}>'",
                        start,
                    )
                slots.append(child)
            else:
                body.append(child)
        return Component(
            lineno=start.lineno,
            col_offset=start.col_offset,
            name=start.value,
            attributes=attributes,
            body=tuple(body),
            slots=tuple(slots),
        )

    def _parse_slot_tag(self) -> SlotBlock:
        """Parse ``<x-slot:name>...</x-slot:name>`` or ``<x-slot name="...">...</x-slot>``."""
        start = self._advance()
        name = start.value
        if not name:
            for attr in iter_attributes(start.args or ""):
                if attr.name == "name" and attr.value:
                    name = attr.value
                    break
        if not name:
            raise self._error(
                "Slot tag without a name",
                start,
                suggestion="Use '<x-slot:name>' or '<x-slot name=\"name\">'",
            )
        self._check_slot_position(start, name)
        self._push_block("slot", start)
        body = self._parse_body()
        closing = self._current
        if closing.type is not TokenType.SLOT_CLOSE or closing.value not in ("", name):
            raise self._error(
                f"Unclosed slot '{name}' (opened on line {start.lineno})",
                start if closing.type is TokenType.EOF else closing,
                code=ErrorCode.UNCLOSED_BLOCK,
                suggestion=f"Close the slot with '</x-slot:{name}>' or '</x-slot>'",
            )
        self._advance()
        self._pop_block()
        return SlotBlock(lineno=start.lineno, col_offset=start.col_offset, name=name, body=tuple(body))

    def _parse_slot_directive(self) -> SlotBlock:
        """Parse ``@slot('name') ... @endslot``."""
        start = self._advance()
        (name_source,) = self._arguments(start, 1)
        name = self._literal_string(name_source, start, "Slot name")
        self._check_slot_position(start, name)
        self._push_block("slot", start)
        body = self._parse_body()
        self._consume_end("slot", start)
        self._pop_block()
        return SlotBlock(lineno=start.lineno, col_offset=start.col_offset, name=name, body=tuple(body))

    def _check_slot_position(self, token: Token, name: str) -> None:
        if not self._block_stack or self._block_stack[-1][0] != "component":
            raise self._error(
                f"Slot '{name}' must be a direct child of a component",
                token,
                suggestion="Place the slot directly inside <x-...>...</x-...>",
            )

    # ------------------------------------------------------------------
    # Attributes
    # ------------------------------------------------------------------

    def _parse_attributes(self, token: Token) -> tuple[Attribute, ...]:
        """Classify each attribute on a component tag."""
        attributes: list[Attribute] = []
        for raw in iter_attributes(token.args or ""):
            name = raw.name
            value = raw.value
            if name.startswith("::"):
                # ::attr passes a literal attribute whose name starts with ':'
                kind = AttributeKind.BOOLEAN if value is None else AttributeKind.LITERAL
                attributes.append(Attribute(token.lineno, token.col_offset, name[1:], kind, value))
                continue
            if name.startswith(":"):
                if value is None or not value.strip():
                    raise self._error(
                        f"Bound attribute '{name}' needs an expression value",
                        token,
                        code=ErrorCode.INVALID_EXPRESSION,
                    )
                attributes.append(
                    Attribute(
                        token.lineno,
                        token.col_offset,
                        name[1:],
                        AttributeKind.BOUND,
                        self._expression(value, token),
                    )
                )
                continue
            if value is None:
                attributes.append(
                    Attribute(token.lineno, token.col_offset, name, AttributeKind.BOOLEAN)
                )
                continue
            parts = self._split_interpolations(value, token)
            if all(isinstance(part, str) for part in parts):
                attributes.append(
                    Attribute(token.lineno, token.col_offset, name, AttributeKind.LITERAL, value)
                )
            elif len(parts) == 1:
                output = parts[0]
                kind = AttributeKind.ESCAPED if output.escape else AttributeKind.RAW
                attributes.append(Attribute(token.lineno, token.col_offset, name, kind, output.expr))
            else:
                attributes.append(
                    Attribute(
                        token.lineno,
                        token.col_offset,
                        name,
                        AttributeKind.INTERPOLATED,
                        tuple(parts),
                    )
                )
        return tuple(attributes)

    def _split_interpolations(self, value: str, token: Token) -> list[str | Output]:
        """Split an attribute value into literal text and interpolations."""
        parts: list[str | Output] = []
        pos = 0
        while pos < len(value):
            escaped = value.find("{{", pos)
            raw = value.find("{!!", pos)
            candidates = [index for index in (escaped, raw) if index != -1]
            if not candidates:
                parts.append(value[pos:])
                break
            start = min(candidates)
            if start > pos:
                parts.append(value[pos:start])
            opener, closer = ("{!!", "!!}") if start == raw else ("{{", "}}")
            end = find_terminator(value, start + len(opener), closer)
            if end == -1:
                raise self._error(
                    f"Unclosed interpolation in attribute value: {value}",
                    token,
                    code=ErrorCode.UNCLOSED_ECHO,
                )
            parts.append(
                Output(
                    token.lineno,
                    token.col_offset,
                    self._expression(value[start + len(opener) : end], token),
                    escape=opener == "{{",
                )
            )
            pos = end + len(closer)
        return parts
