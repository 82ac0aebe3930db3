"""Typed expression values.

The parser never interprets expression text. It wraps it in an
``Expression`` and leaves evaluation to the environment's evaluator
(see ``sigil.compiler.expressions``).
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Expression:
    """Opaque expression source with its position in the template."""

    source: str
    lineno: int
    col_offset: int = 0

    def __str__(self) -> str:
        return self.source
