"""Base node class for the Sigil template tree."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Node:
    """Base class for all tree nodes.

    Nodes record their source position for error reporting and are
    immutable, so one parsed tree can be shared between compilations.
    """

    lineno: int
    col_offset: int
