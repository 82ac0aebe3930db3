"""Compiled template runtime: the Template object, LoopContext and runtime helpers."""

from __future__ import annotations

from sigil.template.core import Template
from sigil.template.loop_context import LoopContext

__all__ = ["LoopContext", "Template"]
