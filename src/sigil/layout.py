"""Layout inheritance: merge ``@extends`` chains on the node tree.

A child template names one parent with ``@extends`` and fills its
``@yield`` placeholders with ``@section`` bodies. Parents may extend in
turn; the child-most definition of a section wins. The result is a single
self-contained ``Template`` node whose ``@yield`` nodes have been replaced
by section bodies, so the compiler never deals with inheritance.

    base:   <title>@yield('title', 'Site')</title>@yield('content')
    page:   @extends('base') @section('title', 'Home')
            @section('content') <p>Hi</p> @endsection

    merged: <title>Home</title> <p>Hi</p>

Content of an extending template outside its sections is discarded, and a
``@yield`` with no matching section keeps its default.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable, Sequence
from typing import Any

from sigil.environment.exceptions import ErrorCode, TemplateSyntaxError
from sigil.nodes import Node, SlotBlock, Template, Yield

logger = logging.getLogger(__name__)

# Node attributes holding child statement sequences
CONTAINER_ATTRS = ("body", "else_", "elif_", "slots")

#: Loads a layout by name: returns its parsed tree plus source and filename.
TreeLoader = Callable[[str], "tuple[Template, str | None, str | None]"]


class LayoutResolver:
    """Resolve a template's ``@extends`` chain into one merged tree.

    Args:
        load: Returns ``(tree, source, filename)`` for a layout name; raises
            ``TemplateNotFoundError`` when it does not exist.
        max_depth: Maximum number of ``@extends`` hops.

    Example:
        >>> merged, layouts = LayoutResolver(env.load_tree).resolve("pages.home", tree)
        >>> layouts
        ['layouts.app', 'layouts.base']
    """

    def __init__(self, load: TreeLoader, max_depth: int = 10) -> None:
        self._load = load
        self._max_depth = max_depth

    def resolve(
        self,
        name: str | None,
        tree: Template,
        *,
        source: str | None = None,
        filename: str | None = None,
    ) -> tuple[Template, list[str]]:
        """Merge ``tree`` with its layouts.

        Returns the merged tree and the names of every layout in the chain,
        nearest first (for cache dependency tracking).

        Raises:
            TemplateNotFoundError: A layout in the chain does not exist
            TemplateSyntaxError: The chain is cyclic or deeper than ``max_depth``
        """
        sections: dict[str, Sequence[Node]] = tree.section_map()
        chain: list[str] = [name] if name else []
        layouts: list[str] = []
        current, current_source, current_filename = tree, source, filename
        current_name = name

        while current.extends is not None:
            parent_name = current.extends.template
            if parent_name in chain:
                raise TemplateSyntaxError(
                    f"Circular layout inheritance: {' -> '.join([*chain, parent_name])}",
                    current.extends.lineno,
                    current_name,
                    current_filename,
                    current_source,
                    current.extends.col_offset,
                    code=ErrorCode.LAYOUT_ERROR,
                )
            if len(layouts) >= self._max_depth:
                raise TemplateSyntaxError(
                    f"Layout chain deeper than {self._max_depth} levels",
                    current.extends.lineno,
                    current_name,
                    current_filename,
                    current_source,
                    current.extends.col_offset,
                    suggestion="Raise max_extends_depth or flatten the layouts",
                    code=ErrorCode.LAYOUT_ERROR,
                )
            parent, current_source, current_filename = self._load(parent_name)
            chain.append(parent_name)
            layouts.append(parent_name)
            for section_name, body in parent.section_map().items():
                sections.setdefault(section_name, body)
            current, current_name = parent, parent_name

        if layouts:
            logger.debug("merged %s with layouts %s", name or "<string>", layouts)
        body = _Substitution(sections).body(current.body)
        merged = Template(
            lineno=tree.lineno,
            col_offset=tree.col_offset,
            body=tuple(body),
            props=tree.props,
        )
        return merged, layouts


class _Substitution:
    """Replace ``Yield`` nodes by section bodies, recursively."""

    def __init__(self, sections: dict[str, Sequence[Node]]) -> None:
        self._sections = sections
        # Sections currently being expanded
        self._active: list[str] = []

    def body(self, nodes: Sequence[Node]) -> list[Node]:
        result: list[Node] = []
        for node in nodes:
            if isinstance(node, Yield) and node.name in self._sections:
                if node.name in self._active:
                    raise TemplateSyntaxError(
                        f"Section '{node.name}' yields itself",
                        node.lineno,
                        col_offset=node.col_offset,
                        code=ErrorCode.LAYOUT_ERROR,
                    )
                self._active.append(node.name)
                try:
                    result.extend(self.body(self._sections[node.name]))
                finally:
                    self._active.pop()
            else:
                result.append(self.node(node))
        return result

    def node(self, node: Node) -> Node:
        changes: dict[str, Any] = {}
        for attr in CONTAINER_ATTRS:
            value = getattr(node, attr, None)
            if not value:
                continue
            if attr == "elif_":
                changes[attr] = tuple((test, tuple(self.body(body))) for test, body in value)
            elif attr == "slots":
                changes[attr] = tuple(
                    dataclasses.replace(slot, body=tuple(self.body(slot.body)))
                    for slot in value
                    if isinstance(slot, SlotBlock)
                )
            else:
                changes[attr] = tuple(self.body(value))
        return dataclasses.replace(node, **changes) if changes else node
