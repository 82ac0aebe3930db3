"""Sigil Template: compiled template object ready for rendering.

The Template class wraps a compiled code object and provides the
``render()`` API. Templates are immutable and safe for concurrent rendering.

Architecture:
    ```
    Template
    ├── _env_ref: WeakRef[Environment]  # Prevents circular refs
    ├── _code: code object              # Compiled Python bytecode
    ├── _render_func: callable          # Extracted render(_rc) function
    ├── props                           # @props defaults (components)
    └── dependencies                    # name -> fingerprint of every source
    ```

Generated code writes into the render's ``OutputBuffer`` through a cached
bound method:
    ```python
    def render(_rc):
        _scopes = _rc.scopes
        _append = _rc.output.write
        _e = _escape
        _append("Hello, ")
        _rc.line = 1
        _append(_e(_lookup(_rc, "name")))
    ```

Memory Safety:
Uses ``weakref.ref(env)`` to break the cycle
``Template → Environment → cache → Template``.
"""

from __future__ import annotations

import weakref
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from sigil.template.helpers import STATIC_NAMESPACE

if TYPE_CHECKING:
    import types

    from sigil.environment import Environment
    from sigil.render_context import RenderContext


class Template:
    """Compiled template ready for rendering.

    Obtained from ``Environment.get_template()`` or
    ``Environment.from_string()``; not constructed directly.

    Example:
        >>> template = env.from_string("Hello, {{ name }}!")
        >>> template.render(name="World")
        'Hello, World!'
    """

    __slots__ = (
        "_code",
        "_dependencies",
        "_env_ref",
        "_filename",
        "_name",
        "_props",
        "_render_func",
        "_source",
    )

    def __init__(
        self,
        env: Environment,
        code: types.CodeType,
        name: str | None,
        filename: str | None,
        source: str | None = None,
        *,
        props: Mapping[str, Any] | None = None,
        dependencies: Mapping[str, Any] | None = None,
    ) -> None:
        self._env_ref: weakref.ref[Environment] = weakref.ref(env)
        self._code = code
        self._name = name
        self._filename = filename
        self._source = source
        self._props = dict(props) if props is not None else None
        self._dependencies = dict(dependencies or {})

        namespace: dict[str, Any] = STATIC_NAMESPACE.copy()
        exec(code, namespace)
        self._render_func = namespace["render"]

    @property
    def _env(self) -> Environment:
        env = self._env_ref()
        if env is None:
            raise RuntimeError(
                f"Environment has been garbage collected (template: {self._name or 'unknown'})"
            )
        return env

    @property
    def name(self) -> str | None:
        return self._name

    @property
    def filename(self) -> str | None:
        return self._filename

    @property
    def source(self) -> str | None:
        return self._source

    @property
    def code(self) -> types.CodeType:
        return self._code

    @property
    def props(self) -> dict[str, Any] | None:
        """Declared ``@props`` defaults, or ``None`` when not declared."""
        return self._props

    @property
    def dependencies(self) -> dict[str, Any]:
        """Fingerprint of every source this template was compiled from, by name."""
        return dict(self._dependencies)

    def render(self, data: Mapping[str, Any] | None = None, **kwargs: Any) -> str:
        """Render with ``data`` (and keyword arguments) as the root frame.

        Example:
            >>> t.render({"name": "World"})
            'Hello, World!'
        """
        context = dict(data or {})
        context.update(kwargs)
        return self._env.render_template(self, context)

    def execute(self, rc: RenderContext) -> None:
        """Run the compiled code against ``rc``, writing into ``rc.output``.

        Non-template exceptions are wrapped in ``TemplateRuntimeError``
        naming this template and the current line, chained to the original.
        """
        try:
            self._render_func(rc)
        except Exception as exc:
            enhanced = rc.enhance_error(exc)
            if enhanced is exc:
                raise
            raise enhanced from exc

    def __repr__(self) -> str:
        return f"<Template {self._name or '(inline)'}>"
