"""Sigil Environment: configuration, template cache and render orchestration.

The Environment is the entry point for rendering:

    name -> loader source -> parse -> merge @extends chain -> cache check
         -> [miss: compile, store] -> fresh RenderContext -> execute -> str

Caching:
    Compiled templates are kept in memory by name. Each records the
    fingerprint of every source it was built from (the template and every
    layout in its ``@extends`` chain). With ``auto_reload=True`` each lookup
    re-checks those fingerprints through the loader and recompiles when any
    differs. With ``cache_dir`` set, compiled code objects are also
    persisted on disk (see ``sigil.bytecode_cache``) and reused across
    processes under the same validity rule.

Thread-Safety:
    Rendering is safe for concurrent use: every render owns its
    RenderContext. Concurrent cold compiles of the same template race; the
    last one to finish wins the cache slot.
"""

from __future__ import annotations

import ast
import logging
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any

from sigil.bytecode_cache import BytecodeCache, CachedUnit
from sigil.compiler import Compiler, ExpressionEvaluator, PythonEvaluator
from sigil.environment.exceptions import TemplateNotFoundError, TemplateSyntaxError
from sigil.environment.globals import HostFunctions, host_globals
from sigil.layout import LayoutResolver
from sigil.parser import parse
from sigil.render_context import render_context
from sigil.template import Template

if TYPE_CHECKING:
    import os
    import types

    from sigil.environment.loaders import Loader
    from sigil.nodes import Template as TemplateNode

logger = logging.getLogger(__name__)


def _searched_locations(loader: Loader, name: str) -> Sequence[str]:
    """Where ``loader`` looked for ``name``: file paths, or the name itself."""
    try:
        loader.get_source(name)
    except TemplateNotFoundError as exc:
        return exc.candidates or (name,)
    return (name,)


class Environment:
    """Central configuration and template cache.

    Args:
        loader: Source of templates (``FileSystemLoader``, ``DictLoader``, ...)
        cache_dir: Directory for compiled artifacts; ``None`` disables the
            disk cache
        auto_reload: Re-check source fingerprints on every lookup
        component_paths: Directories searched, in order, for ``<x-name>``
        globals: Extra names visible to every expression
        host: Application callbacks for helper directives
        evaluator: Expression evaluator (default ``PythonEvaluator``)
        max_include_depth: Component/include nesting limit at render time
        max_extends_depth: ``@extends`` chain limit
        max_nesting_depth: Block nesting limit at parse time
        bound_attributes: Recognise ``:attr="expr"`` on plain HTML tags
        protect_code_blocks: Leave directives inside ``<pre>``/``<code>``
            untouched

    Example:
        >>> env = Environment(loader=FileSystemLoader("templates/"), cache_dir=".sigil-cache")
        >>> env.render("pages.home", {"user": user})
        '<!doctype html>...'
    """

    def __init__(
        self,
        loader: Loader | None = None,
        *,
        cache_dir: str | os.PathLike[str] | None = None,
        auto_reload: bool = True,
        component_paths: Sequence[str] = ("components", "layouts", "partials"),
        globals: Mapping[str, Any] | None = None,
        host: HostFunctions | None = None,
        evaluator: ExpressionEvaluator | None = None,
        max_include_depth: int = 50,
        max_extends_depth: int = 10,
        max_nesting_depth: int = 100,
        bound_attributes: bool = True,
        protect_code_blocks: bool = True,
    ) -> None:
        self.loader = loader
        self.auto_reload = auto_reload
        self.component_paths = tuple(component_paths)
        self.evaluator: ExpressionEvaluator = evaluator or PythonEvaluator()
        self.max_include_depth = max_include_depth
        self.max_extends_depth = max_extends_depth
        self.max_nesting_depth = max_nesting_depth
        self.bound_attributes = bound_attributes
        self.protect_code_blocks = protect_code_blocks

        self._host = host or HostFunctions()
        self.globals: dict[str, Any] = host_globals(self._host)
        if globals:
            self.globals.update(globals)

        self._bytecode_cache = BytecodeCache(cache_dir) if cache_dir is not None else None
        self._cache: dict[str, Template] = {}
        self._component_names: dict[str, str] = {}
        self.cache_stats: dict[str, int] = {"compiles": 0, "memory_hits": 0, "disk_hits": 0}

    @property
    def host(self) -> HostFunctions:
        return self._host

    @property
    def cache_dir(self) -> Path | None:
        return self._bytecode_cache.directory if self._bytecode_cache is not None else None

    # =========================================================================
    # Rendering
    # =========================================================================

    def render(
        self,
        name: str,
        data: Mapping[str, Any] | None = None,
        *,
        meta: Mapping[str, object] | None = None,
    ) -> str:
        """Render template ``name`` with ``data`` as the root frame.

        ``meta`` carries per-request values for host helpers (``csrf_token``,
        ``authenticated``, ``old_input``, ``errors``, ``translations``).

        Raises:
            TemplateNotFoundError: The template, a layout, component or
                include does not exist
            TemplateSyntaxError: A source in the chain fails to compile
            TemplateRuntimeError: Execution failed
        """
        return self.render_template(self.get_template(name), data, meta)

    def render_template(
        self,
        template: Template,
        data: Mapping[str, Any] | None = None,
        meta: Mapping[str, object] | None = None,
    ) -> str:
        """Execute an already-loaded template in a fresh render context.

        On failure the partial output is discarded before the error
        propagates.
        """
        with render_context(
            self,
            data,
            template_name=template.name,
            filename=template.filename,
            source=template.source,
            max_include_depth=self.max_include_depth,
            meta=meta,
        ) as rc:
            try:
                template.execute(rc)
            except BaseException:
                rc.output.discard()
                raise
            return rc.output.getvalue()

    # =========================================================================
    # Loading
    # =========================================================================

    def get_template(self, name: str) -> Template:
        """Compiled template for ``name``, from cache when still current."""
        template = self._cache.get(name)
        if template is not None:
            if not self.auto_reload or self._is_current(template.dependencies):
                self.cache_stats["memory_hits"] += 1
                return template
            logger.debug("template %s changed, reloading", name)

        template = self._load(name)
        self._cache[name] = template
        return template

    def get_component(self, name: str) -> Template:
        """Resolve ``<x-name>`` against ``component_paths``, first match wins.

        Raises:
            TemplateNotFoundError: No directory has the component; the error
                lists every candidate name
        """
        resolved = self._component_names.get(name)
        if resolved is not None and not self.auto_reload:
            return self.get_template(resolved)

        loader = self._require_loader(name)
        candidates = [f"{directory}.{name}" for directory in self.component_paths]
        for candidate in candidates:
            if loader.has_source(candidate):
                self._component_names[name] = candidate
                return self.get_template(candidate)
        searched = [
            location
            for candidate in candidates
            for location in _searched_locations(loader, candidate)
        ]
        raise TemplateNotFoundError(
            name,
            searched,
            message=f"Component '{name}' not found (searched: {', '.join(searched)})",
        )

    def load_tree(self, name: str) -> tuple[TemplateNode, str, str | None]:
        """Parse template ``name`` without merging layouts or compiling."""
        source, filename = self._require_loader(name).get_source(name)
        return self._parse(source, name, filename), source, filename

    def from_string(self, source: str, name: str | None = None) -> Template:
        """Compile a template from a string; the result is not cached.

        The template may ``@extends`` or include templates from the loader.

        Example:
            >>> env.from_string("Hello, {{ name }}!").render(name="World")
            'Hello, World!'
        """
        tree = self._parse(source, name, None)
        dependencies: dict[str, Any] = {}
        merged = self._resolve_layouts(tree, name, None, source, dependencies)
        code = self._compile(merged, name, None, source)
        return Template(
            self,
            code,
            name,
            None,
            source,
            props=merged.prop_defaults() if merged.props is not None else None,
            dependencies=dependencies,
        )

    def compile_to_source(self, name: str) -> str:
        """Python source generated for template ``name`` (diagnostics)."""
        dependencies: dict[str, Any] = {}
        tree, source, filename = self._load_tracked(name, dependencies)
        merged = self._resolve_layouts(tree, name, filename, source, dependencies)
        compiler = Compiler(self.evaluator)
        return ast.unparse(compiler.compile_module(merged, name, filename, source))

    def list_templates(self) -> list[str]:
        return self.loader.list_templates() if self.loader is not None else []

    def clear_cache(self) -> None:
        """Drop in-memory templates and delete every compiled artifact on disk."""
        self._cache.clear()
        self._component_names.clear()
        removed = self._bytecode_cache.clear() if self._bytecode_cache is not None else 0
        logger.debug("cleared template cache (%d artifact(s) removed)", removed)

    # =========================================================================
    # Internals
    # =========================================================================

    def _require_loader(self, name: str) -> Loader:
        if self.loader is None:
            raise TemplateNotFoundError(
                name, message=f"Template '{name}' not found: no loader configured"
            )
        return self.loader

    def _is_current(self, dependencies: Mapping[str, Any]) -> bool:
        loader = self.loader
        if loader is None:
            return True
        for dependency, fingerprint in dependencies.items():
            try:
                if loader.get_fingerprint(dependency) != fingerprint:
                    return False
            except TemplateNotFoundError:
                return False
        return True

    def _load(self, name: str) -> Template:
        loader = self._require_loader(name)
        if self._bytecode_cache is not None:
            unit = self._bytecode_cache.load(name)
            if unit is not None and self._is_current(unit.dependencies):
                source, filename = loader.get_source(name)
                self.cache_stats["disk_hits"] += 1
                logger.debug("loaded %s from disk cache", name)
                return Template(
                    self,
                    unit.code,
                    name,
                    filename,
                    source,
                    props=dict(unit.props) if unit.props is not None else None,
                    dependencies=unit.dependencies,
                )

        dependencies: dict[str, Any] = {}
        tree, source, filename = self._load_tracked(name, dependencies)
        merged = self._resolve_layouts(tree, name, filename, source, dependencies)
        code = self._compile(merged, name, filename, source)
        if self._bytecode_cache is not None:
            self._bytecode_cache.store(name, CachedUnit(code, dependencies, merged.props))
        return Template(
            self,
            code,
            name,
            filename,
            source,
            props=merged.prop_defaults() if merged.props is not None else None,
            dependencies=dependencies,
        )

    def _load_tracked(
        self, name: str, dependencies: dict[str, Any]
    ) -> tuple[TemplateNode, str, str | None]:
        """``load_tree`` that records the source fingerprint before reading it."""
        loader = self._require_loader(name)
        dependencies[name] = loader.get_fingerprint(name)
        return self.load_tree(name)

    def _resolve_layouts(
        self,
        tree: TemplateNode,
        name: str | None,
        filename: str | None,
        source: str | None,
        dependencies: dict[str, Any],
    ) -> TemplateNode:
        resolver = LayoutResolver(
            lambda layout: self._load_tracked(layout, dependencies),
            max_depth=self.max_extends_depth,
        )
        try:
            merged, _ = resolver.resolve(name, tree, source=source, filename=filename)
        except TemplateSyntaxError as exc:
            raise exc.with_template(name, filename, source) from exc
        return merged

    def _parse(self, source: str, name: str | None, filename: str | None) -> TemplateNode:
        return parse(
            source,
            name,
            filename,
            bound_attributes=self.bound_attributes,
            protect_code_blocks=self.protect_code_blocks,
            max_nesting_depth=self.max_nesting_depth,
        )

    def _compile(
        self,
        tree: TemplateNode,
        name: str | None,
        filename: str | None,
        source: str | None,
    ) -> types.CodeType:
        code = Compiler(self.evaluator).compile(tree, name, filename, source)
        self.cache_stats["compiles"] += 1
        return code

    def __repr__(self) -> str:
        return f"<Environment loader={self.loader!r} cache_dir={self.cache_dir}>"
