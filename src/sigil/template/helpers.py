"""Runtime helper functions injected into the template namespace.

These functions are called by compiled template code at render time. All
per-render state arrives through the ``RenderContext`` argument (``_rc`` in
generated code); nothing here keeps module-level mutable state.

Thread-Safety:
All functions are stateless and safe for concurrent use.
"""

from __future__ import annotations

import pprint
import warnings
from collections import ChainMap
from collections.abc import Iterable, Mapping, Sequence
from typing import TYPE_CHECKING, Any

from sigil.environment.exceptions import (
    TemplateNotFoundError,
    UndefinedError,
    build_source_snippet,
)
from sigil.scope import MISSING, ScopeStack
from sigil.support.attributes import AttributeBag, class_list, style_list
from sigil.support.slots import Slot, SlotMap
from sigil.template.loop_context import LoopContext
from sigil.utils.html import Markup, html_escape, json_for_html, json_for_script, str_safe

if TYPE_CHECKING:
    from sigil.render_context import RenderContext

#: Builtins visible to template expressions after the frame and globals.
SAFE_BUILTINS: dict[str, Any] = {
    "abs": abs,
    "all": all,
    "any": any,
    "bool": bool,
    "dict": dict,
    "enumerate": enumerate,
    "filter": filter,
    "float": float,
    "format": format,
    "int": int,
    "isinstance": isinstance,
    "len": len,
    "list": list,
    "map": map,
    "max": max,
    "min": min,
    "range": range,
    "repr": repr,
    "reversed": reversed,
    "round": round,
    "set": set,
    "sorted": sorted,
    "str": str,
    "sum": sum,
    "tuple": tuple,
    "zip": zip,
}


# =============================================================================
# Name resolution
# =============================================================================


def lookup(rc: RenderContext, name: str) -> Any:
    """Resolve a free name: current frame, environment globals, safe builtins.

    Raises UndefinedError (with a "did you mean" suggestion) when the name
    is bound nowhere.
    """
    value = rc.scopes.lookup(name)
    if value is not MISSING:
        return value
    env = rc.environment
    env_globals: Mapping[str, Any] = env.globals if env is not None else {}
    if name in env_globals:
        return env_globals[name]
    if name in SAFE_BUILTINS:
        return SAFE_BUILTINS[name]
    lineno = rc.line or None
    snippet = build_source_snippet(rc.source, lineno) if rc.source and lineno else None
    raise UndefinedError(
        name,
        rc.template_name,
        lineno,
        available_names=frozenset(rc.scopes.current()) | frozenset(env_globals),
        source_snippet=snippet,
        template_stack=rc.template_stack,
    )


def bindings(rc: RenderContext) -> ChainMap[str, Any]:
    """Read-only view of every name an expression can see, in lookup order."""
    env = rc.environment
    return ChainMap(rc.scopes.current(), env.globals if env is not None else {}, SAFE_BUILTINS)


def evaluate(rc: RenderContext, source: str) -> Any:
    """Evaluate ``source`` with the environment's callable evaluator."""
    return rc.environment.evaluator.evaluate(source, bindings(rc))


def safe_getattr(obj: Any, name: str) -> Any:
    """Attribute access with item-access fallback.

    Resolution order:
    - Mappings: subscript first (user data), getattr fallback (methods).
      Keys like ``items`` resolve to user data, not ``dict.items``.
    - Objects: getattr first, subscript fallback for objects that
      support ``__getitem__``.
    """
    if isinstance(obj, Mapping):
        try:
            return obj[name]
        except KeyError:
            return getattr(obj, name)
    try:
        return getattr(obj, name)
    except AttributeError:
        if hasattr(obj, "__getitem__") and not isinstance(obj, (str, Sequence)):
            try:
                return obj[name]
            except (KeyError, TypeError):
                pass
        raise


# =============================================================================
# Loops and bindings
# =============================================================================


def iterate(value: Any) -> Iterable[Any]:
    """Iterable for ``@foreach``; ``None`` iterates as nothing."""
    if value is None:
        return ()
    return value


def bind(scopes: ScopeStack, names: tuple[str, ...], value: Any) -> None:
    """Bind a loop target (one name or an unpacked tuple) in the current frame."""
    if len(names) == 1:
        scopes.set(names[0], value)
        return
    values = tuple(value)
    if len(values) != len(names):
        raise ValueError(
            f"Cannot unpack {len(values)} value(s) into loop variables {', '.join(names)}"
        )
    for name, item in zip(names, values):
        scopes.set(name, item)


def enter_loop(scopes: ScopeStack, items: Any) -> LoopContext:
    """Create the ``loop`` variable, chained to an enclosing loop if any."""
    parent = scopes.lookup("loop")
    return LoopContext(items, parent if isinstance(parent, LoopContext) else None)


def exit_loop(scopes: ScopeStack, loop: LoopContext) -> None:
    """Restore the enclosing loop's ``loop`` variable after a loop ends."""
    if loop.parent is not None:
        scopes.set("loop", loop.parent)
    else:
        scopes.current().pop("loop", None)


# =============================================================================
# Components and includes
# =============================================================================


def interpolate(*parts: Any) -> Markup:
    """Join pre-escaped attribute value parts into markup."""
    return Markup("".join(str(part) for part in parts))


def container(value: Any) -> Markup:
    """Output for a bare ``{{ slot }}``, ``{{ slots }}`` or ``{{ attributes }}``.

    Only the component containers emit their own markup; any other value
    bound to one of those names is escaped.
    """
    if isinstance(value, (Slot, SlotMap, AttributeBag)):
        return value.__html__()
    return html_escape(value)


def render_component(
    rc: RenderContext,
    name: str,
    attributes: dict[str, Any],
    slots: SlotMap,
) -> Markup:
    """Resolve and render component ``name`` in an isolated frame.

    The frame holds the component's declared prop defaults overridden by
    every passed attribute, plus ``attributes`` (the non-prop attributes as
    an ``AttributeBag``), ``slot`` and ``slots``. The frame is popped and
    the capture region closed even when the component raises.
    """
    template = rc.environment.get_component(name)
    rc.check_include_depth(template.name or name)
    child = rc.child_context(template.name or name, template.filename, template.source)
    defaults = template.props or {}
    explicit = dict(attributes)
    explicit["attributes"] = AttributeBag(
        {key: value for key, value in attributes.items() if key not in defaults}
    )
    explicit["slot"] = slots.default
    explicit["slots"] = slots
    with rc.output.capture() as captured, rc.scopes.isolated(explicit, defaults):
        template.execute(child)
    return Markup(captured.value)


def include(
    rc: RenderContext,
    name: Any,
    values: Mapping[str, Any] | None = None,
    ignore_missing: bool = False,
) -> None:
    """Render template ``name`` into the current output in an inherited frame."""
    if not isinstance(name, str):
        raise TypeError(f"@include expects a template name string, got {type(name).__name__}")
    if values is not None and not isinstance(values, Mapping):
        raise TypeError(f"@include values must be a mapping, got {type(values).__name__}")
    try:
        template = rc.environment.get_template(name)
    except TemplateNotFoundError as exc:
        if ignore_missing and exc.name == name:
            return
        raise
    rc.check_include_depth(name)
    child = rc.child_context(name, template.filename, template.source)
    with rc.scopes.inherited(values):
        template.execute(child)


# =============================================================================
# Helper directives
# =============================================================================


def class_attr(rc: RenderContext, value: Any) -> Markup:
    """``@class(...)``"""
    return Markup(f'class="{html_escape(class_list(value))}"')


def style_attr(rc: RenderContext, value: Any) -> Markup:
    """``@style(...)``"""
    return Markup(f'style="{html_escape(style_list(value))}"')


def _flag(word: str):
    def helper(rc: RenderContext, condition: Any) -> str:
        return word if condition else ""

    helper.__name__ = f"{word}_attr"
    helper.__doc__ = f"``@{word}(condition)``: the bare word when truthy."
    return helper


checked_attr = _flag("checked")
selected_attr = _flag("selected")
disabled_attr = _flag("disabled")
readonly_attr = _flag("readonly")


def bound_attribute(name: str, value: Any) -> Markup:
    """Render ``:name="expr"`` on a plain HTML tag.

    ``class`` and ``style`` take conditional lists. Other attributes render
    ``name="value"``, the bare name for ``True`` and nothing for ``False``
    or ``None``.
    """
    if name == "class":
        value = class_list(value)
    elif name == "style":
        value = style_list(value)
    elif value is True:
        return Markup(name)
    if value is None or value is False or (name in ("class", "style") and not value):
        return Markup("")
    return Markup(f'{name}="{html_escape(value)}"')


def json_helper(rc: RenderContext, value: Any) -> Markup:
    """``@json(value)``"""
    return json_for_html(value)


def js_helper(rc: RenderContext, value: Any) -> Markup:
    """``@js(value)``"""
    return json_for_script(value)


def csrf_field(rc: RenderContext) -> Markup:
    """``@csrf``: hidden token input, or nothing (with a warning) without a token."""
    token = rc.environment.host.csrf_token()
    if not token:
        warnings.warn(
            f"@csrf used in '{rc.template_name}' but no CSRF token is available",
            UserWarning,
            stacklevel=2,
        )
        return Markup("")
    return Markup(f'<input type="hidden" name="_token" value="{html_escape(token)}">')


def method_field(rc: RenderContext, method: Any) -> Markup:
    """``@method('PUT')``"""
    return Markup(f'<input type="hidden" name="_method" value="{html_escape(method)}">')


def old_input(rc: RenderContext, field: Any, default: Any = None) -> Markup:
    """``@old('field', default)``"""
    return html_escape(rc.environment.host.old_input(field, default))


def translate(rc: RenderContext, key: Any, replacements: Mapping[str, Any] | None = None) -> Markup:
    """``@lang('key', {...})``"""
    return html_escape(rc.environment.host.translate(key, replacements or {}))


def upper(rc: RenderContext, value: Any) -> Markup:
    """``@upper(value)``"""
    return html_escape(str_safe(value).upper())


def dump(rc: RenderContext, value: Any) -> Markup:
    """``@dump(value)``: pretty-printed, escaped, inside ``<pre>``."""
    return Markup(f'<pre class="sigil-dump">{html_escape(pprint.pformat(value))}</pre>')


def env_matches(rc: RenderContext, environments: Any) -> bool:
    """``@env('production')`` / ``@env(['staging', 'production'])``"""
    current = rc.environment.host.environment()
    if isinstance(environments, str):
        return current == environments
    return current in tuple(environments)


def is_authenticated(rc: RenderContext) -> bool:
    return bool(rc.environment.host.is_authenticated())


def error_message(rc: RenderContext, field: Any) -> Any:
    """First validation message for ``field``, or ``None``.

    ``errors`` is read from the current frame, then from render metadata.
    It may be a mapping of field to message (or list of messages), or an
    object with ``has(field)`` and ``first(field)`` methods.
    """
    errors = rc.scopes.get("errors")
    if errors is None:
        errors = rc.get_meta("errors")
    if not errors:
        return None
    if isinstance(errors, Mapping):
        messages = errors.get(field)
        if not messages:
            return None
        if isinstance(messages, (list, tuple)):
            return messages[0]
        return messages
    has = getattr(errors, "has", None)
    first = getattr(errors, "first", None)
    if callable(has) and callable(first):
        return first(field) if has(field) else None
    raise TypeError(
        f"'errors' must be a mapping or provide has()/first(), got {type(errors).__name__}"
    )


# =============================================================================
# Shared Base Namespace
# =============================================================================
# Copied once per Template; read-only after module load. Generated code
# never reaches Python builtins directly: free names go through ``_lookup``.

STATIC_NAMESPACE: dict[str, Any] = {
    "__builtins__": {},
    "_escape": html_escape,
    "_str_safe": str_safe,
    "_Markup": Markup,
    "_lookup": lookup,
    "_evaluate": evaluate,
    "_getattr": safe_getattr,
    "_iter": iterate,
    "_bind": bind,
    "_enter_loop": enter_loop,
    "_exit_loop": exit_loop,
    "_interpolate": interpolate,
    "_container": container,
    "_component": render_component,
    "_include": include,
    "_Slot": Slot,
    "_SlotMap": SlotMap,
    "_bound_attr": bound_attribute,
    "_env_matches": env_matches,
    "_auth_check": is_authenticated,
    "_error_message": error_message,
}

#: Helper directive name -> namespace name of its runtime function.
HELPER_FUNCTIONS: dict[str, str] = {
    "class": "_h_class",
    "style": "_h_style",
    "checked": "_h_checked",
    "selected": "_h_selected",
    "disabled": "_h_disabled",
    "readonly": "_h_readonly",
    "json": "_h_json",
    "js": "_h_js",
    "csrf": "_h_csrf",
    "method": "_h_method",
    "old": "_h_old",
    "lang": "_h_lang",
    "upper": "_h_upper",
    "dump": "_h_dump",
}

STATIC_NAMESPACE.update(
    {
        "_h_class": class_attr,
        "_h_style": style_attr,
        "_h_checked": checked_attr,
        "_h_selected": selected_attr,
        "_h_disabled": disabled_attr,
        "_h_readonly": readonly_attr,
        "_h_json": json_helper,
        "_h_js": js_helper,
        "_h_csrf": csrf_field,
        "_h_method": method_field,
        "_h_old": old_input,
        "_h_lang": translate,
        "_h_upper": upper,
        "_h_dump": dump,
    }
)
