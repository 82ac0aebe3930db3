"""Host helper functions and the default template globals.

Helper directives such as ``@csrf``, ``@auth`` and ``@lang`` need answers
only the embedding application has: is the user logged in, what is the
CSRF token, which environment is this. Those answers come from a
``HostFunctions`` instance attached to the ``Environment``; replace any
field to integrate with a framework.

The defaults read render metadata passed to ``Environment.render(...,
meta=...)`` through the active render context:

- ``authenticated``: truthy when a user is logged in
- ``csrf_token``: token for ``@csrf``
- ``old_input``: mapping of previously submitted fields
- ``translations``: mapping of translation key to message
- ``base_path``: prefix for ``path()``

Usage:
    Frameworks pass per-request values as metadata:

        html = env.render(
            "auth.login",
            {"form": form},
            meta={"csrf_token": session.csrf, "authenticated": user is not None},
        )

    Templates read them through directives or globals:

        @auth <a href="{{ path('logout') }}">Log out</a> @endauth
        <input name="email" value="{{ old('email') }}">
"""

from __future__ import annotations

import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from sigil.render_context import get_render_context


def _meta(key: str, default: Any = None) -> Any:
    ctx = get_render_context()
    if ctx is None:
        return default
    return ctx.get_meta(key, default)


def default_is_authenticated() -> bool:
    return bool(_meta("authenticated", False))


def default_translate(key: str, replacements: Mapping[str, Any] | None = None) -> str:
    """Look ``key`` up in the ``translations`` metadata and fill placeholders.

    Unknown keys translate to themselves. ``:name`` placeholders are replaced
    longest name first, so ``:names`` is not clobbered by ``:name``.

    Example:
        >>> default_translate("Hello :name", {"name": "Ada"})
        'Hello Ada'
    """
    translations = _meta("translations") or {}
    message = str(translations.get(key, key))
    for name in sorted(replacements or {}, key=len, reverse=True):
        message = message.replace(f":{name}", str(replacements[name]))
    return message


def default_old_input(field: str, default: Any = None) -> Any:
    old = _meta("old_input") or {}
    return old.get(field, default)


def default_environment() -> str:
    return os.environ.get("APP_ENV", "production")


def default_csrf_token() -> str | None:
    token = _meta("csrf_token")
    return str(token) if token else None


def default_resolve_path(path: str) -> str:
    """Join ``path`` onto the ``base_path`` metadata (default ``/``)."""
    base = str(_meta("base_path", "") or "").rstrip("/")
    return f"{base}/{str(path).lstrip('/')}"


@dataclass
class HostFunctions:
    """Application callbacks used by helper directives and globals.

    Example:
        >>> host = HostFunctions(is_authenticated=lambda: request.user.is_authenticated)
        >>> env = Environment(loader=loader, host=host)
    """

    is_authenticated: Callable[[], bool] = default_is_authenticated
    translate: Callable[[str, Mapping[str, Any]], str] = default_translate
    old_input: Callable[[str, Any], Any] = default_old_input
    environment: Callable[[], str] = default_environment
    csrf_token: Callable[[], str | None] = default_csrf_token
    resolve_path: Callable[[str], str] = default_resolve_path


def host_globals(host: HostFunctions) -> dict[str, Any]:
    """Expression globals backed by ``host``.

    Registered in every ``Environment``; user-supplied globals take
    precedence.
    """

    def trans(key: str, replacements: Mapping[str, Any] | None = None) -> str:
        return host.translate(key, replacements or {})

    def old(field: str, default: Any = None) -> Any:
        return host.old_input(field, default)

    return {
        "auth_check": host.is_authenticated,
        "trans": trans,
        "old": old,
        "app_env": host.environment,
        "csrf_token": host.csrf_token,
        "path": host.resolve_path,
    }


__all__ = [
    "HostFunctions",
    "default_csrf_token",
    "default_environment",
    "default_is_authenticated",
    "default_old_input",
    "default_resolve_path",
    "default_translate",
    "host_globals",
]
