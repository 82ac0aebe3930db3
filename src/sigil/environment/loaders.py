"""Template loaders for the Sigil environment.

Loaders map dotted logical names (``users.index``) to template source.
Every loader implements:

- ``get_source(name)`` returning ``(source, filename)``
- ``has_source(name)``
- ``get_fingerprint(name)``: a value that changes whenever the source does
- ``list_templates()``

Built-in Loaders:
- `FileSystemLoader`: Load from filesystem directories
- `DictLoader`: Load from an in-memory dictionary (testing/embedded)
- `ChoiceLoader`: Try multiple loaders in order (theme fallback)

Custom Loaders:
Any object with the four methods above works:
    ```python
    class DatabaseLoader:
        def get_source(self, name: str) -> tuple[str, str | None]:
            row = db.query("SELECT source FROM templates WHERE name = ?", name)
            if not row:
                raise TemplateNotFoundError(name, [f"db://{name}"])
            return row.source, f"db://{name}"

        def has_source(self, name: str) -> bool: ...
        def get_fingerprint(self, name: str) -> int: ...
        def list_templates(self) -> list[str]: ...
    ```

Thread-Safety:
All built-in loaders are safe for concurrent ``get_source()`` calls.
"""

from __future__ import annotations

import zlib
from difflib import get_close_matches
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from sigil.environment.exceptions import TemplateNotFoundError


@runtime_checkable
class Loader(Protocol):
    """Interface the environment expects from a loader."""

    def get_source(self, name: str) -> tuple[str, str | None]: ...

    def has_source(self, name: str) -> bool: ...

    def get_fingerprint(self, name: str) -> Any: ...

    def list_templates(self) -> list[str]: ...


def _name_parts(name: str) -> list[str] | None:
    """Split a dotted name into path segments, or ``None`` if malformed."""
    parts = name.split(".")
    for part in parts:
        if not part or "/" in part or "\\" in part:
            return None
    return parts


class FileSystemLoader:
    """Load templates from filesystem directories.

    ``users.index`` maps to ``users/index.sigil.html`` under the first search
    path that has it.

    Search Order:
        Directories are searched in order. First match wins:
            ```python
            loader = FileSystemLoader(["themes/custom/", "themes/default/"])
            # Looks in themes/custom/ first, then themes/default/
            ```

    Example:
        >>> loader = FileSystemLoader("templates/")
        >>> source, filename = loader.get_source("pages.about")
        >>> filename
        'templates/pages/about.sigil.html'

    Raises:
        TemplateNotFoundError: If the template is in no search path; the
            error lists every path tried
    """

    __slots__ = ("_encoding", "_extension", "_paths")

    def __init__(
        self,
        paths: str | Path | list[str | Path],
        extension: str = ".sigil.html",
        encoding: str = "utf-8",
    ):
        if isinstance(paths, (str, Path)):
            paths = [paths]
        self._paths = [Path(p) for p in paths]
        self._extension = extension
        self._encoding = encoding

    def candidates(self, name: str) -> list[Path]:
        """Every path ``name`` may live at, in search order."""
        parts = _name_parts(name)
        if parts is None:
            return []
        relative = Path(*parts[:-1], parts[-1] + self._extension)
        return [base / relative for base in self._paths]

    def _find(self, name: str) -> Path:
        candidates = self.candidates(name)
        for path in candidates:
            if path.is_file():
                return path
        raise TemplateNotFoundError(name, [str(path) for path in candidates])

    def get_source(self, name: str) -> tuple[str, str]:
        """Load template source from the filesystem."""
        path = self._find(name)
        return path.read_text(self._encoding), str(path)

    def has_source(self, name: str) -> bool:
        return any(path.is_file() for path in self.candidates(name))

    def get_fingerprint(self, name: str) -> int:
        """Last-modified time of the resolved file, in nanoseconds."""
        return self._find(name).stat().st_mtime_ns

    def list_templates(self) -> list[str]:
        """Dotted names of every template in the search paths."""
        templates: set[str] = set()
        for base in self._paths:
            if not base.is_dir():
                continue
            for path in base.rglob(f"*{self._extension}"):
                relative = path.relative_to(base).as_posix()
                stem = relative[: -len(self._extension)]
                templates.add(stem.replace("/", "."))
        return sorted(templates)


class DictLoader:
    """Load templates from an in-memory dictionary.

    Maps template names to source strings. Useful for testing, embedded
    templates, or dynamically generated templates. The fingerprint is a
    checksum of the source, so replacing an entry invalidates cached
    compilations.

    Example:
        >>> loader = DictLoader({
        ...     "layouts.base": "<html>@yield('content')</html>",
        ...     "pages.home": "@extends('layouts.base') @section('content', 'Hi')",
        ... })
        >>> Environment(loader=loader).render("pages.home")
        '<html>Hi</html>'

    Raises:
        TemplateNotFoundError: If the name is not in the mapping
    """

    __slots__ = ("_mapping",)

    def __init__(self, mapping: dict[str, str]):
        self._mapping = mapping

    def get_source(self, name: str) -> tuple[str, None]:
        if name not in self._mapping:
            available = sorted(self._mapping.keys())
            msg = f"Template '{name}' not found"
            matches = get_close_matches(name, available, n=1, cutoff=0.6)
            if matches:
                msg += f". Did you mean '{matches[0]}'?"
            raise TemplateNotFoundError(name, [name], message=msg)
        return self._mapping[name], None

    def has_source(self, name: str) -> bool:
        return name in self._mapping

    def get_fingerprint(self, name: str) -> int:
        source, _ = self.get_source(name)
        return zlib.crc32(source.encode("utf-8"))

    def list_templates(self) -> list[str]:
        return sorted(self._mapping.keys())


class ChoiceLoader:
    """Try multiple loaders in order, returning the first match.

    Useful for theme fallback patterns where a custom theme overrides
    a subset of templates and the default theme provides the rest.

    Example:
        >>> custom = DictLoader({"partials.nav": "<nav>Custom</nav>"})
        >>> default = DictLoader({
        ...     "partials.nav": "<nav>Default</nav>",
        ...     "partials.footer": "<footer>Default</footer>",
        ... })
        >>> env = Environment(loader=ChoiceLoader([custom, default]))
        >>> env.render("partials.nav")     # from custom
        '<nav>Custom</nav>'
        >>> env.render("partials.footer")  # from default
        '<footer>Default</footer>'

    Raises:
        TemplateNotFoundError: If no loader can find the template; the error
            lists the candidates of every loader

    Thread-Safety:
        Safe if all child loaders are thread-safe.
    """

    __slots__ = ("_loaders",)

    def __init__(self, loaders: list[Loader]):
        self._loaders = loaders

    def _owner(self, name: str) -> Loader:
        candidates: list[str] = []
        for loader in self._loaders:
            if loader.has_source(name):
                return loader
            try:
                loader.get_source(name)
            except TemplateNotFoundError as exc:
                candidates.extend(exc.candidates)
            else:
                return loader
        raise TemplateNotFoundError(name, candidates)

    def get_source(self, name: str) -> tuple[str, str | None]:
        """Try each loader in order, return first match."""
        return self._owner(name).get_source(name)

    def has_source(self, name: str) -> bool:
        return any(loader.has_source(name) for loader in self._loaders)

    def get_fingerprint(self, name: str) -> Any:
        return self._owner(name).get_fingerprint(name)

    def list_templates(self) -> list[str]:
        """Merge template lists from all loaders (deduplicated, sorted)."""
        templates: set[str] = set()
        for loader in self._loaders:
            templates.update(loader.list_templates())
        return sorted(templates)


__all__ = ["ChoiceLoader", "DictLoader", "FileSystemLoader", "Loader"]
