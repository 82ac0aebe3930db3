"""On-disk cache of compiled templates.

Each compiled unit is stored at ``<cache_dir>/<dotted/name/as/dirs>.sigilc``
(``users.index`` -> ``users/index.sigilc``) as a small header followed by a
marshalled tuple:

    b"SIGILC" + format version + interpreter magic number
    marshal.dumps((dependencies, props, code))

``dependencies`` maps every source the unit was built from (the template
and each layout in its ``@extends`` chain) to the loader fingerprint it had
at compile time. The environment compares them with current fingerprints
to decide whether an artifact is stale.

Writes go to a temporary file in the target directory and are moved into
place with ``os.replace``, so readers never observe a partial artifact.
Concurrent writers race; the last one wins. Artifacts written by another
interpreter version, or that fail to unmarshal, are ignored and rewritten.
"""

from __future__ import annotations

import hashlib
import importlib.util
import logging
import marshal
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    import types

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1
SUFFIX = ".sigilc"
_HEADER = b"SIGILC" + bytes([FORMAT_VERSION]) + importlib.util.MAGIC_NUMBER


@dataclass(frozen=True, slots=True)
class CachedUnit:
    """A compiled template as stored on disk."""

    code: types.CodeType
    dependencies: dict[str, Any]
    props: tuple[tuple[str, Any], ...] | None = None


class BytecodeCache:
    """Filesystem store for compiled template code objects.

    Example:
        >>> cache = BytecodeCache(".sigil-cache")
        >>> cache.store("users.index", CachedUnit(code, {"users.index": 1700000000}))
        >>> cache.load("users.index").dependencies
        {'users.index': 1700000000}
    """

    def __init__(self, directory: str | os.PathLike[str]) -> None:
        self.directory = Path(directory)

    def path_for(self, name: str) -> Path:
        """Artifact path for a dotted template name."""
        parts = name.split(".")
        if any(not part or part in ("..", ".") or "/" in part or "\\" in part for part in parts):
            digest = hashlib.sha256(name.encode("utf-8")).hexdigest()
            return self.directory / "_hashed" / f"{digest}{SUFFIX}"
        return self.directory.joinpath(*parts[:-1], f"{parts[-1]}{SUFFIX}")

    def load(self, name: str) -> CachedUnit | None:
        """Read the artifact for ``name``; ``None`` if missing or unusable."""
        path = self.path_for(name)
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.warning("cannot read compiled template %s: %s", path, exc)
            return None

        if not data.startswith(_HEADER):
            logger.debug("ignoring %s: written by another version", path)
            return None
        try:
            dependencies, props, code = marshal.loads(data[len(_HEADER) :])
        except (EOFError, ValueError, TypeError) as exc:
            logger.warning("ignoring corrupt compiled template %s: %s", path, exc)
            return None
        if not isinstance(dependencies, dict) or not hasattr(code, "co_code"):
            logger.warning("ignoring corrupt compiled template %s: unexpected contents", path)
            return None
        return CachedUnit(code=code, dependencies=dependencies, props=props)

    def store(self, name: str, unit: CachedUnit) -> Path:
        """Atomically write the artifact for ``name``."""
        path = self.path_for(name)
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = _HEADER + marshal.dumps((unit.dependencies, unit.props, unit.code))
        with tempfile.NamedTemporaryFile(
            dir=path.parent,
            prefix=f".{path.stem}.",
            suffix=".tmp",
            delete=False,
        ) as handle:
            temp_path = handle.name
            try:
                handle.write(payload)
            except BaseException:
                handle.close()
                Path(temp_path).unlink(missing_ok=True)
                raise
        try:
            os.replace(temp_path, path)
        except OSError:
            Path(temp_path).unlink(missing_ok=True)
            raise
        logger.debug("stored compiled template %s at %s", name, path)
        return path

    def clear(self) -> int:
        """Delete every artifact under the cache directory; returns the count."""
        if not self.directory.is_dir():
            return 0
        removed = 0
        for path in self.directory.rglob(f"*{SUFFIX}"):
            path.unlink(missing_ok=True)
            removed += 1
        logger.debug("cleared %d compiled template(s) from %s", removed, self.directory)
        return removed

    def __repr__(self) -> str:
        return f"BytecodeCache({str(self.directory)!r})"
