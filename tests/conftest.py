"""Pytest configuration and fixtures for Sigil tests."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from sigil import DictLoader, Environment

TEMPLATES = {
    "layouts.base": (
        "<html><head><title>@yield('title', 'Site')</title></head>"
        "<body>@yield('content')</body></html>"
    ),
    "layouts.app": (
        "@extends('layouts.base')"
        "@section('content')<main>@yield('main')</main>@endsection"
    ),
    "pages.home": (
        "@extends('layouts.base')"
        "@section('title', 'Home')"
        "@section('content')<p>Hello {{ name }}</p>@endsection"
    ),
    "pages.dashboard": (
        "@extends('layouts.app')@section('title', 'Dashboard')@section('main', 'Stats')"
    ),
    "components.button": (
        "@props({'type': 'button', 'variant': 'primary'})"
        '<button type="{{ type }}" class="btn btn-{{ variant }}">{{ slot }}</button>'
    ),
    "components.card": (
        "@props({'title': 'Untitled'})"
        "<div {{ attributes.merge({'class': 'card'}) }}>"
        "<h2>{{ title }}</h2>{{ slot }}"
        "@if(slots.has('footer'))<footer>{{ slots.footer }}</footer>@endif"
        "</div>"
    ),
    "components.alert": "<div class=\"alert\">{{ message }}</div>",
    "layouts.alert": "<div>layout alert</div>",
    "partials.nav": "<nav>{{ title }}</nav>",
}


@pytest.fixture
def env():
    """Create a basic Sigil Environment without a loader."""
    return Environment()


@pytest.fixture
def dict_env():
    """Create a Sigil Environment with a DictLoader holding shared templates."""
    return Environment(loader=DictLoader(dict(TEMPLATES)))


class TemplateDir:
    """Writes dotted template names as files under ``root``."""

    def __init__(self, root: Path, extension: str = ".sigil.html") -> None:
        self.root = root
        self.extension = extension

    def path(self, name: str) -> Path:
        parts = name.split(".")
        return self.root.joinpath(*parts[:-1], parts[-1] + self.extension)

    def write(self, name: str, source: str) -> Path:
        path = self.path(name)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(source, encoding="utf-8")
        return path

    def touch_later(self, name: str, seconds: int = 10) -> None:
        """Move a file's modification time forward (filesystem clocks are coarse)."""
        path = self.path(name)
        stat = path.stat()
        later = stat.st_mtime_ns + seconds * 1_000_000_000
        os.utime(path, ns=(later, later))


@pytest.fixture
def tmp_templates(tmp_path):
    """Empty template directory; write templates with ``tmp_templates.write``."""
    root = tmp_path / "templates"
    root.mkdir()
    return TemplateDir(root)


def assert_template_equal(template_result: str, expected: str) -> None:
    """Assert template result equals expected, normalizing whitespace.

    Args:
        template_result: The actual template rendering result.
        expected: The expected output.
    """
    actual_normalized = " ".join(template_result.split())
    expected_normalized = " ".join(expected.split())
    assert actual_normalized == expected_normalized, (
        f"Template output mismatch:\n"
        f"  Actual: {actual_normalized!r}\n"
        f"  Expected: {expected_normalized!r}"
    )


def assert_contains(template_result: str, *expected_parts: str) -> None:
    """Assert template result contains all expected parts."""
    for part in expected_parts:
        assert part in template_result, (
            f"Template output missing expected content:\n"
            f"  Missing: {part!r}\n"
            f"  Actual: {template_result!r}"
        )
