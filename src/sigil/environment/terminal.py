"""ANSI colouring for Sigil diagnostics.

Colour is used only when stderr is a terminal. ``NO_COLOR`` turns it off,
``FORCE_COLOR`` turns it on regardless of the terminal check.
"""

from __future__ import annotations

import os
import re
import sys

_CODES = {
    "reset": "\033[0m",
    "bold": "\033[1m",
    "dim": "\033[2m",
    "cyan": "\033[36m",
    "yellow": "\033[33m",
    "green": "\033[32m",
    "bright_red": "\033[91m",
    "bright_green": "\033[92m",
}

_ANSI_RE = re.compile(r"\x1B\[[0-?]*[ -/]*[@-~]")


def _detect() -> bool:
    if os.environ.get("FORCE_COLOR"):
        return True
    if os.environ.get("NO_COLOR"):
        return False
    stream = sys.stderr
    return bool(stream is not None and hasattr(stream, "isatty") and stream.isatty())


_ENABLED = _detect()


def supports_color() -> bool:
    """Whether diagnostics are being coloured."""
    return _ENABLED


def colorize(text: str, *styles: str) -> str:
    """Wrap ``text`` in the given styles when colour is enabled.

    Example:
        >>> colorize("error", "bright_red", "bold")  # doctest: +SKIP
        '\\x1b[91m\\x1b[1merror\\x1b[0m'
    """
    if not _ENABLED or not styles:
        return text
    prefix = "".join(_CODES.get(style, "") for style in styles)
    if not prefix:
        return text
    return f"{prefix}{text}{_CODES['reset']}"


def strip_colors(text: str) -> str:
    """Remove ANSI escape sequences."""
    return _ANSI_RE.sub("", text)


def error_code(text: str) -> str:
    return colorize(text, "bright_red", "bold")


def location(text: str) -> str:
    return colorize(text, "cyan")


def hint(text: str) -> str:
    return colorize(text, "green")


def suggestion(text: str) -> str:
    return colorize(text, "bright_green", "bold")


def dim_text(text: str) -> str:
    return colorize(text, "dim")


def format_error_header(code: str | None, message: str) -> str:
    """Prefix ``message`` with a coloured error code, if there is one."""
    if code:
        return f"{error_code(code)}: {message}"
    return message


def format_source_line(lineno: int, content: str, *, is_error: bool = False) -> str:
    """Render one numbered source line; the failing line gets a ``>`` marker."""
    marker = ">" if is_error else " "
    number = colorize(f"{marker}{lineno:>3}", "yellow")
    body = colorize(content, "bright_red") if is_error else dim_text(content)
    return f"{number} | {body}"
