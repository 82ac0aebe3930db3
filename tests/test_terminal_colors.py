"""Tests for terminal color utilities used in diagnostics."""

import pytest

from sigil.environment import terminal
from sigil.environment.exceptions import TemplateSyntaxError, UndefinedError


class TestColorDetection:
    """Test terminal color detection logic."""

    def test_no_color_disables(self, monkeypatch):
        monkeypatch.delenv("FORCE_COLOR", raising=False)
        monkeypatch.setenv("NO_COLOR", "1")
        assert terminal._detect() is False

    def test_force_color_wins_over_no_color(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "1")
        monkeypatch.setenv("FORCE_COLOR", "1")
        assert terminal._detect() is True

    def test_supports_color_reflects_cached_value(self, monkeypatch):
        monkeypatch.setattr(terminal, "_ENABLED", False)
        assert not terminal.supports_color()
        monkeypatch.setattr(terminal, "_ENABLED", True)
        assert terminal.supports_color()

    def test_colorize_returns_plain_when_disabled(self, monkeypatch):
        monkeypatch.setattr(terminal, "_ENABLED", False)
        result = terminal.colorize("Error", "bright_red", "bold")
        assert result == "Error"

    def test_colorize_adds_codes_when_enabled(self, monkeypatch):
        monkeypatch.setattr(terminal, "_ENABLED", True)
        result = terminal.colorize("Error", "bright_red", "bold")
        assert result == "\033[91m\033[1mError\033[0m"

    def test_unknown_style_is_plain(self, monkeypatch):
        monkeypatch.setattr(terminal, "_ENABLED", True)
        assert terminal.colorize("Error", "sparkly") == "Error"

    def test_strip_colors_removes_ansi_codes(self):
        assert terminal.strip_colors("\033[91m\033[1mError\033[0m") == "Error"


class TestSemanticHelpers:
    @pytest.mark.parametrize(
        ("helper", "code"),
        [
            (terminal.error_code, "\033[91m"),
            (terminal.location, "\033[36m"),
            (terminal.hint, "\033[32m"),
            (terminal.suggestion, "\033[92m"),
            (terminal.dim_text, "\033[2m"),
        ],
    )
    def test_helper_colors(self, monkeypatch, helper, code):
        monkeypatch.setattr(terminal, "_ENABLED", True)
        result = helper("text")
        assert code in result
        assert terminal.strip_colors(result) == "text"

    def test_format_error_header(self, monkeypatch):
        monkeypatch.setattr(terminal, "_ENABLED", False)
        assert terminal.format_error_header("S-RUN-001", "boom") == "S-RUN-001: boom"
        assert terminal.format_error_header(None, "boom") == "boom"

    def test_format_source_line_marks_error(self, monkeypatch):
        monkeypatch.setattr(terminal, "_ENABLED", False)
        assert terminal.format_source_line(7, "{{ x }}", is_error=True) == ">  7 | {{ x }}"
        assert terminal.format_source_line(8, "ok") == "   8 | ok"


class TestColoredErrors:
    def test_compact_format_is_colored_when_enabled(self, monkeypatch):
        monkeypatch.setattr(terminal, "_ENABLED", True)
        error = UndefinedError("usr", "pages.home", 3, available_names=frozenset({"user"}))
        compact = error.format_compact()
        assert "\033[" in compact
        plain = terminal.strip_colors(compact)
        assert "S-RUN-001" in plain
        assert "Did you mean 'user'?" in plain

    def test_syntax_error_str_has_no_color(self, monkeypatch):
        monkeypatch.setattr(terminal, "_ENABLED", True)
        error = TemplateSyntaxError("bad", 1, "pages.home", source="{{ x")
        assert "\033[" not in str(error)
