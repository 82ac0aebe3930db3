"""Tests for the Sigil lexer."""

from __future__ import annotations

import pytest
from hypothesis import given, settings

from sigil._types import TokenType
from sigil.environment.exceptions import ErrorCode, TemplateSyntaxError
from sigil.lexer import Lexer, tokenize

from .strategies import arbitrary_template_source, plain_text, sigil_echo, template_fragment


def kinds(source: str, **options) -> list[str]:
    return [t.type.name for t in tokenize(source, **options)]


class TestTokenKinds:
    def test_text_and_echo(self):
        assert kinds("Hello {{ name }}!") == ["DATA", "ECHO", "DATA", "EOF"]

    def test_raw_echo(self):
        tokens = tokenize("{!! html !!}")
        assert tokens[0].type is TokenType.RAW_ECHO
        assert tokens[0].value == "html"

    def test_echo_with_nested_braces(self):
        tokens = tokenize("{{ {'a': {'b': 1}}['a'] }}")
        assert tokens[0].type is TokenType.ECHO
        assert tokens[0].value == "{'a': {'b': 1}}['a']"

    def test_echo_with_closing_braces_in_string(self):
        tokens = tokenize("{{ '}}' }}after")
        assert tokens[0].value == "'}}'"
        assert tokens[1].value == "after"

    def test_directive_with_arguments(self):
        token = tokenize("@if(in_list(x, [1, 2]))")[0]
        assert token.type is TokenType.DIRECTIVE
        assert token.value == "if"
        assert token.args == "in_list(x, [1, 2])"

    def test_directive_space_before_arguments(self):
        token = tokenize("@if (x)")[0]
        assert token.args == "x"

    def test_directive_without_arguments(self):
        tokens = tokenize("@else")
        assert tokens[0].type is TokenType.DIRECTIVE
        assert tokens[0].args is None

    def test_optional_arguments(self):
        plain, conditional = tokenize("@break"), tokenize("@break(x > 1)")
        assert plain[0].args is None
        assert conditional[0].args == "x > 1"

    def test_unknown_directive_is_text(self):
        assert kinds("@media print") == ["DATA", "EOF"]

    def test_email_address_is_text(self):
        tokens = tokenize("mail user@if.example")
        assert [t.type for t in tokens] == [TokenType.DATA, TokenType.EOF]
        assert tokens[0].value == "mail user@if.example"

    def test_double_at_escapes_directive(self):
        tokens = tokenize("@@if(x)")
        assert tokens[0].type is TokenType.DATA
        assert tokens[0].value == "@if(x)"

    def test_positions(self):
        tokens = tokenize("line one\n  {{ x }}")
        echo = tokens[1]
        assert (echo.lineno, echo.col_offset) == (2, 2)


class TestComments:
    def test_comment_is_dropped(self):
        tokens = tokenize("a{{-- hidden {{ x }} --}}b")
        assert [t.type for t in tokens] == [TokenType.DATA, TokenType.EOF]
        assert tokens[0].value == "ab"

    def test_unclosed_comment(self):
        with pytest.raises(TemplateSyntaxError) as exc_info:
            tokenize("a {{-- never closed")
        assert exc_info.value.code is ErrorCode.UNCLOSED_COMMENT


class TestProtectedRegions:
    def test_verbatim(self):
        tokens = tokenize("@verbatim{{ x }} @if(y)@endverbatim")
        assert tokens[0].type is TokenType.RAW
        assert tokens[0].value == "{{ x }} @if(y)"

    def test_unclosed_verbatim(self):
        with pytest.raises(TemplateSyntaxError) as exc_info:
            tokenize("@verbatim {{ x }}")
        assert exc_info.value.code is ErrorCode.UNCLOSED_VERBATIM

    def test_code_block_protected(self):
        tokens = tokenize("<code>@if(x) {{ y }}</code>")
        assert tokens[0].type is TokenType.RAW
        assert tokens[0].value == "<code>@if(x) {{ y }}</code>"

    def test_code_block_protection_disabled(self):
        assert "ECHO" in kinds("<code>{{ y }}</code>", protect_code_blocks=False)


class TestComponentTags:
    def test_component_open_and_close(self):
        tokens = tokenize('<x-alert type="error">Oops</x-alert>')
        assert tokens[0].type is TokenType.COMPONENT_OPEN
        assert tokens[0].value == "alert"
        assert tokens[0].args.strip() == 'type="error"'
        assert tokens[2].type is TokenType.COMPONENT_CLOSE

    def test_self_closing_component(self):
        token = tokenize('<x-icon name="star" />')[0]
        assert token.self_closing
        assert token.args.strip() == 'name="star"'

    def test_dotted_component_name(self):
        assert tokenize("<x-forms.input/>")[0].value == "forms.input"

    def test_named_slot_tags(self):
        tokens = tokenize("<x-slot:footer>F</x-slot:footer>")
        assert tokens[0].type is TokenType.SLOT_OPEN
        assert tokens[0].value == "footer"
        assert tokens[2].type is TokenType.SLOT_CLOSE

    def test_unclosed_component_tag(self):
        with pytest.raises(TemplateSyntaxError) as exc_info:
            tokenize('<x-alert type="error"')
        assert exc_info.value.code is ErrorCode.UNCLOSED_TAG


class TestBoundAttributes:
    def test_bound_attribute_on_plain_tag(self):
        tokens = tokenize('<div :class="classes">x</div>')
        bound = [t for t in tokens if t.type is TokenType.BOUND_ATTR]
        assert len(bound) == 1
        assert bound[0].value == "class"
        assert bound[0].args == "classes"

    def test_bound_attributes_can_be_disabled(self):
        assert "BOUND_ATTR" not in kinds('<div :class="c"></div>', bound_attributes=False)

    def test_double_colon_left_alone(self):
        assert "BOUND_ATTR" not in kinds('<div ::class="c"></div>')


class TestUnterminated:
    @pytest.mark.parametrize(
        ("source", "code"),
        [
            ("{{ name", ErrorCode.UNCLOSED_ECHO),
            ("{!! name", ErrorCode.UNCLOSED_ECHO),
            ("@if(x", ErrorCode.UNCLOSED_ARGUMENTS),
            ("@if", ErrorCode.UNCLOSED_ARGUMENTS),
        ],
    )
    def test_raises_with_code(self, source, code):
        with pytest.raises(TemplateSyntaxError) as exc_info:
            tokenize(source)
        assert exc_info.value.code is code

    def test_error_points_at_opening(self):
        with pytest.raises(TemplateSyntaxError) as exc_info:
            Lexer("ok\n  {{ broken", name="pages.home").tokenize()
        error = exc_info.value
        assert error.lineno == 2
        assert error.col_offset == 2
        assert "pages.home:2" in str(error)


class TestLexerProperties:
    """Property-based lexer invariants."""

    @given(source=plain_text)
    @settings(max_examples=200)
    def test_plain_text_roundtrip(self, source: str) -> None:
        """Text without markers produces DATA tokens with the original content."""
        tokens = tokenize(source)
        data = "".join(t.value for t in tokens if t.type is TokenType.DATA)
        assert data == source

    @given(source=sigil_echo)
    def test_echo_is_one_token(self, source: str) -> None:
        tokens = tokenize(source)
        assert [t.type for t in tokens] == [TokenType.ECHO, TokenType.EOF]

    @given(source=template_fragment)
    @settings(max_examples=200)
    def test_fragments_tokenize(self, source: str) -> None:
        tokens = tokenize(source)
        assert tokens[-1].type is TokenType.EOF

    @given(source=arbitrary_template_source)
    @settings(max_examples=300)
    def test_no_unhandled_crash(self, source: str) -> None:
        """The lexer either tokenizes or raises TemplateSyntaxError."""
        try:
            tokens = tokenize(source)
        except TemplateSyntaxError:
            return
        assert tokens[-1].type is TokenType.EOF

    @given(source=arbitrary_template_source)
    @settings(max_examples=100)
    def test_deterministic(self, source: str) -> None:
        try:
            first = tokenize(source)
        except TemplateSyntaxError:
            return
        assert tokenize(source) == first
