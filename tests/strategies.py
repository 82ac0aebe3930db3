"""Shared hypothesis strategies for Sigil property-based testing.

Provides reusable strategies that generate structurally valid template
inputs:

- **Lexer**: Plain text, interpolations and comments
- **Scopes**: Frame contents for isolation properties
- **Components**: Nesting depths for parser termination checks

These are building blocks -- individual test modules compose them into
property-specific strategies.
"""

from __future__ import annotations

from hypothesis import strategies as st

# ---------------------------------------------------------------------------
# Lexer strategies
# ---------------------------------------------------------------------------

# Plain text without any Sigil markers (no braces, no '@', no tags)
plain_text = st.text(
    alphabet=st.characters(
        blacklist_categories=("Cs",),  # no surrogates
        blacklist_characters="{}@<!\x00",
    ),
    min_size=1,
    max_size=200,
)

identifier = st.from_regex(r"[a-z][a-z0-9_]{0,12}", fullmatch=True)

sigil_echo = identifier.map(lambda name: f"{{{{ {name} }}}}")

_comment_body = st.from_regex(r"[a-zA-Z0-9_ ]{0,30}", fullmatch=True)
sigil_comment = _comment_body.map(lambda body: f"{{{{-- {body} --}}}}")

# Template fragments: plain text interleaved with echoes and comments
template_fragment = st.lists(
    st.one_of(plain_text, sigil_echo, sigil_comment),
    min_size=1,
    max_size=6,
).map("".join)

# Arbitrary input that might stress the lexer (fuzz-like)
arbitrary_template_source = st.text(
    alphabet=st.characters(blacklist_categories=("Cs",)),
    min_size=0,
    max_size=300,
)

# Text that may contain HTML-significant characters
html_text = st.text(
    alphabet=st.sampled_from(list("abc <>&\"'/=")),
    min_size=0,
    max_size=40,
)

# ---------------------------------------------------------------------------
# Scope strategies
# ---------------------------------------------------------------------------

frame_values = st.one_of(
    st.none(),
    st.booleans(),
    st.integers(min_value=-5, max_value=5),
    st.text(max_size=5),
)

frames = st.dictionaries(identifier, frame_values, max_size=6)

# ---------------------------------------------------------------------------
# Component strategies
# ---------------------------------------------------------------------------

nesting_depth = st.integers(min_value=1, max_value=30)
