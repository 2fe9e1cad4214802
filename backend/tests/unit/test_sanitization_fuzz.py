"""Property-based fuzz tests for free-text sanitization and QR helpers.

Security: Uses Hypothesis to generate random Unicode text and verify
invariants that must hold for ANY input, not just hand-crafted examples.
These complement the example-based tests in test_text_sanitization.py,
test_qr_archive.py and test_code_generator.py.
"""

import re

from hypothesis import given, settings
from hypothesis import strategies as st

from guestlist.core.text_sanitization import (
    MAX_MESSAGE_LENGTH,
    sanitize_message,
    sanitize_text,
)
from guestlist.services.code_generator import extract_code, is_valid_code
from guestlist.services.qr_archive import slugify

# =============================================================================
# Strategies
# =============================================================================

# Broad Unicode text excluding surrogates (which Python can't represent in str)
unicode_text = st.text(
    alphabet=st.characters(blacklist_categories=("Cs",)),
    min_size=0,
    max_size=500,
)

# Text built from markup fragments and invisible characters
markup_text = st.text(
    alphabet=st.sampled_from(
        list("<>/!-=\"' abcscriptSTYLE\n\t")
        + ["\u200b", "\u202e", "\u2066", "\ufeff", "\x00", "\x1b", "\x7f"]
    ),
    min_size=0,
    max_size=300,
)

_INVISIBLE = re.compile("[\u00ad\u200b-\u200f\u202a-\u202e\u2060-\u2064\u2066-\u2069\ufeff]")
_CONTROL = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_SLUG = re.compile(r"^[a-z0-9]+(-[a-z0-9]+)*$")


# =============================================================================
# sanitize_text
# =============================================================================


class TestSanitizeTextProperties:
    """Invariants of sanitize_text over arbitrary input."""

    @given(text=st.one_of(unicode_text, markup_text))
    @settings(max_examples=300)
    def test_no_invisible_or_control_characters(self, text: str) -> None:
        result = sanitize_text(text)
        assert not _INVISIBLE.search(result)
        assert not _CONTROL.search(result)

    @given(text=st.one_of(unicode_text, markup_text))
    @settings(max_examples=300)
    def test_result_is_trimmed(self, text: str) -> None:
        result = sanitize_text(text)
        assert result == result.strip()

    @given(text=unicode_text, max_length=st.integers(min_value=0, max_value=200))
    def test_result_respects_max_length(self, text: str, max_length: int) -> None:
        assert len(sanitize_text(text, max_length)) <= max_length

    @given(text=unicode_text)
    def test_message_is_none_or_non_empty(self, text: str) -> None:
        result = sanitize_message(text)
        assert result is None or 0 < len(result) <= MAX_MESSAGE_LENGTH


# =============================================================================
# slugify / extract_code
# =============================================================================


class TestSlugifyProperties:
    """Archive entry names are always portable."""

    @given(name=unicode_text)
    @settings(max_examples=300)
    def test_slug_is_lowercase_ascii_with_single_hyphens(self, name: str) -> None:
        slug = slugify(name)
        assert _SLUG.fullmatch(slug)
        assert len(slug) <= 50


class TestExtractCodeProperties:
    """Scanner input never yields a malformed code."""

    @given(
        scanned=st.one_of(
            unicode_text,
            st.text(alphabet="0123456789abcdefABCDEF?=&code:/.[]", max_size=80),
        )
    )
    @settings(max_examples=300)
    def test_result_is_none_or_a_valid_code(self, scanned: str) -> None:
        code = extract_code(scanned)
        assert code is None or is_valid_code(code)
