"""Tests for guest code issuance and QR invitation rendering.

Covers:
- issue_code: format and uniqueness over a large sample
- generate_unique_code: retry on collision, bounded attempts
- build_invitation_url / qr_public_id: URL shape, code never in the file name
- render_invitation_qr: PNG output
- extract_code: raw codes and scanned URLs
"""

import re
from unittest.mock import patch

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from guestlist.core.errors import ConflictError
from guestlist.services import code_generator
from guestlist.services.code_generator import (
    build_invitation_url,
    extract_code,
    generate_unique_code,
    is_valid_code,
    issue_code,
    qr_public_id,
    render_invitation_qr,
)

_PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
_CODE_RE = re.compile(r"^[0-9a-f]{12,32}$")


# =============================================================================
# issue_code
# =============================================================================


class TestIssueCode:
    """Tests for random code generation."""

    def test_default_code_is_16_lowercase_hex_chars(self) -> None:
        """Default codes carry 64 bits of entropy."""
        code = issue_code()
        assert len(code) == 16
        assert _CODE_RE.fullmatch(code)

    def test_ten_thousand_codes_never_collide(self) -> None:
        """10,000 draws produce 10,000 distinct codes."""
        codes = {issue_code() for _ in range(10_000)}
        assert len(codes) == 10_000

    def test_every_code_matches_the_accepted_shape(self) -> None:
        """Generated codes always pass the guest code validator."""
        assert all(is_valid_code(issue_code()) for _ in range(1_000))


class TestIsValidCode:
    """Tests for the code shape check."""

    @pytest.mark.parametrize(
        "code",
        ["a1b2c3d4e5f6", "0123456789abcdef", "f" * 32],
    )
    def test_accepts_12_to_32_lowercase_hex(self, code: str) -> None:
        assert is_valid_code(code)

    @pytest.mark.parametrize(
        "code",
        ["", "abc123", "a1b2c3d4e5f", "f" * 33, "A1B2C3D4E5F6", "g1b2c3d4e5f6", "a1b2c3d4e5f6/"],
    )
    def test_rejects_other_strings(self, code: str) -> None:
        assert not is_valid_code(code)


# =============================================================================
# generate_unique_code
# =============================================================================


class TestGenerateUniqueCode:
    """Tests for uniqueness-checked code generation."""

    async def test_returns_unused_code(
        self, db_session: AsyncSession, make_guest
    ) -> None:
        """A fresh code is not assigned to any existing guest."""
        existing = await make_guest()
        code = await generate_unique_code(db_session)
        assert code != existing.unique_code
        assert is_valid_code(code)

    async def test_retries_after_collision(
        self, db_session: AsyncSession, make_guest
    ) -> None:
        """A colliding draw is discarded and the next one is used."""
        existing = await make_guest(code="aaaaaaaaaaaaaaaa")
        draws = iter([existing.unique_code, "bbbbbbbbbbbbbbbb"])

        with patch.object(code_generator, "issue_code", side_effect=lambda: next(draws)):
            code = await generate_unique_code(db_session)

        assert code == "bbbbbbbbbbbbbbbb"

    async def test_exhausted_attempts_raise_conflict(
        self, db_session: AsyncSession, make_guest
    ) -> None:
        """After max_attempts collisions the failure is reported, not swallowed."""
        existing = await make_guest(code="cccccccccccccccc")

        with (
            patch.object(
                code_generator, "issue_code", return_value=existing.unique_code
            ) as mock_issue,
            pytest.raises(ConflictError) as exc_info,
        ):
            await generate_unique_code(db_session, max_attempts=5)

        assert exc_info.value.code == "CODE_GENERATION_FAILED"
        assert exc_info.value.status_code == 409
        assert mock_issue.call_count == 5


# =============================================================================
# URLs and public ids
# =============================================================================


class TestInvitationUrl:
    """Tests for invitation URL and QR file naming."""

    def test_url_carries_the_code_as_query_parameter(self) -> None:
        url = build_invitation_url("https://party.example.com", "0123456789abcdef")
        assert url == "https://party.example.com/?code=0123456789abcdef"

    def test_trailing_slash_on_base_url_is_not_doubled(self) -> None:
        url = build_invitation_url("https://party.example.com/", "0123456789abcdef")
        assert url == "https://party.example.com/?code=0123456789abcdef"

    def test_public_id_is_stable_and_hides_the_code(self) -> None:
        """The public id is deterministic and never contains the code."""
        code = "0123456789abcdef"
        public_id = qr_public_id(code)
        assert public_id == qr_public_id(code)
        assert len(public_id) == 32
        assert code not in public_id

    def test_distinct_codes_have_distinct_public_ids(self) -> None:
        assert qr_public_id("0123456789abcdef") != qr_public_id("fedcba9876543210")


class TestRenderInvitationQr:
    """Tests for QR image rendering."""

    def test_renders_png(self) -> None:
        png = render_invitation_qr("0123456789abcdef", "https://party.example.com")
        assert png.startswith(_PNG_SIGNATURE)
        assert len(png) > 100


# =============================================================================
# extract_code
# =============================================================================


class TestExtractCode:
    """Tests for parsing scanner input."""

    def test_raw_code_is_returned(self) -> None:
        assert extract_code("0123456789abcdef") == "0123456789abcdef"

    def test_raw_code_is_lowercased_and_trimmed(self) -> None:
        assert extract_code("  0123456789ABCDEF\n") == "0123456789abcdef"

    def test_code_is_read_from_invitation_url(self) -> None:
        url = build_invitation_url("https://party.example.com", "0123456789abcdef")
        assert extract_code(url) == "0123456789abcdef"

    def test_code_is_read_among_other_query_parameters(self) -> None:
        url = "https://party.example.com/?lang=fr&code=0123456789abcdef"
        assert extract_code(url) == "0123456789abcdef"

    @pytest.mark.parametrize(
        "scanned",
        [
            "",
            "   ",
            "hello",
            "https://party.example.com/",
            "https://party.example.com/?code=",
            "https://party.example.com/?code=not-a-code",
        ],
    )
    def test_malformed_input_returns_none(self, scanned: str) -> None:
        assert extract_code(scanned) is None
