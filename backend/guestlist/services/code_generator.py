"""Guest code issuance and QR invitation rendering.

A guest code is a random lowercase hex string. It is the only credential of
the guest tier, so it comes from the secrets module and is checked for
uniqueness against the store before use.

QR images encode the invitation URL carrying the code. Stored images are
named after a hash of the code (the public id) so that listing or guessing
static file paths never reveals a code.
"""

import hashlib
import io
import logging
import re
import secrets
from urllib.parse import parse_qs, urlsplit

import qrcode
from qrcode.constants import ERROR_CORRECT_L
from sqlalchemy.ext.asyncio import AsyncSession

from guestlist.core.errors import ConflictError
from guestlist.repositories.guest_repository import GuestRepository

logger = logging.getLogger(__name__)

# 8 random bytes -> 16 hex characters (64 bits)
DEFAULT_CODE_BYTES = 8
DEFAULT_MAX_ATTEMPTS = 5

CODE_PATTERN = re.compile(r"^[0-9a-f]{12,32}$")

# Length of the hashed public id used in QR file names
_PUBLIC_ID_LENGTH = 32


def issue_code(nbytes: int = DEFAULT_CODE_BYTES) -> str:
    """Draw a random lowercase hex code.

    Args:
        nbytes: Number of random bytes (the code has 2 * nbytes characters).

    Returns:
        Hex code.
    """
    return secrets.token_hex(nbytes)


def is_valid_code(code: str) -> bool:
    """Whether a string has the shape of a guest code (12-32 lowercase hex)."""
    return bool(CODE_PATTERN.fullmatch(code))


async def generate_unique_code(
    db: AsyncSession,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
) -> str:
    """Draw codes until one is not assigned to any guest.

    Args:
        db: Async database session.
        max_attempts: Number of draws before giving up.

    Returns:
        An unused code.

    Raises:
        ConflictError: If every draw collided with an existing code.
    """
    for attempt in range(1, max_attempts + 1):
        code = issue_code()
        if not await GuestRepository.code_exists(db, code):
            return code
        logger.warning("Generated guest code collided (attempt %d)", attempt)

    logger.error("Could not generate a unique guest code in %d attempts", max_attempts)
    raise ConflictError(
        code="CODE_GENERATION_FAILED",
        message="Could not generate a unique guest code, please retry",
    )


def build_invitation_url(base_url: str, code: str) -> str:
    """Build the invitation URL a QR code points to.

    Args:
        base_url: Public front-end URL.
        code: Guest code.

    Returns:
        URL of the form "{base_url}/?code={code}".
    """
    return f"{base_url.rstrip('/')}/?code={code}"


def qr_public_id(code: str) -> str:
    """Derive the public id of a code's QR image.

    Args:
        code: Guest code.

    Returns:
        First 32 hex characters of SHA-256(code).
    """
    return hashlib.sha256(code.encode()).hexdigest()[:_PUBLIC_ID_LENGTH]


def render_invitation_qr(code: str, base_url: str) -> bytes:
    """Render the invitation QR code of one guest as PNG.

    Args:
        code: Guest code.
        base_url: Public front-end URL.

    Returns:
        PNG image bytes encoding only this guest's invitation URL.
    """
    qr = qrcode.QRCode(
        version=1,
        error_correction=ERROR_CORRECT_L,
        box_size=10,
        border=4,
    )
    qr.add_data(build_invitation_url(base_url, code))
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")
    img_buffer = io.BytesIO()
    img.save(img_buffer, format="PNG")
    return img_buffer.getvalue()


def extract_code(scanned: str) -> str | None:
    """Extract a guest code from scanner input.

    Scanners return either the raw code or the full invitation URL.

    Args:
        scanned: Text read from the QR code or typed by hand.

    Returns:
        Lowercase code, or None if no well-formed code was found.
    """
    text = scanned.strip()
    if not text:
        return None

    if "code=" in text:
        try:
            query = urlsplit(text).query
        except ValueError:
            return None
        values = parse_qs(query).get("code")
        if not values:
            return None
        text = values[0].strip()

    candidate = text.lower()
    return candidate if is_valid_code(candidate) else None
