"""Zip archive of every generated invitation QR code.

Entries are named ``{slug(name)}-{public_id[:8]}.png`` so that the
organizer can tell files apart and homonyms do not collide. A guest whose
image is missing on disk is skipped with a warning; any other failure
aborts the whole archive.
"""

import io
import logging
import re
import unicodedata
import zipfile
from collections.abc import Iterable

from guestlist.models.guest import Guest
from guestlist.services.code_generator import qr_public_id
from guestlist.services.qr_storage import QRCodeStorage

logger = logging.getLogger(__name__)

ARCHIVE_FILENAME = "qr-codes-invites.zip"

# Security: ASCII-only allowlist keeps archive entry names portable and
# free of path separators.
_DISALLOWED_CHARS = re.compile(r"[^a-z0-9]+")
_MAX_SLUG_LENGTH = 50


def slugify(name: str) -> str:
    """Turn a guest name into a lowercase ASCII file name fragment.

    Accents are folded ("Hélène" -> "helene"); runs of other characters
    become single hyphens.

    Args:
        name: Guest display name.

    Returns:
        Slug, or "guest" if nothing usable remains.
    """
    ascii_name = (
        unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode("ascii")
    )
    slug = _DISALLOWED_CHARS.sub("-", ascii_name.lower()).strip("-")
    return slug[:_MAX_SLUG_LENGTH].rstrip("-") or "guest"


def archive_entry_name(guest: Guest) -> str:
    """Archive entry name of a guest's QR image."""
    return f"{slugify(guest.name)}-{qr_public_id(guest.unique_code)[:8]}.png"


def build_qr_archive(guests: Iterable[Guest], storage: QRCodeStorage) -> tuple[bytes, int]:
    """Build a deflated zip with one PNG per guest.

    Args:
        guests: Guests that have a QR code.
        storage: Where the images are read from.

    Returns:
        Tuple of (zip bytes, number of images included).
    """
    buffer = io.BytesIO()
    included = 0
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for guest in guests:
            png = storage.load(qr_public_id(guest.unique_code))
            if png is None:
                logger.warning("QR image missing for guest %s, skipped", guest.id)
                continue
            archive.writestr(archive_entry_name(guest), png)
            included += 1
    return buffer.getvalue(), included
