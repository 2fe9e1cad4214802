"""Free-text sanitization for guest-supplied and organizer-supplied strings.

Security: RSVP messages, names and welcome messages are rendered by the
frontend, so markup is stripped before anything is stored. Tags are removed
but their text content is kept; script/style blocks are dropped entirely.
"""

import re
import unicodedata

# Maximum stored length of an RSVP message
MAX_MESSAGE_LENGTH = 1000

# Zero-width and BiDi control characters. Invisible when rendered, they can
# disguise content (e.g., reversed text in an admin's guest list).
_ZERO_WIDTH_PATTERN = re.compile(
    "["
    "\u00ad"  # Soft hyphen
    "\u200b-\u200f"  # Zero-width space, non-joiner, joiner, LRM, RLM
    "\u202a-\u202e"  # BiDi embedding controls
    "\u2060-\u2064"  # Word joiner, invisible operators
    "\u2066-\u2069"  # BiDi isolate controls
    "\ufeff"  # BOM / zero-width no-break space
    "]"
)

# <script>...</script> and <style>...</style> lose their content too
_SCRIPT_BLOCK_PATTERN = re.compile(
    r"<\s*(script|style)\b[^>]*>.*?<\s*/\s*\1\s*>",
    re.IGNORECASE | re.DOTALL,
)

# Any remaining tag, comment or unterminated tag opener
_TAG_PATTERN = re.compile(r"<!--.*?-->|</?[a-zA-Z!][^>]*>?", re.DOTALL)

# Control characters to remove (except \t, \n, \r)
_CONTROL_CHAR_PATTERN = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def strip_html(text: str) -> str:
    """Remove HTML markup, keeping text content.

    Args:
        text: Raw text that may contain markup.

    Returns:
        Text without tags, comments or script/style blocks.
    """
    result = _SCRIPT_BLOCK_PATTERN.sub("", text)
    return _TAG_PATTERN.sub("", result)


def sanitize_text(text: str | None, max_length: int | None = None) -> str:
    """Sanitize free text before storage.

    Steps: NFC normalization, zero-width/BiDi stripping, HTML stripping,
    control character removal, whitespace trim, then truncation.

    Args:
        text: Raw text. None is treated as empty.
        max_length: Optional maximum length of the result.

    Returns:
        Sanitized text (possibly empty).
    """
    if not text:
        return ""

    result = unicodedata.normalize("NFC", text)
    result = _ZERO_WIDTH_PATTERN.sub("", result)
    result = strip_html(result)
    result = _CONTROL_CHAR_PATTERN.sub("", result)
    result = result.strip()

    if max_length is not None and len(result) > max_length:
        result = result[:max_length].rstrip()

    return result


def sanitize_message(text: str | None) -> str | None:
    """Sanitize an RSVP message, capped at MAX_MESSAGE_LENGTH characters.

    Returns:
        Sanitized message, or None when nothing is left.
    """
    cleaned = sanitize_text(text, MAX_MESSAGE_LENGTH)
    return cleaned or None
