"""Shared dependencies for API endpoints.

Two authentication tiers:
- admin: ``Authorization: Bearer <access token>`` (require_admin)
- guest: possession of a well-formed guest code in the path (valid_code)
"""

from typing import Annotated

from fastapi import Depends, Path, Request
from sqlalchemy.ext.asyncio import AsyncSession

from guestlist.core.auth import TokenInvalidError
from guestlist.core.database import get_db
from guestlist.core.errors import ForbiddenError, UnauthorizedError, ValidationError
from guestlist.services.code_generator import is_valid_code
from guestlist.services.qr_storage import QRCodeStorage, get_qr_storage
from guestlist.services.token_service import (
    AdminClaims,
    TokenService,
    get_token_service,
)

# Security: one message per failure class. Never say WHY a token was
# rejected (expired, bad signature, revoked, wrong type).
_MISSING_TOKEN_MESSAGE = "Access token required"
_INVALID_CODE_MESSAGE = "Invalid guest code format"

_BEARER_PREFIX = "bearer "


def _bearer_token(request: Request) -> str | None:
    """Extract the token of an ``Authorization: Bearer`` header."""
    header = request.headers.get("Authorization", "")
    if not header.lower().startswith(_BEARER_PREFIX):
        return None
    token = header[len(_BEARER_PREFIX) :].strip()
    return token or None


async def require_admin(
    request: Request,
    token_service: Annotated[TokenService, Depends(get_token_service)],
) -> AdminClaims:
    """Authenticate the admin tier.

    Args:
        request: HTTP request (injected by FastAPI).
        token_service: Token service (injected).

    Returns:
        Claims of the verified access token.

    Raises:
        UnauthorizedError: 401 if no Bearer token is present.
        ForbiddenError: 403 if the token does not verify, whatever the reason.
    """
    token = _bearer_token(request)
    if token is None:
        raise UnauthorizedError(_MISSING_TOKEN_MESSAGE)
    try:
        return token_service.verify_access(token)
    except TokenInvalidError:
        raise ForbiddenError() from None


def valid_code(
    code: Annotated[str, Path(max_length=64, description="Guest code")],
) -> str:
    """Normalize and validate a guest code taken from the path.

    Args:
        code: Raw path segment.

    Returns:
        Lowercase code.

    Raises:
        ValidationError: 400 if the code is not 12-32 hex characters.
    """
    normalized = code.strip().lower()
    if not is_valid_code(normalized):
        raise ValidationError(_INVALID_CODE_MESSAGE)
    return normalized


# Type aliases for cleaner endpoint signatures
DbSession = Annotated[AsyncSession, Depends(get_db)]
CurrentAdmin = Annotated[AdminClaims, Depends(require_admin)]
GuestCode = Annotated[str, Depends(valid_code)]
TokenServiceDep = Annotated[TokenService, Depends(get_token_service)]
QRStorageDep = Annotated[QRCodeStorage, Depends(get_qr_storage)]
