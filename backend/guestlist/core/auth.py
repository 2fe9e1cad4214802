"""Authentication helpers for JWT creation, decoding and cookie management.

Pipeline:
- create_token / decode_token: HS256 JWTs for the admin tier
- set_refresh_cookie / clear_refresh_cookie: refresh token transport
- verify_password: bcrypt comparison against the configured admin hash

Access and refresh tokens are signed with distinct secrets, so one kind
can never be replayed as the other.
"""

import secrets
from datetime import datetime, timedelta
from typing import Any

import bcrypt
import jwt
from fastapi import Response

from guestlist.core.config import settings

ALGORITHM = "HS256"
ADMIN_ROLE = "admin"

TOKEN_TYPE_ACCESS = "access"
TOKEN_TYPE_REFRESH = "refresh"

# Random part of the JWT ID. Two tokens minted for the same admin in the
# same second must still differ.
_JTI_BYTES = 16


class TokenInvalidError(Exception):
    """Raised when a token is malformed, badly signed, expired or of the wrong type.

    Never reaches the client as-is: callers map it to a 401 or 403.
    """


def create_token(
    *,
    admin_id: str,
    secret: str,
    token_type: str,
    expires_delta: timedelta,
    now: datetime,
) -> str:
    """Create a signed JWT with standard claims.

    Args:
        admin_id: Admin session identifier for the adminId claim.
        secret: HMAC signing secret.
        token_type: TOKEN_TYPE_ACCESS or TOKEN_TYPE_REFRESH.
        expires_delta: Time until expiration.
        now: Issue time (timezone-aware).

    Returns:
        Encoded JWT string.
    """
    payload = {
        "adminId": admin_id,
        "role": ADMIN_ROLE,
        "type": token_type,
        "iat": int(now.timestamp()),
        "exp": int((now + expires_delta).timestamp()),
        "jti": secrets.token_hex(_JTI_BYTES),
    }
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def decode_token(
    token: str,
    *,
    secret: str,
    token_type: str,
    now: datetime,
) -> dict[str, Any]:
    """Verify a JWT and return its claims.

    Expiry is checked against ``now`` rather than the wall clock so that
    callers can inject a clock. A token is valid while now < exp.

    Args:
        token: Encoded JWT.
        secret: HMAC secret the token must be signed with.
        token_type: Expected value of the type claim.
        now: Current time (timezone-aware).

    Returns:
        Decoded claims.

    Raises:
        TokenInvalidError: On any verification failure.
    """
    try:
        claims: dict[str, Any] = jwt.decode(
            token,
            secret,
            algorithms=[ALGORITHM],
            options={
                "verify_exp": False,
                "verify_iat": False,
                "require": ["exp", "type"],
            },
        )
    except jwt.InvalidTokenError as exc:
        raise TokenInvalidError(str(exc)) from exc

    if claims.get("type") != token_type:
        raise TokenInvalidError("Unexpected token type")
    if claims.get("role") != ADMIN_ROLE:
        raise TokenInvalidError("Unexpected role")
    if not isinstance(claims.get("adminId"), str):
        raise TokenInvalidError("Missing adminId")

    exp = claims["exp"]
    if not isinstance(exp, int | float) or now.timestamp() >= exp:
        raise TokenInvalidError("Token expired")

    return claims


def set_refresh_cookie(response: Response, token: str) -> None:
    """Set the httpOnly refresh token cookie on response.

    The cookie is scoped to the auth routes and only sent over HTTPS in
    production.

    Args:
        response: FastAPI response object.
        token: Refresh JWT.
    """
    response.set_cookie(
        key=settings.refresh_cookie_name,
        value=token,
        httponly=True,
        secure=settings.refresh_cookie_secure,
        samesite=settings.refresh_cookie_samesite,
        path=settings.refresh_cookie_path,
        max_age=int(timedelta(days=settings.refresh_token_ttl_days).total_seconds()),
    )


def clear_refresh_cookie(response: Response) -> None:
    """Remove the refresh token cookie.

    Args:
        response: FastAPI response object.
    """
    response.delete_cookie(
        key=settings.refresh_cookie_name,
        path=settings.refresh_cookie_path,
        httponly=True,
        secure=settings.refresh_cookie_secure,
        samesite=settings.refresh_cookie_samesite,
    )


def verify_password(password: str, password_hash: str) -> bool:
    """Compare a plain-text password with a bcrypt hash.

    bcrypt only looks at the first 72 bytes of the password; longer inputs
    are truncated before comparison so the call never raises on length.

    Args:
        password: Submitted password.
        password_hash: Stored bcrypt hash.

    Returns:
        True if the password matches.

    Raises:
        ValueError: If password_hash is not a valid bcrypt hash.
    """
    return bcrypt.checkpw(password.encode()[:72], password_hash.encode())
