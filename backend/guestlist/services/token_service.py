"""Admin session lifecycle: login, access verification, refresh rotation, logout.

The admin tier has a single shared password (bcrypt hash in settings).
A successful login mints a fresh admin session id and a token pair:

- access token: short-lived, stateless, sent as a Bearer header
- refresh token: long-lived, only honored while registered in the
  RefreshTokenRegistry; each refresh consumes it and issues a successor

Failed logins wait a random delay before answering so that response time
reveals nothing about the password.
"""

import asyncio
import logging
import random
import secrets
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from guestlist.core.auth import (
    TOKEN_TYPE_ACCESS,
    TOKEN_TYPE_REFRESH,
    TokenInvalidError,
    create_token,
    decode_token,
    verify_password,
)
from guestlist.core.config import Settings, settings
from guestlist.core.errors import InfrastructureError, UnauthorizedError
from guestlist.services.refresh_token_registry import (
    RefreshTokenEntry,
    RefreshTokenRegistry,
    get_refresh_token_registry,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
Sleep = Callable[[float], Awaitable[None]]

ADMIN_ID_PREFIX = "admin-"
_ADMIN_ID_BYTES = 8

INCORRECT_PASSWORD_MESSAGE = "Incorrect password"


def _utcnow() -> datetime:
    return datetime.now(UTC)


def new_admin_id() -> str:
    """Mint an admin session id: "admin-" followed by 16 hex characters."""
    return ADMIN_ID_PREFIX + secrets.token_hex(_ADMIN_ID_BYTES)


@dataclass(frozen=True)
class TokenPair:
    """Tokens returned by login and refresh.

    Attributes:
        access_token: Bearer token for admin endpoints.
        refresh_token: Token to present to the refresh endpoint.
        expires_in: Access token lifetime in seconds.
    """

    access_token: str
    refresh_token: str
    expires_in: int


@dataclass(frozen=True)
class AdminClaims:
    """Verified claims of an access token.

    Attributes:
        admin_id: Session identifier minted at login.
        role: Always "admin".
        exp: Expiry time (UTC).
    """

    admin_id: str
    role: str
    exp: datetime


class TokenService:
    """Issues, verifies, rotates and revokes admin tokens.

    Time and sleeping are injected so that expiry and the failure delay
    can be tested without waiting.
    """

    def __init__(
        self,
        *,
        registry: RefreshTokenRegistry,
        access_secret: str,
        refresh_secret: str,
        admin_password_hash: str | None,
        access_ttl: timedelta = timedelta(minutes=15),
        refresh_ttl: timedelta = timedelta(days=7),
        failure_delay_range: tuple[float, float] = (0.5, 1.0),
        clock: Clock = _utcnow,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        """Initialize the token service.

        Args:
            registry: Store of live refresh tokens.
            access_secret: HMAC secret for access tokens.
            refresh_secret: HMAC secret for refresh tokens.
            admin_password_hash: bcrypt hash of the admin password, or None
                if not configured.
            access_ttl: Access token lifetime.
            refresh_ttl: Refresh token lifetime and registry retention.
            failure_delay_range: (min, max) seconds to wait on failed login.
            clock: Returns the current timezone-aware time.
            sleep: Awaitable sleep used for the failure delay.
        """
        self._registry = registry
        self._access_secret = access_secret
        self._refresh_secret = refresh_secret
        self._admin_password_hash = admin_password_hash or None
        self._access_ttl = access_ttl
        self._refresh_ttl = refresh_ttl
        self._failure_delay_range = failure_delay_range
        self._clock = clock
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls,
        config: Settings,
        registry: RefreshTokenRegistry,
        **overrides: object,
    ) -> "TokenService":
        """Build a TokenService from application settings.

        Args:
            config: Application settings.
            registry: Store of live refresh tokens.
            **overrides: Constructor arguments replacing the settings-derived ones.

        Returns:
            Configured TokenService.
        """
        kwargs: dict[str, object] = {
            "registry": registry,
            "access_secret": config.jwt_access_secret.get_secret_value(),
            "refresh_secret": config.jwt_refresh_secret.get_secret_value(),
            "admin_password_hash": config.admin_password_hash.get_secret_value(),
            "access_ttl": timedelta(minutes=config.access_token_ttl_minutes),
            "refresh_ttl": timedelta(days=config.refresh_token_ttl_days),
            "failure_delay_range": (
                config.login_failure_delay_min_seconds,
                config.login_failure_delay_max_seconds,
            ),
        }
        kwargs.update(overrides)
        return cls(**kwargs)  # type: ignore[arg-type]

    @property
    def access_ttl_seconds(self) -> int:
        """Access token lifetime in seconds."""
        return int(self._access_ttl.total_seconds())

    @property
    def registry(self) -> RefreshTokenRegistry:
        """Store of live refresh tokens."""
        return self._registry

    async def _failure_delay(self) -> None:
        low, high = self._failure_delay_range
        await self._sleep(random.uniform(low, high))  # nosec B311

    def _issue_pair(self, admin_id: str, user_agent: str | None) -> TokenPair:
        now = self._clock()
        access_token = create_token(
            admin_id=admin_id,
            secret=self._access_secret,
            token_type=TOKEN_TYPE_ACCESS,
            expires_delta=self._access_ttl,
            now=now,
        )
        refresh_token = create_token(
            admin_id=admin_id,
            secret=self._refresh_secret,
            token_type=TOKEN_TYPE_REFRESH,
            expires_delta=self._refresh_ttl,
            now=now,
        )
        self._registry.add(
            refresh_token,
            RefreshTokenEntry(admin_id=admin_id, created_at=now, user_agent=user_agent),
        )
        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=self.access_ttl_seconds,
        )

    async def login(self, password: str, user_agent: str | None = None) -> TokenPair:
        """Authenticate the admin password and open a new session.

        Every failure path waits the randomized delay before raising.

        Args:
            password: Submitted admin password.
            user_agent: User-Agent of the request, stored with the refresh token.

        Returns:
            A fresh TokenPair.

        Raises:
            InfrastructureError: If no admin password hash is configured, or
                the configured hash is unreadable.
            UnauthorizedError: If the password does not match.
        """
        if self._admin_password_hash is None:
            await self._failure_delay()
            logger.error("Admin login attempted but ADMIN_PASSWORD_HASH is not set")
            raise InfrastructureError()

        try:
            matches = verify_password(password, self._admin_password_hash)
        except ValueError as exc:
            await self._failure_delay()
            logger.error("ADMIN_PASSWORD_HASH is not a valid bcrypt hash")
            raise InfrastructureError() from exc

        if not matches:
            await self._failure_delay()
            logger.warning("Admin login failed: incorrect password")
            raise UnauthorizedError(INCORRECT_PASSWORD_MESSAGE)

        admin_id = new_admin_id()
        pair = self._issue_pair(admin_id, user_agent)
        purged = self._registry.purge_created_before(self._clock() - self._refresh_ttl)
        logger.info(
            "Admin login succeeded for session %s (%d stale refresh tokens purged)",
            admin_id,
            purged,
        )
        return pair

    def verify_access(self, token: str) -> AdminClaims:
        """Verify an access token.

        Args:
            token: Encoded access JWT.

        Returns:
            AdminClaims of the token.

        Raises:
            TokenInvalidError: If the token is malformed, expired, signed with
                another secret or is not an access token.
        """
        claims = decode_token(
            token,
            secret=self._access_secret,
            token_type=TOKEN_TYPE_ACCESS,
            now=self._clock(),
        )
        return AdminClaims(
            admin_id=claims["adminId"],
            role=claims["role"],
            exp=datetime.fromtimestamp(claims["exp"], tz=UTC),
        )

    def refresh(self, refresh_token: str, user_agent: str | None = None) -> TokenPair:
        """Rotate a refresh token.

        The presented token is consumed: among concurrent callers, exactly
        one receives the new pair and every later use fails.

        Args:
            refresh_token: Encoded refresh JWT.
            user_agent: User-Agent of the request.

        Returns:
            A new TokenPair for the same admin session.

        Raises:
            TokenInvalidError: If the token does not verify or is not live.
        """
        try:
            claims = decode_token(
                refresh_token,
                secret=self._refresh_secret,
                token_type=TOKEN_TYPE_REFRESH,
                now=self._clock(),
            )
        except TokenInvalidError:
            self._registry.discard(refresh_token)
            raise

        entry = self._registry.consume(refresh_token)
        if entry is None:
            logger.warning("Refresh token presented that is not registered")
            raise TokenInvalidError("Refresh token is not registered")
        if entry.admin_id != claims["adminId"]:
            raise TokenInvalidError("Refresh token does not match its session")

        pair = self._issue_pair(entry.admin_id, user_agent or entry.user_agent)
        logger.info("Refresh token rotated for session %s", entry.admin_id)
        return pair

    def logout(self, refresh_token: str | None) -> None:
        """Revoke a refresh token. Unknown or missing tokens are ignored.

        Args:
            refresh_token: Encoded refresh JWT, if the client sent one.
        """
        if refresh_token and self._registry.discard(refresh_token):
            logger.info("Admin logged out")


# Global service instance (singleton for the app)
_service: TokenService | None = None


def get_token_service() -> TokenService:
    """Get the global token service, built from settings on first use.

    Returns:
        The singleton TokenService instance.
    """
    global _service
    if _service is None:
        _service = TokenService.from_settings(settings, get_refresh_token_registry())
    return _service


def reset_token_service() -> None:
    """Reset the global token service. For testing only."""
    global _service
    _service = None
