"""Application configuration loaded from environment variables.

Settings for the database, admin authentication, rate limiting, QR code
generation and the event details shown to confirmed guests. Uses
pydantic-settings for validation and .env file support.
"""

import secrets
from typing import Literal

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Minimum length for JWT secrets in production (256 bits = 32 bytes)
_MIN_JWT_SECRET_LENGTH = 32

# Production floor for the wrong-password delay
_MIN_PRODUCTION_LOGIN_DELAY_SECONDS = 0.5


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    environment: str = "development"
    log_level: str = "INFO"

    # Database
    # SQLite (aiosqlite) for local use, postgresql+asyncpg://... in production
    database_url: str = "sqlite+aiosqlite:///./guestlist.db"

    # CORS (Security)
    # CRITICAL: Never set to ["*"]: the refresh cookie requires credentials
    allowed_origins: list[str] = ["http://localhost:3000"]

    # Admin authentication
    # bcrypt hash of the shared admin password (see scripts/hash_admin_password.py)
    admin_password_hash: SecretStr = SecretStr("")
    # Empty secrets are replaced by random per-process secrets outside production
    jwt_access_secret: SecretStr = SecretStr("")
    jwt_refresh_secret: SecretStr = SecretStr("")
    access_token_ttl_minutes: int = 15
    refresh_token_ttl_days: int = 7
    refresh_cookie_name: str = "refreshToken"
    refresh_cookie_path: str = "/api/auth"
    refresh_cookie_samesite: Literal["lax", "strict", "none"] = "strict"
    # Wrong-password responses are delayed by a random duration in this range
    login_failure_delay_min_seconds: float = 0.5
    login_failure_delay_max_seconds: float = 1.0

    # Invitations
    invitation_base_url: str = "http://localhost:3000"
    qr_storage_dir: str = "data/qr-codes"
    qr_public_path: str = "/qr-codes"
    code_generation_max_attempts: int = 5

    # Rate Limiting (Security)
    # Format: "count/period" (e.g., "5/30minute", "100/15minute")
    rate_limit_global: str = "100/15minute"
    rate_limit_login: str = "5/30minute"
    rate_limit_code_verification: str = "20/5minute"
    rate_limit_guest_api: str = "50/15minute"
    rate_limit_enabled: bool = True  # Disable for testing

    # Event details (shown only to guests who confirmed)
    event_name: str = "Birthday Party"
    event_location_name: str = ""
    event_address: str = ""
    event_latitude: float | None = None
    event_longitude: float | None = None
    event_access_info: str = ""
    event_parking_info: str = ""
    event_accommodation_check_in: str = ""
    event_accommodation_check_out: str = ""
    event_amenities: list[str] = []
    event_additional_info: str = ""

    @property
    def is_production(self) -> bool:
        """Whether the app runs in production mode."""
        return self.environment == "production"

    @property
    def refresh_cookie_secure(self) -> bool:
        """Refresh cookie carries the Secure flag in production only."""
        return self.is_production

    @model_validator(mode="after")
    def check_production_security(self) -> "Settings":
        """Validate security requirements and fill development defaults.

        Checks:
        - CORS must not use wildcard origin (incompatible with credentials)
        - Login failure delay bounds must be ordered and non-negative
        - In production, the login failure delay must start at 0.5 seconds or more
        - In production, both JWT secrets must be set, long enough and distinct
        - Outside production, empty JWT secrets are replaced by random ones
        """
        if "*" in self.allowed_origins:
            msg = (
                "ALLOWED_ORIGINS must not contain '*' (wildcard). "
                "The refresh token cookie requires credentials, which are "
                "incompatible with wildcard CORS origins."
            )
            raise ValueError(msg)

        if not (
            0 <= self.login_failure_delay_min_seconds
            <= self.login_failure_delay_max_seconds
        ):
            msg = (
                "LOGIN_FAILURE_DELAY_MIN_SECONDS must be non-negative and not "
                "greater than LOGIN_FAILURE_DELAY_MAX_SECONDS."
            )
            raise ValueError(msg)

        if self.code_generation_max_attempts < 1:
            msg = "CODE_GENERATION_MAX_ATTEMPTS must be at least 1."
            raise ValueError(msg)

        access_secret = self.jwt_access_secret.get_secret_value()
        refresh_secret = self.jwt_refresh_secret.get_secret_value()

        if self.is_production:
            if self.login_failure_delay_min_seconds < _MIN_PRODUCTION_LOGIN_DELAY_SECONDS:
                msg = (
                    "LOGIN_FAILURE_DELAY_MIN_SECONDS must be at least "
                    f"{_MIN_PRODUCTION_LOGIN_DELAY_SECONDS} in production."
                )
                raise ValueError(msg)
            for name, value in (
                ("JWT_ACCESS_SECRET", access_secret),
                ("JWT_REFRESH_SECRET", refresh_secret),
            ):
                if len(value) < _MIN_JWT_SECRET_LENGTH:
                    msg = (
                        f"{name} must be set to at least {_MIN_JWT_SECRET_LENGTH} "
                        'characters in production. Generate with: python -c "import '
                        'secrets; print(secrets.token_hex(64))"'
                    )
                    raise ValueError(msg)
            if access_secret == refresh_secret:
                msg = "JWT_ACCESS_SECRET and JWT_REFRESH_SECRET must differ."
                raise ValueError(msg)
            return self

        if not access_secret:
            self.jwt_access_secret = SecretStr(secrets.token_hex(64))
        if not refresh_secret:
            self.jwt_refresh_secret = SecretStr(secrets.token_hex(64))

        return self


settings = Settings()
