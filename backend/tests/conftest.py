import uuid
from collections.abc import AsyncGenerator, Callable, Coroutine, Iterator
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import bcrypt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from guestlist.core.database import build_engine
from guestlist.core.rate_limiting import limiter
from guestlist.models import Guest
from guestlist.models.base import Base
from guestlist.repositories.guest_repository import GuestRepository
from guestlist.services.code_generator import issue_code
from guestlist.services.qr_storage import QRCodeStorage
from guestlist.services.refresh_token_registry import InMemoryRefreshTokenRegistry
from guestlist.services.token_service import TokenService

# Security: test-only credentials. Production reads them from the environment.
TEST_ADMIN_PASSWORD = "correct-horse-battery-staple"  # nosec B105  # gitleaks:allow
# Low cost factor keeps the suite fast; production hashes use 12+
TEST_ADMIN_PASSWORD_HASH = bcrypt.hashpw(
    TEST_ADMIN_PASSWORD.encode(), bcrypt.gensalt(rounds=4)
).decode()
TEST_ACCESS_SECRET = "test-access-secret-that-is-at-least-32-characters"  # nosec B105  # gitleaks:allow
TEST_REFRESH_SECRET = "test-refresh-secret-that-is-at-least-32-characters"  # nosec B105  # gitleaks:allow

TEST_BASE_URL = "https://party.example.com"


async def no_sleep(_seconds: float) -> None:
    """Stand-in for asyncio.sleep that returns immediately."""


class FrozenClock:
    """Callable clock for token expiry tests. Advance it with ``advance()``."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 6, 1, 12, 0, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


def make_token_service(
    registry: InMemoryRefreshTokenRegistry | None = None,
    **overrides: Any,
) -> TokenService:
    """Build a TokenService with test secrets and no failure delay.

    Args:
        registry: Refresh token registry. A fresh one by default.
        **overrides: Constructor arguments to replace.

    Returns:
        TokenService for tests.
    """
    kwargs: dict[str, Any] = {
        "registry": registry if registry is not None else InMemoryRefreshTokenRegistry(),
        "access_secret": TEST_ACCESS_SECRET,
        "refresh_secret": TEST_REFRESH_SECRET,
        "admin_password_hash": TEST_ADMIN_PASSWORD_HASH,
        "sleep": no_sleep,
    }
    kwargs.update(overrides)
    return TokenService(**kwargs)


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture(scope="function")
async def db_engine(tmp_path: Path):
    """Create a throwaway SQLite database for one test."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'guestlist-test.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


GuestFactory = Callable[..., Coroutine[Any, Any, Guest]]


@pytest.fixture
def make_guest(db_session: AsyncSession) -> GuestFactory:
    """Factory that inserts and commits a guest.

    Usage:
        guest = await make_guest(name="Alice", attending=True, guests_count=1)
    """

    async def _make(
        name: str = "Alice Martin",
        email: str | None = None,
        code: str | None = None,
        **fields: Any,
    ) -> Guest:
        guest = await GuestRepository.create(
            db_session,
            name=name,
            email=email or f"{uuid.uuid4().hex[:10]}@example.com",
            unique_code=code or issue_code(),
        )
        if fields:
            guest = await GuestRepository.update(db_session, guest.id, **fields)
        await db_session.commit()
        return guest

    return _make


# =============================================================================
# Service Fixtures
# =============================================================================


@pytest.fixture
def refresh_registry() -> InMemoryRefreshTokenRegistry:
    """Fresh refresh token registry."""
    return InMemoryRefreshTokenRegistry()


@pytest.fixture
def token_service(refresh_registry: InMemoryRefreshTokenRegistry) -> TokenService:
    """TokenService with test secrets and an instant failure delay."""
    return make_token_service(refresh_registry)


@pytest.fixture
def qr_storage(tmp_path: Path) -> QRCodeStorage:
    """QR image storage in a temporary directory."""
    return QRCodeStorage(tmp_path / "qr-codes")


@pytest.fixture(autouse=True)
def disable_rate_limiting() -> Iterator[None]:
    """Disable rate limiting for all tests by default.

    Rate limiting tests re-enable it explicitly.
    """
    original = limiter.enabled
    limiter.enabled = False
    yield
    limiter.enabled = original


# =============================================================================
# API Test Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def client(
    db_engine,
    token_service: TokenService,
    qr_storage: QRCodeStorage,
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to the test database and services.

    Sets up:
    - Test database connection via dependency override
    - Token service with test secrets (no login delay)
    - QR storage in a temporary directory
    - httpx.AsyncClient with ASGI transport

    Yields:
        AsyncClient without credentials.
    """
    from guestlist.api.deps import get_qr_storage, get_token_service
    from guestlist.core.database import get_db
    from guestlist.main import app

    test_session_factory = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with test_session_factory() as session:
            try:
                yield session
            finally:
                if session.in_transaction():
                    await session.rollback()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_token_service] = lambda: token_service
    app.dependency_overrides[get_qr_storage] = lambda: qr_storage

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def admin_headers(token_service: TokenService) -> dict[str, str]:
    """Authorization header of a freshly logged-in admin."""
    pair = await token_service.login(TEST_ADMIN_PASSWORD)
    return {"Authorization": f"Bearer {pair.access_token}"}
