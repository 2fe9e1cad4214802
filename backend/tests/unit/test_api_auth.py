"""Tests for the admin authentication endpoints.

POST /api/auth/admin, /verify, /refresh, /logout.
"""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient

from guestlist.core.config import settings
from guestlist.services.refresh_token_registry import InMemoryRefreshTokenRegistry
from guestlist.services.token_service import TokenService
from tests.conftest import TEST_ADMIN_PASSWORD, FrozenClock

_COOKIE = settings.refresh_cookie_name


async def _login(client: AsyncClient) -> dict:
    response = await client.post("/api/auth/admin", json={"password": TEST_ADMIN_PASSWORD})
    assert response.status_code == 200
    return response.json()


# =============================================================================
# POST /api/auth/admin
# =============================================================================


class TestLogin:
    """Tests for password login."""

    async def test_success_returns_access_token(self, client: AsyncClient) -> None:
        body = await _login(client)

        assert body["success"] is True
        assert body["message"] == "Login successful"
        assert body["accessToken"]
        assert body["expiresIn"] == 900
        assert body["tokenType"] == "Bearer"

    async def test_success_sets_httponly_refresh_cookie(self, client: AsyncClient) -> None:
        response = await client.post(
            "/api/auth/admin", json={"password": TEST_ADMIN_PASSWORD}
        )

        set_cookie = response.headers["set-cookie"]
        assert set_cookie.startswith(f"{_COOKIE}=")
        assert "HttpOnly" in set_cookie
        assert "Path=/api/auth" in set_cookie
        assert "SameSite=strict" in set_cookie
        assert "Max-Age=604800" in set_cookie
        # Refresh token never appears in the body
        assert "refreshToken" not in response.json()

    async def test_wrong_password_is_401(self, client: AsyncClient) -> None:
        response = await client.post("/api/auth/admin", json={"password": "nope"})

        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Incorrect password"
        assert body["code"] == "UNAUTHORIZED"
        assert "set-cookie" not in response.headers

    async def test_wrong_password_waits_the_failure_delay(
        self, client: AsyncClient, token_service: TokenService
    ) -> None:
        sleep = AsyncMock()
        token_service._sleep = sleep

        await client.post("/api/auth/admin", json={"password": "nope"})

        sleep.assert_awaited_once()
        assert 0.5 <= sleep.await_args.args[0] <= 1.0

    @pytest.mark.parametrize(
        "payload",
        [{}, {"password": ""}, {"password": "x" * 129}, {"password": "x", "extra": 1}],
    )
    async def test_malformed_body_is_400(self, client: AsyncClient, payload: dict) -> None:
        response = await client.post("/api/auth/admin", json=payload)

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    async def test_missing_hash_is_500(self, client: AsyncClient, token_service) -> None:
        token_service._admin_password_hash = None

        response = await client.post(
            "/api/auth/admin", json={"password": TEST_ADMIN_PASSWORD}
        )

        assert response.status_code == 500
        assert response.json() == {
            "success": False,
            "message": "Server error",
            "code": "INTERNAL_ERROR",
            "details": None,
        }


# =============================================================================
# POST /api/auth/verify
# =============================================================================


class TestVerify:
    """Tests for access token verification."""

    async def test_valid_token_returns_claims(self, client: AsyncClient) -> None:
        body = await _login(client)

        response = await client.post(
            "/api/auth/verify",
            headers={"Authorization": f"Bearer {body['accessToken']}"},
        )

        assert response.status_code == 200
        user = response.json()["user"]
        assert user["role"] == "admin"
        assert user["adminId"].startswith("admin-")
        assert isinstance(user["exp"], int)

    async def test_missing_token_is_401(self, client: AsyncClient) -> None:
        response = await client.post("/api/auth/verify")

        assert response.status_code == 401
        assert response.json()["message"] == "Access token required"

    @pytest.mark.parametrize(
        "header", ["Bearer not-a-token", "Bearer a.b.c", "Basic Zm9vOmJhcg=="]
    )
    async def test_invalid_token_is_403_or_401(
        self, client: AsyncClient, header: str
    ) -> None:
        response = await client.post("/api/auth/verify", headers={"Authorization": header})

        if header.startswith("Bearer"):
            assert response.status_code == 403
            assert response.json()["message"] == "Invalid or expired token"
        else:
            assert response.status_code == 401

    async def test_refresh_token_as_bearer_is_403(self, client: AsyncClient) -> None:
        await _login(client)
        refresh_token = client.cookies.get(_COOKIE)

        response = await client.post(
            "/api/auth/verify", headers={"Authorization": f"Bearer {refresh_token}"}
        )

        assert response.status_code == 403

    async def test_expired_token_is_403_with_generic_message(
        self, client: AsyncClient, token_service: TokenService
    ) -> None:
        clock = FrozenClock()
        token_service._clock = clock
        body = await _login(client)

        clock.advance(timedelta(minutes=15, seconds=1))
        response = await client.post(
            "/api/auth/verify",
            headers={"Authorization": f"Bearer {body['accessToken']}"},
        )

        assert response.status_code == 403
        assert response.json()["message"] == "Invalid or expired token"


# =============================================================================
# POST /api/auth/refresh
# =============================================================================


class TestRefresh:
    """Tests for refresh token rotation over HTTP."""

    async def test_cookie_refresh_rotates(self, client: AsyncClient) -> None:
        await _login(client)
        old_refresh = client.cookies.get(_COOKIE)

        response = await client.post("/api/auth/refresh")

        assert response.status_code == 200
        body = response.json()
        assert body["accessToken"]
        assert body["expiresIn"] == 900
        new_refresh = client.cookies.get(_COOKIE)
        assert new_refresh and new_refresh != old_refresh

    async def test_new_access_token_works(self, client: AsyncClient) -> None:
        await _login(client)
        body = (await client.post("/api/auth/refresh")).json()

        response = await client.post(
            "/api/auth/verify",
            headers={"Authorization": f"Bearer {body['accessToken']}"},
        )
        assert response.status_code == 200

    async def test_body_token_is_accepted(
        self, client: AsyncClient, token_service: TokenService
    ) -> None:
        pair = await token_service.login(TEST_ADMIN_PASSWORD)

        response = await client.post(
            "/api/auth/refresh", json={"refreshToken": pair.refresh_token}
        )

        assert response.status_code == 200

    async def test_replayed_token_is_403(
        self, client: AsyncClient, token_service: TokenService
    ) -> None:
        pair = await token_service.login(TEST_ADMIN_PASSWORD)
        first = await client.post(
            "/api/auth/refresh", json={"refreshToken": pair.refresh_token}
        )
        client.cookies.clear()

        replay = await client.post(
            "/api/auth/refresh", json={"refreshToken": pair.refresh_token}
        )

        assert first.status_code == 200
        assert replay.status_code == 403
        assert replay.json()["message"] == "Invalid or expired token"

    async def test_missing_token_is_401(self, client: AsyncClient) -> None:
        response = await client.post("/api/auth/refresh")

        assert response.status_code == 401
        assert response.json()["message"] == "Refresh token required"

    async def test_access_token_cannot_refresh(
        self, client: AsyncClient, token_service: TokenService
    ) -> None:
        pair = await token_service.login(TEST_ADMIN_PASSWORD)

        response = await client.post(
            "/api/auth/refresh", json={"refreshToken": pair.access_token}
        )

        assert response.status_code == 403


# =============================================================================
# POST /api/auth/logout
# =============================================================================


class TestLogout:
    """Tests for logout."""

    async def test_logout_revokes_and_clears_cookie(
        self,
        client: AsyncClient,
        refresh_registry: InMemoryRefreshTokenRegistry,
    ) -> None:
        await _login(client)
        refresh_token = client.cookies.get(_COOKIE)

        response = await client.post("/api/auth/logout")

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert refresh_registry.discard(refresh_token) is False
        assert f'{_COOKIE}=""' in response.headers["set-cookie"]

        replay = await client.post(
            "/api/auth/refresh", json={"refreshToken": refresh_token}
        )
        assert replay.status_code == 403

    async def test_logout_without_token_still_succeeds(self, client: AsyncClient) -> None:
        response = await client.post("/api/auth/logout")
        assert response.status_code == 200

    async def test_logout_twice_succeeds(self, client: AsyncClient) -> None:
        await _login(client)
        assert (await client.post("/api/auth/logout")).status_code == 200
        assert (await client.post("/api/auth/logout")).status_code == 200
