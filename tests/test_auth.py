"""
Authentication endpoint tests.
Covers registration, login, token refresh/rotation, logout and token checks.
"""
from __future__ import annotations

import pytest
from httpx import AsyncClient

from tests.conftest import PASSWORD

pytestmark = pytest.mark.asyncio

REGISTER_URL = "/api/v1/auth/register"
LOGIN_URL = "/api/v1/auth/login"
REFRESH_URL = "/api/v1/auth/refresh"
LOGOUT_URL = "/api/v1/auth/logout"
ME_URL = "/api/v1/users/me"


async def _register(client: AsyncClient, email: str = "new@example.com", **overrides):
    payload = {"name": "New User", "email": email, "password": PASSWORD}
    payload.update(overrides)
    return await client.post(REGISTER_URL, json=payload)


async def _login(client: AsyncClient, email: str = "new@example.com", password: str = PASSWORD):
    return await client.post(LOGIN_URL, json={"email": email, "password": password})


# ── Registration ──────────────────────────────────────────────────────────────

class TestRegister:
    async def test_register_success(self, client: AsyncClient) -> None:
        response = await _register(client)
        assert response.status_code == 201
        data = response.json()
        assert data["email"] == "new@example.com"
        assert data["role"] == "user"
        assert data["preferences"]["theme"] == "light"
        assert data["preferences"]["notifications"]["issue_assigned"] is True
        assert "hashed_password" not in data

    async def test_register_normalizes_email(self, client: AsyncClient) -> None:
        response = await _register(client, email="Mixed.Case@Example.COM")
        assert response.status_code == 201
        assert response.json()["email"] == "mixed.case@example.com"

    async def test_register_duplicate_email(self, client: AsyncClient) -> None:
        await _register(client)
        response = await _register(client)
        assert response.status_code == 409
        assert response.json()["error"] == "CONFLICT"

    async def test_register_duplicate_email_differing_case(self, client: AsyncClient) -> None:
        await _register(client)
        response = await _register(client, email="NEW@example.com")
        assert response.status_code == 409

    async def test_register_weak_password(self, client: AsyncClient) -> None:
        response = await _register(client, password="weakpass")
        assert response.status_code == 422
        assert response.json()["error"] == "VALIDATION_ERROR"

    async def test_register_blank_name(self, client: AsyncClient) -> None:
        response = await _register(client, name="   ")
        assert response.status_code == 422

    async def test_register_invalid_email(self, client: AsyncClient) -> None:
        response = await _register(client, email="not-an-email")
        assert response.status_code == 422


# ── Login ─────────────────────────────────────────────────────────────────────

class TestLogin:
    async def test_login_success(self, client: AsyncClient) -> None:
        await _register(client)
        response = await _login(client)
        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["access_token"]
        assert data["refresh_token"]

    async def test_login_email_is_case_insensitive(self, client: AsyncClient) -> None:
        await _register(client)
        response = await _login(client, email="New@Example.com")
        assert response.status_code == 200

    async def test_login_wrong_password(self, client: AsyncClient) -> None:
        await _register(client)
        response = await _login(client, password="WrongPass1")
        assert response.status_code == 401
        assert response.json()["error"] == "UNAUTHORIZED"

    async def test_login_unknown_email(self, client: AsyncClient) -> None:
        response = await _login(client, email="nobody@example.com")
        assert response.status_code == 401


# ── Tokens ────────────────────────────────────────────────────────────────────

class TestTokens:
    async def test_access_token_grants_access(self, client: AsyncClient) -> None:
        await _register(client)
        tokens = (await _login(client)).json()
        response = await client.get(
            ME_URL, headers={"Authorization": f"Bearer {tokens['access_token']}"}
        )
        assert response.status_code == 200
        assert response.json()["email"] == "new@example.com"

    async def test_missing_token_rejected(self, client: AsyncClient) -> None:
        response = await client.get(ME_URL)
        assert response.status_code == 401

    async def test_garbage_token_rejected(self, client: AsyncClient) -> None:
        response = await client.get(ME_URL, headers={"Authorization": "Bearer not.a.jwt"})
        assert response.status_code == 401

    async def test_refresh_token_cannot_be_used_as_access_token(
        self, client: AsyncClient
    ) -> None:
        await _register(client)
        tokens = (await _login(client)).json()
        response = await client.get(
            ME_URL, headers={"Authorization": f"Bearer {tokens['refresh_token']}"}
        )
        assert response.status_code == 401

    async def test_refresh_rotates_token(self, client: AsyncClient) -> None:
        await _register(client)
        old = (await _login(client)).json()

        response = await client.post(REFRESH_URL, json={"refresh_token": old["refresh_token"]})
        assert response.status_code == 200
        new = response.json()
        assert new["refresh_token"] != old["refresh_token"]

        # The rotated-out token is dead.
        response = await client.post(REFRESH_URL, json={"refresh_token": old["refresh_token"]})
        assert response.status_code == 401
        assert response.json()["error"] == "INVALID_TOKEN"

        response = await client.post(REFRESH_URL, json={"refresh_token": new["refresh_token"]})
        assert response.status_code == 200

    async def test_refresh_with_access_token_rejected(self, client: AsyncClient) -> None:
        await _register(client)
        tokens = (await _login(client)).json()
        response = await client.post(
            REFRESH_URL, json={"refresh_token": tokens["access_token"]}
        )
        assert response.status_code == 401

    async def test_logout_revokes_refresh_token(self, client: AsyncClient) -> None:
        await _register(client)
        tokens = (await _login(client)).json()
        headers = {"Authorization": f"Bearer {tokens['access_token']}"}

        response = await client.post(LOGOUT_URL, headers=headers)
        assert response.status_code == 204

        response = await client.post(REFRESH_URL, json={"refresh_token": tokens["refresh_token"]})
        assert response.status_code == 401
