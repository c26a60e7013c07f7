"""Integration tests for authentication endpoints."""

from __future__ import annotations

import pytest
from fastapi import status
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from onboarding.domain.services.auth_service import hash_password
from onboarding.infrastructure.repositories import AccountRepository
from tests.utils import STRONG_PASSWORD, auth_headers


@pytest.fixture
async def credential_id(session_factory: async_sessionmaker[AsyncSession]) -> str:
    async with session_factory() as session:
        credential = await AccountRepository(session).create_credential(
            email="owner@example.com", password_hash=hash_password(STRONG_PASSWORD)
        )
        await session.commit()
        return credential.id


class TestLoginEndpoint:
    """Tests for POST /auth/login endpoint."""

    @pytest.mark.asyncio
    async def test_login_success(self, async_client: AsyncClient, credential_id: str) -> None:
        response = await async_client.post(
            "/auth/login", json={"email": "Owner@Example.com", "password": STRONG_PASSWORD}
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["message"] == "Login successful"
        assert data["credential"]["id"] == credential_id
        assert data["credential"]["role"] == "owner"
        assert data["tokens"]["token_type"] == "bearer"

    @pytest.mark.asyncio
    async def test_login_wrong_password(
        self, async_client: AsyncClient, credential_id: str
    ) -> None:
        response = await async_client.post(
            "/auth/login", json={"email": "owner@example.com", "password": "Wr0ng$pass"}
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    @pytest.mark.asyncio
    async def test_login_invalid_email(self, async_client: AsyncClient) -> None:
        response = await async_client.post(
            "/auth/login", json={"email": "not-an-email", "password": STRONG_PASSWORD}
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


class TestRefreshEndpoint:
    @pytest.mark.asyncio
    async def test_refresh(self, async_client: AsyncClient, credential_id: str) -> None:
        login = await async_client.post(
            "/auth/login", json={"email": "owner@example.com", "password": STRONG_PASSWORD}
        )

        response = await async_client.post(
            "/auth/refresh", json={"refresh_token": login.json()["tokens"]["refresh_token"]}
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["access_token"]

    @pytest.mark.asyncio
    async def test_refresh_with_garbage(self, async_client: AsyncClient) -> None:
        response = await async_client.post("/auth/refresh", json={"refresh_token": "garbage"})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


class TestMeEndpoint:
    @pytest.mark.asyncio
    async def test_me_requires_token(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/auth/me")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    @pytest.mark.asyncio
    async def test_me_unknown_credential(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/auth/me", headers=auth_headers("missing"))

        assert response.status_code == status.HTTP_404_NOT_FOUND

    @pytest.mark.asyncio
    async def test_me(self, async_client: AsyncClient, credential_id: str) -> None:
        response = await async_client.get("/auth/me", headers=auth_headers(credential_id))

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["credential"]["email"] == "owner@example.com"
