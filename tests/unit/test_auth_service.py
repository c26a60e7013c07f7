"""Unit tests for authentication service."""

from __future__ import annotations

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from onboarding.domain.services.auth_service import (
    AuthService,
    InvalidCredentialsError,
    hash_password,
    is_strong_password,
    verify_password,
)
from onboarding.infrastructure.repositories import AccountRepository


class TestPasswordHashing:
    """Tests for password hashing functions."""

    def test_hash_password_returns_bcrypt_hash(self) -> None:
        hashed = hash_password("Test_password123")

        # bcrypt hashes start with $2b$
        assert hashed.startswith("$2b$")
        assert len(hashed) == 60

    def test_hash_password_unique_per_call(self) -> None:
        """Same password should produce different hashes (due to salt)."""
        assert hash_password("Test_password123") != hash_password("Test_password123")

    def test_verify_password(self) -> None:
        hashed = hash_password("TestPassword123")

        assert verify_password("TestPassword123", hashed) is True
        assert verify_password("testpassword123", hashed) is False


class TestPasswordStrength:
    @pytest.mark.parametrize("password", ["Sup3r$ecret", "Aa1@aaaa", "xY9!xY9!xY9!"])
    def test_strong_passwords(self, password: str) -> None:
        assert is_strong_password(password) is True

    @pytest.mark.parametrize(
        "password",
        [
            "Aa1@aaa",  # too short
            "aa1@aaaa",  # no uppercase
            "AA1@AAAA",  # no lowercase
            "Aaa@aaaa",  # no digit
            "Aa1aaaaa",  # no symbol
            "Aa1#aaaa",  # symbol outside the accepted set
        ],
    )
    def test_weak_passwords(self, password: str) -> None:
        assert is_strong_password(password) is False


class TestLogin:
    async def _credential(self, db: AsyncSession, email: str = "owner@example.com") -> str:
        credential = await AccountRepository(db).create_credential(
            email=email, password_hash=hash_password("Sup3r$ecret")
        )
        await db.commit()
        return credential.id

    async def test_login_returns_credential_and_tokens(self, db: AsyncSession) -> None:
        credential_id = await self._credential(db)

        result = await AuthService(db).login(email="owner@example.com", password="Sup3r$ecret")

        assert result["credential"]["id"] == credential_id
        assert result["credential"]["role"] == "owner"
        assert result["credential"]["last_login_at"] is not None
        assert result["tokens"].access_token
        assert result["tokens"].refresh_token

    async def test_login_wrong_password(self, db: AsyncSession) -> None:
        await self._credential(db)

        with pytest.raises(InvalidCredentialsError):
            await AuthService(db).login(email="owner@example.com", password="Wr0ng$pass")

    async def test_login_unknown_email(self, db: AsyncSession) -> None:
        with pytest.raises(InvalidCredentialsError):
            await AuthService(db).login(email="nobody@example.com", password="Sup3r$ecret")

    async def test_refresh_issues_new_pair(self, db: AsyncSession) -> None:
        await self._credential(db)
        service = AuthService(db)
        result = await service.login(email="owner@example.com", password="Sup3r$ecret")

        tokens = await service.refresh(refresh_token=result["tokens"].refresh_token)

        assert tokens.access_token
        assert tokens.token_type == "bearer"

    async def test_refresh_rejects_access_token(self, db: AsyncSession) -> None:
        await self._credential(db)
        service = AuthService(db)
        result = await service.login(email="owner@example.com", password="Sup3r$ecret")

        with pytest.raises(InvalidCredentialsError):
            await service.refresh(refresh_token=result["tokens"].access_token)
