"""Password hashing, token issuance and credential login."""

from __future__ import annotations

import string
from datetime import UTC, datetime

import structlog
from onboarding.core.auth import TokenError, TokenType, create_access_token, decode_access_token
from onboarding.core.config import get_settings
from onboarding.domain.models import TokenPair
from onboarding.infrastructure.db.models import CredentialModel
from onboarding.infrastructure.repositories import AccountRepository
from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

PASSWORD_MIN_LENGTH = 8
PASSWORD_SYMBOLS = frozenset("@$!%*?&")


class AuthError(Exception):
    """Base exception for authentication errors."""


class InvalidCredentialsError(AuthError):
    """Raised when login credentials are invalid."""


class CredentialNotFoundError(AuthError):
    """Raised when a credential is not found."""


class CredentialInactiveError(AuthError):
    """Raised when the credential has been deactivated."""


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


def is_strong_password(password: str) -> bool:
    """At least 8 characters with a lowercase, an uppercase, a digit and one of ``@$!%*?&``."""
    return (
        len(password) >= PASSWORD_MIN_LENGTH
        and any(ch in string.ascii_lowercase for ch in password)
        and any(ch in string.ascii_uppercase for ch in password)
        and any(ch in string.digits for ch in password)
        and any(ch in PASSWORD_SYMBOLS for ch in password)
    )


class TokenIssuer:
    """Issues access/refresh token pairs bound to a credential and its account."""

    def issue(
        self,
        credential_id: str,
        account_id: str | None,
        role: str,
        *,
        email: str | None = None,
    ) -> TokenPair:
        settings = get_settings()
        access_token = create_access_token(
            credential_id,
            roles=[role],
            email=email,
            account_id=account_id,
            token_type=TokenType.ACCESS,
        )
        refresh_token = create_access_token(
            credential_id,
            roles=[role],
            email=email,
            account_id=account_id,
            token_type=TokenType.REFRESH,
        )
        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=settings.access_token_ttl_seconds,
        )


class AuthService:
    """Login and token refresh for finalized credentials."""

    def __init__(self, session: AsyncSession, tokens: TokenIssuer | None = None) -> None:
        self.session = session
        self.accounts = AccountRepository(session)
        self.tokens = tokens or TokenIssuer()

    async def login(self, *, email: str, password: str) -> dict:
        await logger.ainfo("login_attempt", email=email)

        credential = await self.accounts.get_credential_by_email(email)
        if credential is None or not verify_password(password, credential.password_hash):
            await logger.awarning("login_rejected", email=email)
            raise InvalidCredentialsError("Invalid email or password")

        if not credential.is_active:
            await logger.awarning("login_inactive_credential", email=email)
            raise CredentialInactiveError("Account is inactive")

        credential.last_login_at = datetime.now(UTC)
        await self.session.commit()

        account = await self.accounts.get_account_by_owner(credential.id)
        tokens = self.tokens.issue(
            credential.id,
            account.id if account else None,
            credential.role.value,
            email=credential.email,
        )
        await logger.ainfo("login_success", credential_id=credential.id)

        return {
            "credential": self._credential_to_dict(credential, account.id if account else None),
            "tokens": tokens,
        }

    async def refresh(self, *, refresh_token: str) -> TokenPair:
        try:
            payload = decode_access_token(refresh_token, expected_type=TokenType.REFRESH)
        except TokenError as exc:
            raise InvalidCredentialsError(str(exc)) from exc

        credential = await self.accounts.get_credential(payload["sub"])
        if credential is None:
            raise CredentialNotFoundError(f"Credential {payload['sub']} not found")
        if not credential.is_active:
            raise CredentialInactiveError("Account is inactive")

        return self.tokens.issue(
            credential.id,
            payload.get("account_id"),
            credential.role.value,
            email=credential.email,
        )

    async def get_credential(self, credential_id: str) -> dict:
        credential = await self.accounts.get_credential(credential_id)
        if credential is None:
            raise CredentialNotFoundError(f"Credential {credential_id} not found")
        account = await self.accounts.get_account_by_owner(credential.id)
        return self._credential_to_dict(credential, account.id if account else None)

    def _credential_to_dict(self, credential: CredentialModel, account_id: str | None) -> dict:
        return {
            "id": credential.id,
            "email": credential.email,
            "role": credential.role.value,
            "is_active": credential.is_active,
            "account_id": account_id,
            "email_verified_at": credential.email_verified_at,
            "last_login_at": credential.last_login_at,
        }
