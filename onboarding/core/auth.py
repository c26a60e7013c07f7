from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import UTC, datetime, timedelta
from enum import Enum

import jwt
from onboarding.core.config import get_settings


class TokenError(Exception):
    """Raised when a token cannot be decoded or validated."""


class Role(str, Enum):
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"

    @classmethod
    def contains(cls, value: str) -> bool:
        return value in {role.value for role in cls}


class TokenType(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


def create_access_token(
    subject: str,
    *,
    roles: Sequence[str],
    email: str | None = None,
    account_id: str | None = None,
    token_type: TokenType = TokenType.ACCESS,
    expires_delta: timedelta | None = None,
) -> str:
    """Generate a signed JWT bound to a credential (``sub``) and its account."""
    settings = get_settings()

    invalid_roles = [role for role in roles if role not in settings.allowed_roles]
    if invalid_roles:
        joined_roles = ", ".join(invalid_roles)
        raise TokenError(f"Unsupported role(s): {joined_roles}")

    now = datetime.now(UTC)
    if expires_delta is None:
        ttl_seconds = (
            settings.refresh_token_ttl_seconds
            if token_type is TokenType.REFRESH
            else settings.access_token_ttl_seconds
        )
        expires_delta = timedelta(seconds=ttl_seconds)

    payload = {
        "sub": subject,
        "roles": list(roles),
        "type": token_type.value,
        "iat": int(now.timestamp()),
        "exp": int((now + expires_delta).timestamp()),
        "iss": settings.app_name,
    }

    if email:
        payload["email"] = email
    if account_id:
        payload["account_id"] = account_id

    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, *, expected_type: TokenType = TokenType.ACCESS) -> dict:
    """Decode and validate a JWT, enforcing its token type."""
    settings = get_settings()

    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "roles", "exp"]},
        )
    except jwt.PyJWTError as exc:  # pragma: no cover - third-party raises numerous subclasses
        raise TokenError("Invalid token") from exc

    if payload.get("type", TokenType.ACCESS.value) != expected_type.value:
        raise TokenError(f"Expected a {expected_type.value} token")

    _ensure_roles(payload.get("roles", []))
    return payload


def _ensure_roles(roles: Iterable[str]) -> None:
    for role in roles:
        if not Role.contains(role):
            raise TokenError(f"Unsupported role: {role}")
