from __future__ import annotations

from collections.abc import AsyncIterator, Iterable

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from onboarding.core.auth import Role, TokenError, create_access_token, decode_access_token
from onboarding.domain import User
from onboarding.domain.errors import (
    DocumentAlreadyExistsError,
    EmailAlreadyExistsError,
    IdentityNotFoundError,
    OnboardingError,
)
from onboarding.domain.services.verification import VerificationService
from onboarding.infrastructure.db.session import get_session
from sqlalchemy.ext.asyncio import AsyncSession

bearer_scheme = HTTPBearer(auto_error=False)

_ERROR_STATUS: dict[type[OnboardingError], int] = {
    EmailAlreadyExistsError: status.HTTP_409_CONFLICT,
    DocumentAlreadyExistsError: status.HTTP_409_CONFLICT,
    IdentityNotFoundError: status.HTTP_404_NOT_FOUND,
}


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),  # noqa: B008
) -> User:
    """Resolve the authenticated credential from a bearer token."""
    if credentials is None:
        raise _unauthorized("Missing bearer token")

    try:
        payload = decode_access_token(credentials.credentials)
    except TokenError as exc:
        raise _unauthorized(str(exc)) from exc

    user_id = payload.get("sub")
    roles: Iterable[str] = payload.get("roles", [])

    if not user_id:
        raise _unauthorized("Token missing subject")

    if not roles:
        raise _forbidden("Token missing required roles")

    return User(
        user_id=user_id,
        email=payload.get("email", ""),
        roles=list(roles),
        account_id=payload.get("account_id"),
    )


def issue_smoke_token(
    user_id: str, *, role: Role, email: str | None = None, account_id: str | None = None
) -> str:
    """Generate a signed token for manual smoke testing."""
    return create_access_token(user_id, roles=[role.value], email=email, account_id=account_id)


async def get_db_session() -> AsyncIterator[AsyncSession]:
    """Provide an async SQLAlchemy session for API handlers."""
    async for session in get_session():
        yield session


async def get_verification_service(
    session: AsyncSession = Depends(get_db_session),  # noqa: B008
) -> VerificationService:
    """Verification gateway bound to the request session."""
    return VerificationService(session)


def onboarding_http_error(exc: OnboardingError) -> HTTPException:
    """Render a typed onboarding error as ``{kind, message, details}``."""
    status_code = _ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    return HTTPException(status_code=status_code, detail=exc.to_dict())


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def _forbidden(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
