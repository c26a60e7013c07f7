"""Authentication routes - login, token refresh, profile."""

from __future__ import annotations

from dataclasses import asdict

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from onboarding.api.deps import get_current_user, get_db_session
from onboarding.api.schemas.auth import (
    CredentialResponse,
    LoginRequest,
    LoginResponse,
    MeResponse,
    RefreshTokenRequest,
    TokenResponse,
)
from onboarding.domain import User
from onboarding.domain.services.auth_service import (
    AuthService,
    CredentialInactiveError,
    CredentialNotFoundError,
    InvalidCredentialsError,
)
from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()
router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Credential login",
    description="Authenticate a finalized credential with email and password, returns JWT tokens.",
)
async def login(
    payload: LoginRequest,
    session: AsyncSession = Depends(get_db_session),
) -> LoginResponse:
    """Authenticate a credential and return tokens."""
    service = AuthService(session)

    try:
        result = await service.login(
            email=str(payload.email).lower(),
            password=payload.password,
        )
    except InvalidCredentialsError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc
    except CredentialInactiveError as exc:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=str(exc),
        ) from exc

    return LoginResponse(
        message="Login successful",
        credential=CredentialResponse(**result["credential"]),
        tokens=TokenResponse(**asdict(result["tokens"])),
    )


@router.post(
    "/refresh",
    response_model=TokenResponse,
    summary="Refresh tokens",
    description="Exchange a refresh token for a new access/refresh pair.",
)
async def refresh(
    payload: RefreshTokenRequest,
    session: AsyncSession = Depends(get_db_session),
) -> TokenResponse:
    service = AuthService(session)

    try:
        tokens = await service.refresh(refresh_token=payload.refresh_token)
    except (InvalidCredentialsError, CredentialNotFoundError) as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc
    except CredentialInactiveError as exc:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=str(exc),
        ) from exc

    return TokenResponse(**asdict(tokens))


@router.get(
    "/me",
    response_model=MeResponse,
    summary="Get current credential",
    description="Get the currently authenticated credential and its account.",
)
async def get_me(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> MeResponse:
    service = AuthService(session)

    try:
        credential = await service.get_credential(user.user_id)
    except CredentialNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc

    return MeResponse(credential=CredentialResponse(**credential))
