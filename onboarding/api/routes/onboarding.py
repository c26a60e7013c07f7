"""Onboarding routes - progressive save, finalization and progress."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from onboarding.api.deps import get_db_session, get_verification_service, onboarding_http_error
from onboarding.api.schemas.onboarding import (
    DocumentTypesResponse,
    OnboardingProgressResponse,
    OnboardingSaveRequest,
    OnboardingSaveResponse,
    OnboardingSubmitRequest,
    OnboardingSubmitResponse,
)
from onboarding.domain.documents import document_types_for_country
from onboarding.domain.errors import OnboardingError
from onboarding.domain.services import (
    FinalizationService,
    OnboardingService,
    ProgressService,
    VerificationService,
)
from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()
router = APIRouter(prefix="/onboarding", tags=["onboarding"])


@router.post(
    "/save",
    response_model=OnboardingSaveResponse,
    summary="Save onboarding progress",
    description="Merge any subset of onboarding fields into the record keyed by email.",
)
async def save(
    payload: OnboardingSaveRequest,
    session: AsyncSession = Depends(get_db_session),
    verification: VerificationService = Depends(get_verification_service),
) -> OnboardingSaveResponse:
    service = OnboardingService(session, verification=verification)

    try:
        result = await service.save(payload.to_submission())
    except OnboardingError as exc:
        raise onboarding_http_error(exc) from exc

    return OnboardingSaveResponse(
        identity_id=result.identity_id,
        account_id=result.account_id,
        step=result.step,
        message=result.message,
        saved_fields=result.saved_fields,
    )


@router.post(
    "/submit",
    response_model=OnboardingSubmitResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Finalize onboarding",
    description="Create the account and owner credential, then return session tokens.",
)
async def submit(
    payload: OnboardingSubmitRequest,
    session: AsyncSession = Depends(get_db_session),
    verification: VerificationService = Depends(get_verification_service),
) -> OnboardingSubmitResponse:
    service = FinalizationService(session, verification=verification)

    try:
        result = await service.submit(payload.to_request())
    except OnboardingError as exc:
        raise onboarding_http_error(exc) from exc

    return OnboardingSubmitResponse(
        account_id=result.account_id,
        credential_id=result.credential_id,
        access_token=result.access_token,
        refresh_token=result.refresh_token,
        message=result.message,
    )


@router.get(
    "/progress",
    response_model=OnboardingProgressResponse,
    summary="Get onboarding progress",
    description="Resolve progress by email, or by document for older clients.",
)
async def get_progress(
    email: str | None = Query(None),
    document: str | None = Query(None),
    session: AsyncSession = Depends(get_db_session),
    verification: VerificationService = Depends(get_verification_service),
) -> OnboardingProgressResponse:
    identifier = email or document
    if not identifier:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email or document is required",
        )

    snapshot = await ProgressService(session, verification=verification).resolve(identifier)
    return OnboardingProgressResponse(
        identity_id=snapshot.identity_id,
        account_id=snapshot.account_id,
        status=snapshot.status.value,
        step=snapshot.step,
        data=snapshot.data,
    )


@router.get(
    "/document-types",
    response_model=DocumentTypesResponse,
    summary="List document types for a country",
)
async def get_document_types(
    country_code: str = Query(..., min_length=2, max_length=2),
) -> DocumentTypesResponse:
    return DocumentTypesResponse(
        country_code=country_code.upper(),
        document_types=document_types_for_country(country_code),
    )
