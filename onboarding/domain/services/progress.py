"""
Onboarding progress resolution for resuming the UI.

Read only: rebuilds the status, step and known fields from the stored
identity, its verification status and its qualification answers.
"""

from __future__ import annotations

import re
from typing import Any

import structlog
from onboarding.domain.models import QUESTION_KEYS, OnboardingStatus, ProgressSnapshot
from onboarding.domain.services.onboarding import identity_step_facts
from onboarding.domain.services.verification import VerificationService
from onboarding.domain.steps import OnboardingStep, infer_step
from onboarding.infrastructure.db.models import IdentityModel
from onboarding.infrastructure.repositories import UnitOfWork
from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

EMAIL_SHAPE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def is_email_shaped(identifier: str) -> bool:
    return bool(EMAIL_SHAPE.match(identifier))


def as_option_list(value: Any) -> list[str] | None:
    """Stored business options as a list; a scalar answer becomes a single item."""
    if value is None:
        return None
    if isinstance(value, list):
        return [str(item) for item in value]
    return [str(value)]


class ProgressService:
    """Resolves a progress snapshot by email or, for older clients, by document."""

    def __init__(
        self,
        session: AsyncSession,
        *,
        verification: VerificationService | None = None,
    ) -> None:
        self.session = session
        self.uow = UnitOfWork(session)
        self.verification = verification or VerificationService(session)

    async def resolve(self, identifier: str) -> ProgressSnapshot:
        identifier = identifier.strip()
        by_email = is_email_shaped(identifier)

        if by_email:
            identity = await self.uow.identities.find_by_email(identifier.lower())
        else:
            identity = await self.uow.identities.find_by_document(None, identifier)

        if identity is None:
            logger.debug("progress_not_started", by_email=by_email)
            return ProgressSnapshot(
                status=OnboardingStatus.NOT_STARTED,
                step=(OnboardingStep.EMAIL if by_email else OnboardingStep.DOCUMENT).value,
                data={
                    ("email" if by_email else "document"): identifier,
                    "email_verified": False,
                    "phone_verified": False,
                },
            )

        subject_id = identity.linked_account_id or identity.id
        answers = await self.uow.qualifications.answers_map(subject_id)
        status = await self.verification.get_status(identity.id)
        step = infer_step(identity_step_facts(identity, answers))

        return ProgressSnapshot(
            identity_id=identity.id,
            account_id=identity.linked_account_id,
            status=(
                OnboardingStatus.COMPLETED
                if identity.linked_account_id
                else OnboardingStatus.IN_PROGRESS
            ),
            step=step.value,
            data=self._known_fields(identity, answers, status.email_verified, status.phone_verified),
        )

    def _known_fields(
        self,
        identity: IdentityModel,
        answers: dict[str, Any],
        email_verified: bool,
        phone_verified: bool,
    ) -> dict[str, Any]:
        address = identity.address
        return {
            "email": identity.email,
            "document": identity.document,
            "document_type": identity.document_type,
            "document_country_code": identity.document_country_code,
            "name": identity.name,
            "phone": identity.phone_number,
            "phone_country_code": identity.phone_country_code,
            "email_verified": email_verified,
            "phone_verified": phone_verified,
            "address": (
                {
                    "street": address.street,
                    "number": address.number,
                    "complement": address.complement,
                    "neighborhood": address.neighborhood,
                    "city": address.city,
                    "state": address.state,
                    "country": address.country,
                    "postal_code": address.postal_code,
                }
                if address is not None
                else None
            ),
            "active_customers": answers.get(QUESTION_KEYS["active_customers"]),
            "financial_operations": answers.get(QUESTION_KEYS["financial_operations"]),
            "working_capital": answers.get(QUESTION_KEYS["working_capital"]),
            "business_duration": answers.get(QUESTION_KEYS["business_duration"]),
            "business_options": as_option_list(answers.get(QUESTION_KEYS["business_options"])),
            "terms_accepted": identity.terms_accepted,
            "privacy_accepted": identity.privacy_accepted,
        }
