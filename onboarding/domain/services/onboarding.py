"""
Progressive onboarding save.

Each call merges one partial submission into the identity resolved by email.
Field writes are committed before any verification code is checked, so a
rejected code never loses the rest of the user's progress. Document format is
not checked here; validation happens only at finalization.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import structlog
from onboarding.domain.errors import EmailAlreadyExistsError
from onboarding.domain.models import QUESTION_KEYS, OnboardingSubmission, SaveResult
from onboarding.domain.services.auth_service import hash_password, verify_password
from onboarding.domain.services.verification import VerificationService, hash_code
from onboarding.domain.steps import OnboardingStep, StepFacts, infer_step
from onboarding.infrastructure.db.models import IdentityModel
from onboarding.infrastructure.repositories import IdentityConflictError, UnitOfWork
from onboarding.libs.code_delivery import CodeDeliveryError
from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

PASSWORD_SECRET = "password_hash"
EMAIL_CODE_SECRET = "email_code"
PHONE_CODE_SECRET = "phone_code"


def identity_step_facts(identity: IdentityModel, answers: Mapping[str, Any]) -> StepFacts:
    """Presence flags of an identity snapshot and its qualification answers."""
    secrets = identity.pending_secrets or {}
    return StepFacts(
        linked_account=identity.linked_account_id is not None,
        postal_address=identity.address_id is not None,
        business_options=bool(answers.get(QUESTION_KEYS["business_options"])),
        business_duration=answers.get(QUESTION_KEYS["business_duration"]) is not None,
        working_capital=answers.get(QUESTION_KEYS["working_capital"]) is not None,
        financial_operations=answers.get(QUESTION_KEYS["financial_operations"]) is not None,
        active_customers=answers.get(QUESTION_KEYS["active_customers"]) is not None,
        password=PASSWORD_SECRET in secrets,
        email_code=EMAIL_CODE_SECRET in secrets,
        phone_code=PHONE_CODE_SECRET in secrets,
        phone=bool(identity.phone_number),
        name=bool(identity.name),
        document=bool(identity.document),
    )


class OnboardingService:
    """Merges partial onboarding submissions into an identity."""

    def __init__(
        self,
        session: AsyncSession,
        *,
        verification: VerificationService | None = None,
    ) -> None:
        self.session = session
        self.uow = UnitOfWork(session)
        self.verification = verification or VerificationService(session)

    async def save(self, submission: OnboardingSubmission) -> SaveResult:
        email = submission.email.strip().lower()
        await logger.ainfo("onboarding_save_started", email=email)

        saved_fields: list[str] = []
        identity = await self.uow.identities.find_by_email(email)
        if identity is None:
            identity = await self._create_identity(email, submission, saved_fields)

        if identity.linked_account_id is not None:
            return await self._save_completed(identity, submission)

        phone_changed = await self._apply_fields(identity, submission, saved_fields)
        saved_fields.extend(await self._record_answers(identity.id, submission))
        await self.uow.commit()

        if phone_changed and identity.phone_number:
            await self._deliver(self.verification.send_phone_code, identity.id, identity.phone_number)

        # a rejected code raises here; the field writes above stay committed
        if submission.phone_code:
            await self.verification.verify_phone_code(identity.id, submission.phone_code)
            await self.uow.identities.set_secret(
                identity, PHONE_CODE_SECRET, hash_code(submission.phone_code)
            )
            saved_fields.append("phone_code")
        if submission.email_code:
            await self.verification.verify_email_code(identity.id, submission.email_code)
            await self.uow.identities.set_secret(
                identity, EMAIL_CODE_SECRET, hash_code(submission.email_code)
            )
            saved_fields.append("email_code")
        await self.uow.commit()

        status = await self.verification.get_status(identity.id)
        if not status.email_verified:
            await self._deliver(self.verification.send_email_code, identity.id, identity.email)

        step = await self._current_step(identity, identity.id)
        await logger.ainfo(
            "onboarding_save_completed",
            identity_id=identity.id,
            step=step.value,
            saved_fields=saved_fields,
        )
        return SaveResult(identity_id=identity.id, step=step.value, saved_fields=saved_fields)

    async def _create_identity(
        self, email: str, submission: OnboardingSubmission, saved_fields: list[str]
    ) -> IdentityModel:
        if await self.uow.accounts.credential_exists(email):
            await logger.awarning("onboarding_email_registered", email=email)
            raise EmailAlreadyExistsError(email)

        fields: dict[str, Any] = {}
        saved_fields.append("email")
        if submission.document:
            fields["document"] = submission.document.strip()
            saved_fields.append("document")
            if submission.document_type:
                fields["document_type"] = submission.document_type.lower()
                saved_fields.append("document_type")
            if submission.document_country_code:
                fields["document_country_code"] = submission.document_country_code.upper()
                saved_fields.append("document_country_code")
        if submission.name:
            fields["name"] = submission.name
            saved_fields.append("name")
        if submission.phone:
            fields["phone_number"] = submission.phone.number
            fields["phone_country_code"] = submission.phone.country_code
            saved_fields.append("phone")

        try:
            identity = await self.uow.identities.create(email=email, **fields)
        except IdentityConflictError as exc:
            raise EmailAlreadyExistsError(email) from exc
        await self.uow.commit()
        await logger.ainfo("identity_created", identity_id=identity.id)

        if submission.phone:
            await self._deliver(self.verification.send_phone_code, identity.id, submission.phone.number)
        return identity

    async def _apply_fields(
        self,
        identity: IdentityModel,
        submission: OnboardingSubmission,
        saved_fields: list[str],
    ) -> bool:
        """Write every supplied field that differs from the stored one.

        Returns whether the phone number changed.
        """
        changes: dict[str, Any] = {}

        def stage(field_name: str, column: str, value: Any) -> None:
            if value is not None and getattr(identity, column) != value:
                changes[column] = value
                if field_name not in saved_fields:
                    saved_fields.append(field_name)

        stage("name", "name", submission.name or None)
        if submission.document:
            stage("document", "document", submission.document.strip())
            if submission.document_type:
                stage("document_type", "document_type", submission.document_type.lower())
            if submission.document_country_code:
                stage(
                    "document_country_code",
                    "document_country_code",
                    submission.document_country_code.upper(),
                )

        phone_changed = False
        if submission.phone and submission.phone.number != identity.phone_number:
            changes["phone_number"] = submission.phone.number
            changes["phone_country_code"] = submission.phone.country_code
            phone_changed = True
            if "phone" not in saved_fields:
                saved_fields.append("phone")

        stage("terms_accepted", "terms_accepted", submission.terms_accepted)
        stage("privacy_accepted", "privacy_accepted", submission.privacy_accepted)

        if changes:
            await self.uow.identities.update(identity, **changes)

        if submission.password:
            stored = (identity.pending_secrets or {}).get(PASSWORD_SECRET)
            if stored is None or not verify_password(submission.password, stored):
                await self.uow.identities.set_secret(
                    identity, PASSWORD_SECRET, hash_password(submission.password)
                )
                saved_fields.append("password")

        if submission.address and await self.uow.identities.save_address(
            identity, submission.address
        ):
            saved_fields.append("address")

        return phone_changed

    async def _record_answers(self, subject_id: str, submission: OnboardingSubmission) -> list[str]:
        stored = await self.uow.qualifications.answers_map(subject_id)
        changed = [
            answer
            for answer in submission.business.answers()
            if stored.get(answer.question_key) != answer.answer
        ]
        if changed:
            await self.uow.qualifications.upsert_answers(subject_id, changed)
        written = {answer.question_key for answer in changed}
        return [attr for attr, key in QUESTION_KEYS.items() if key in written]

    async def _save_completed(
        self, identity: IdentityModel, submission: OnboardingSubmission
    ) -> SaveResult:
        """Finalized identities only accept qualification updates, owned by the account."""
        account_id = identity.linked_account_id
        saved_fields = await self._record_answers(account_id, submission)
        await self.uow.commit()
        await logger.ainfo(
            "onboarding_save_after_completion",
            identity_id=identity.id,
            account_id=account_id,
            saved_fields=saved_fields,
        )
        return SaveResult(
            identity_id=identity.id,
            account_id=account_id,
            step=OnboardingStep.COMPLETED.value,
            saved_fields=saved_fields,
        )

    async def _current_step(self, identity: IdentityModel, subject_id: str) -> OnboardingStep:
        answers = await self.uow.qualifications.answers_map(subject_id)
        return infer_step(identity_step_facts(identity, answers))

    async def _deliver(self, send, identity_id: str, destination: str) -> None:
        try:
            await send(identity_id, destination)
        except CodeDeliveryError as exc:
            await logger.awarning(
                "verification_delivery_failed", identity_id=identity_id, error=str(exc)
            )
