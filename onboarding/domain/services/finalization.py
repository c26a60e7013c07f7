"""
Onboarding finalization.

Turns an identity into a Credential + Account pair. Preconditions are
checked in a fixed order and the first failure is raised:

1. required fields
2. password strength
3. identity exists for the email
4. email verified, then phone verified
5. document triple complete, valid and not held by another identity
6. no credential owns the email yet

The writes then run in one transaction, including the normalized document on
the identity, so a rejected finalize leaves the identity untouched. The
unique indexes on credential email and on account
``(document_country_code, document)`` back the read checks, so a concurrent
finalize for the same email or document fails with the matching typed error
instead of creating a duplicate.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog
from onboarding.domain import documents
from onboarding.domain.errors import (
    DocumentAlreadyExistsError,
    EmailAlreadyExistsError,
    EmailNotVerifiedError,
    IdentityNotFoundError,
    InvalidDocumentError,
    MissingRequiredFieldsError,
    PhoneNotVerifiedError,
    WeakPasswordError,
)
from onboarding.domain.models import FinalizationRequest, SubmitResult
from onboarding.domain.services.auth_service import TokenIssuer, hash_password, is_strong_password
from onboarding.domain.services.verification import VerificationService
from onboarding.infrastructure.db.models import CredentialRole, IdentityModel
from onboarding.infrastructure.repositories import (
    AccountDocumentTakenError,
    CredentialEmailTakenError,
    UnitOfWork,
)
from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


@dataclass(slots=True)
class DocumentTriple:
    document: str
    document_type: str
    country_code: str


def missing_required_fields(request: FinalizationRequest) -> list[str]:
    """Every finalize-mandatory field that is absent, in a stable order."""
    missing: list[str] = []
    if not request.email:
        missing.append("email")
    if not request.password:
        missing.append("password")
    if not request.name:
        missing.append("name")
    if not request.business.business_options:
        missing.append("business_options")
    if request.terms_accepted is not True:
        missing.append("terms_accepted")
    if request.privacy_accepted is not True:
        missing.append("privacy_accepted")
    return missing


class FinalizationService:
    """Validates finalize preconditions and creates the login-capable account."""

    def __init__(
        self,
        session: AsyncSession,
        *,
        verification: VerificationService | None = None,
        tokens: TokenIssuer | None = None,
    ) -> None:
        self.session = session
        self.uow = UnitOfWork(session)
        self.verification = verification or VerificationService(session)
        self.tokens = tokens or TokenIssuer()

    async def submit(self, request: FinalizationRequest) -> SubmitResult:
        missing = missing_required_fields(request)
        if missing:
            await logger.awarning("finalize_rejected", reason="missing_fields", fields=missing)
            raise MissingRequiredFieldsError(missing)

        if not is_strong_password(request.password):
            await logger.awarning("finalize_rejected", reason="weak_password")
            raise WeakPasswordError()

        email = request.email.strip().lower()
        identity = await self.uow.identities.find_by_email(email)
        if identity is None:
            await logger.awarning("finalize_rejected", reason="identity_not_found", email=email)
            raise IdentityNotFoundError(email)

        status = await self.verification.get_status(identity.id)
        if not status.email_verified:
            raise EmailNotVerifiedError()
        if not status.phone_verified:
            raise PhoneNotVerifiedError()

        triple = self._document_triple(request, identity)
        if triple is not None:
            triple = await self._check_document(identity, triple)

        if await self.uow.accounts.credential_exists(email):
            await logger.awarning("finalize_rejected", reason="credential_exists", email=email)
            raise EmailAlreadyExistsError(email)

        async with self.uow:
            credential_id, account_id = await self._create_account(
                identity, request, email, triple
            )

        tokens = self.tokens.issue(
            credential_id, account_id, CredentialRole.OWNER.value, email=email
        )
        await logger.ainfo(
            "finalize_completed",
            identity_id=identity.id,
            account_id=account_id,
            credential_id=credential_id,
        )
        return SubmitResult(
            account_id=account_id,
            credential_id=credential_id,
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
        )

    def _document_triple(
        self, request: FinalizationRequest, identity: IdentityModel
    ) -> DocumentTriple | None:
        """The document that will be bound to the account, if any.

        A triple supplied with the request wins; otherwise the one carried
        from the save steps is used, so no unvalidated document reaches an
        account.
        """
        parts = (request.document, request.document_type, request.document_country_code)
        if not any(parts):
            parts = (identity.document, identity.document_type, identity.document_country_code)
            if not any(parts):
                return None

        document, document_type, country_code = parts
        if not (document and document_type and country_code):
            raise InvalidDocumentError(
                "document, document_type and document_country_code must be provided together",
                {"document_type": document_type, "country_code": country_code},
            )
        return DocumentTriple(document, document_type.lower(), country_code.upper())

    async def _check_document(
        self, identity: IdentityModel, triple: DocumentTriple
    ) -> DocumentTriple:
        """Validate the triple and return it with the document normalized."""
        details = {"document_type": triple.document_type, "country_code": triple.country_code}
        if not documents.validate(triple.document, triple.document_type, triple.country_code):
            await logger.awarning("finalize_rejected", reason="invalid_document", **details)
            raise InvalidDocumentError(
                f"Invalid {triple.document_type} for country {triple.country_code}", details
            )

        normalized = documents.normalize(triple.document)
        if await self.uow.identities.document_taken(
            triple.country_code, normalized, exclude_id=identity.id
        ):
            await logger.awarning("finalize_rejected", reason="document_exists", **details)
            raise DocumentAlreadyExistsError(triple.document_type, triple.country_code)

        return DocumentTriple(normalized, triple.document_type, triple.country_code)

    async def _create_account(
        self,
        identity: IdentityModel,
        request: FinalizationRequest,
        email: str,
        triple: DocumentTriple | None,
    ) -> tuple[str, str]:
        try:
            credential = await self.uow.accounts.create_credential(
                email=email,
                password_hash=hash_password(request.password),
                role=CredentialRole.OWNER,
            )
        except CredentialEmailTakenError as exc:
            await logger.awarning("finalize_conflict", reason="credential_exists", email=email)
            raise EmailAlreadyExistsError(email) from exc

        phone = request.phone.number if request.phone else identity.phone_number
        try:
            account = await self.uow.accounts.create_account(
                owner=credential,
                name=request.account_name or request.name or identity.name,
                email=(request.account_email or email).strip().lower(),
                phone=phone,
                document=triple.document if triple else None,
                document_country_code=triple.country_code if triple else None,
                plan_id=request.plan_id,
            )
        except AccountDocumentTakenError as exc:
            await logger.awarning("finalize_conflict", reason="document_exists", email=email)
            raise DocumentAlreadyExistsError(
                triple.document_type if triple else None,
                triple.country_code if triple else None,
            ) from exc

        linked: dict[str, str] = {"linked_account_id": account.id}
        if triple is not None:
            linked.update(
                document=triple.document,
                document_type=triple.document_type,
                document_country_code=triple.country_code,
            )
        await self.uow.identities.update(identity, **linked)
        if request.address:
            await self.uow.identities.save_address(identity, request.address)
        await self.uow.identities.clear_secrets(identity)

        await self.uow.qualifications.rekey_subject(identity.id, account.id)
        await self.uow.qualifications.upsert_answers(account.id, request.business.answers())

        return credential.id, account.id
