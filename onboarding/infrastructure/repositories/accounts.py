from __future__ import annotations

from datetime import UTC, datetime

from onboarding.infrastructure.db.models import AccountModel, CredentialModel, CredentialRole
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession


class CredentialEmailTakenError(Exception):
    """Raised when the unique index on credential email rejects an insert."""


class AccountDocumentTakenError(Exception):
    """Raised when the unique (country, document) index on accounts rejects an insert."""


class AccountRepository:
    """Credential and account persistence used by finalization and login."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def credential_exists(self, email: str) -> bool:
        stmt = select(CredentialModel.id).where(CredentialModel.email == email.strip().lower())
        return (await self.session.scalar(stmt)) is not None

    async def get_credential_by_email(self, email: str) -> CredentialModel | None:
        stmt = select(CredentialModel).where(CredentialModel.email == email.strip().lower())
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_credential(self, credential_id: str) -> CredentialModel | None:
        return await self.session.get(CredentialModel, credential_id)

    async def get_account_by_owner(self, credential_id: str) -> AccountModel | None:
        stmt = select(AccountModel).where(AccountModel.owner_credential_id == credential_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create_credential(
        self,
        *,
        email: str,
        password_hash: str,
        role: CredentialRole = CredentialRole.OWNER,
        email_verified: bool = True,
    ) -> CredentialModel:
        credential = CredentialModel(
            email=email.strip().lower(),
            password_hash=password_hash,
            role=role,
            is_active=True,
            email_verified_at=datetime.now(UTC) if email_verified else None,
        )
        self.session.add(credential)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise CredentialEmailTakenError(credential.email) from exc
        return credential

    async def create_account(
        self,
        *,
        owner: CredentialModel,
        name: str,
        email: str,
        phone: str | None,
        document: str | None,
        document_country_code: str | None,
        plan_id: int | None,
    ) -> AccountModel:
        account = AccountModel(
            owner_credential_id=owner.id,
            owner=owner,
            name=name,
            email=email,
            phone=phone,
            document=document,
            document_country_code=document_country_code,
            plan_id=plan_id,
        )
        self.session.add(account)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise AccountDocumentTakenError(document) from exc
        return account
