from __future__ import annotations

from typing import Any

import structlog
from onboarding.domain.documents import normalize
from onboarding.domain.models import PostalAddress
from onboarding.infrastructure.db.models import IdentityModel, PostalAddressModel
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


class IdentityConflictError(Exception):
    """Raised when a write violates a uniqueness constraint on identities."""


def _with_document_key(fields: dict[str, Any]) -> None:
    if "document" in fields:
        key = normalize(fields["document"] or "")
        fields["document_key"] = key or None


class IdentityRepository:
    """Lookup and persistence of onboarding identities and their postal address.

    Writes are flushed, not committed; the calling service owns the
    transaction boundary.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    def _active(self):
        return select(IdentityModel).where(IdentityModel.deleted_at.is_(None))

    async def find_by_email(self, email: str) -> IdentityModel | None:
        stmt = self._active().where(IdentityModel.email == email.strip().lower())
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_by_document(
        self, country_code: str | None, document: str
    ) -> IdentityModel | None:
        """Find by normalized document; any country when ``country_code`` is None."""
        key = normalize(document)
        if not key:
            return None
        stmt = self._active().where(IdentityModel.document_key == key)
        if country_code is not None:
            stmt = stmt.where(IdentityModel.document_country_code == country_code.upper())
        stmt = stmt.order_by(IdentityModel.created_at).limit(1)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def document_taken(
        self, country_code: str, document: str, *, exclude_id: str
    ) -> bool:
        """Whether another identity already holds ``document`` in ``country_code``."""
        key = normalize(document)
        if not key:
            return False
        stmt = (
            select(IdentityModel.id)
            .where(
                IdentityModel.deleted_at.is_(None),
                IdentityModel.document_key == key,
                IdentityModel.document_country_code == country_code.upper(),
                IdentityModel.id != exclude_id,
            )
            .limit(1)
        )
        return (await self.session.scalar(stmt)) is not None

    async def create(self, *, email: str, **fields: Any) -> IdentityModel:
        _with_document_key(fields)
        identity = IdentityModel(
            email=email.strip().lower(), pending_secrets={}, address=None, **fields
        )
        self.session.add(identity)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            await self.session.rollback()
            await logger.awarning("identity_create_conflict", email=identity.email)
            raise IdentityConflictError(f"Identity for {identity.email} already exists") from exc
        return identity

    async def update(self, identity: IdentityModel, **fields: Any) -> IdentityModel:
        _with_document_key(fields)
        for key, value in fields.items():
            setattr(identity, key, value)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            await self.session.rollback()
            raise IdentityConflictError(f"Identity {identity.id} update conflicts") from exc
        return identity

    async def save_address(self, identity: IdentityModel, address: PostalAddress) -> bool:
        """Create or update the linked address; returns whether anything changed."""
        values = address.as_dict()
        current = identity.address
        if current is None:
            current = PostalAddressModel(**values)
            self.session.add(current)
            await self.session.flush()
            identity.address_id = current.id
            identity.address = current
            await self.session.flush()
            return True

        changed = False
        for key, value in values.items():
            if getattr(current, key) != value:
                setattr(current, key, value)
                changed = True
        if changed:
            await self.session.flush()
        return changed

    async def set_secret(self, identity: IdentityModel, key: str, value: str) -> None:
        secrets = dict(identity.pending_secrets or {})
        secrets[key] = value
        identity.pending_secrets = secrets
        await self.session.flush()

    async def clear_secrets(self, identity: IdentityModel) -> None:
        identity.pending_secrets = {}
        await self.session.flush()
