from __future__ import annotations

import enum
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class CredentialRole(str, enum.Enum):
    """Credential role enum matching auth.Role."""

    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


class VerificationChannelType(str, enum.Enum):
    EMAIL = "email"
    PHONE = "phone"


class PostalAddressModel(Base):
    __tablename__ = "postal_addresses"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    street: Mapped[str] = mapped_column(String(255), nullable=False)
    number: Mapped[str] = mapped_column(String(32), nullable=False)
    complement: Mapped[str | None] = mapped_column(String(255))
    neighborhood: Mapped[str] = mapped_column(String(128), nullable=False)
    city: Mapped[str] = mapped_column(String(128), nullable=False)
    state: Mapped[str] = mapped_column(String(64), nullable=False)
    country: Mapped[str] = mapped_column(String(64), nullable=False)
    postal_code: Mapped[str] = mapped_column(String(32), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class IdentityModel(Base):
    """Evolving onboarding subject, keyed by email until it is linked to an account."""

    __tablename__ = "identities"
    __table_args__ = (Index("ix_identities_document_key", "document_country_code", "document_key"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    document: Mapped[str | None] = mapped_column(String(64))
    # normalized form of `document`, maintained by the repository for lookups
    document_key: Mapped[str | None] = mapped_column(String(64))
    document_type: Mapped[str | None] = mapped_column(String(16))
    document_country_code: Mapped[str | None] = mapped_column(String(2))
    name: Mapped[str | None] = mapped_column(String(255))
    phone_number: Mapped[str | None] = mapped_column(String(32))
    phone_country_code: Mapped[str | None] = mapped_column(String(8))
    address_id: Mapped[str | None] = mapped_column(
        ForeignKey("postal_addresses.id", ondelete="SET NULL")
    )
    terms_accepted: Mapped[bool | None] = mapped_column(Boolean)
    privacy_accepted: Mapped[bool | None] = mapped_column(Boolean)
    # password hash and accepted verification code digests; replaced, never mutated in place
    pending_secrets: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    linked_account_id: Mapped[str | None] = mapped_column(
        ForeignKey("accounts.id", ondelete="RESTRICT"), unique=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    address: Mapped[PostalAddressModel | None] = relationship(lazy="selectin")

    def __repr__(self) -> str:
        return f"<IdentityModel(id={self.id}, email={self.email})>"


class CredentialModel(Base):
    """Login credential created once, at finalization."""

    __tablename__ = "credentials"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[CredentialRole] = mapped_column(
        Enum(
            CredentialRole,
            name="credential_role",
            values_callable=lambda e: [x.value for x in e],
        ),
        default=CredentialRole.OWNER,
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    email_verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<CredentialModel(id={self.id}, email={self.email}, role={self.role.value})>"


class AccountModel(Base):
    __tablename__ = "accounts"
    __table_args__ = (
        UniqueConstraint(
            "document_country_code", "document", name="uq_accounts_document_country"
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    owner_credential_id: Mapped[str] = mapped_column(
        ForeignKey("credentials.id", ondelete="RESTRICT"), unique=True, nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(32))
    document: Mapped[str | None] = mapped_column(String(64))
    document_country_code: Mapped[str | None] = mapped_column(String(2))
    plan_id: Mapped[int | None] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    owner: Mapped[CredentialModel] = relationship(lazy="selectin")


class QualificationAnswerModel(Base):
    """Business qualification answer owned by an identity, later by its account."""

    __tablename__ = "qualification_answers"
    __table_args__ = (
        UniqueConstraint("subject_id", "question_key", name="uq_qualification_per_subject"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    subject_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    question_key: Mapped[str] = mapped_column(String(64), nullable=False)
    answer: Mapped[Any] = mapped_column(JSON, nullable=False)
    score: Mapped[float | None] = mapped_column(Float)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class VerificationCodeModel(Base):
    __tablename__ = "verification_codes"
    __table_args__ = (Index("ix_verification_codes_identity_channel", "identity_id", "channel"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    identity_id: Mapped[str] = mapped_column(
        ForeignKey("identities.id", ondelete="CASCADE"), nullable=False
    )
    channel: Mapped[VerificationChannelType] = mapped_column(
        Enum(
            VerificationChannelType,
            name="verification_channel",
            values_callable=lambda e: [x.value for x in e],
        ),
        nullable=False,
    )
    destination: Mapped[str] = mapped_column(String(255), nullable=False)
    code_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    sent_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
