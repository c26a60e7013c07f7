"""Initial schema for identities, accounts, credentials and verification codes

Revision ID: 202610010001
Revises:
Create Date: 2026-10-01 00:01:00
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "202610010001"
down_revision = None
branch_labels = None
depends_on = None

credential_role_enum = sa.Enum("owner", "admin", "member", name="credential_role")
verification_channel_enum = sa.Enum("email", "phone", name="verification_channel")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "postal_addresses",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("street", sa.String(length=255), nullable=False),
        sa.Column("number", sa.String(length=32), nullable=False),
        sa.Column("complement", sa.String(length=255), nullable=True),
        sa.Column("neighborhood", sa.String(length=128), nullable=False),
        sa.Column("city", sa.String(length=128), nullable=False),
        sa.Column("state", sa.String(length=64), nullable=False),
        sa.Column("country", sa.String(length=64), nullable=False),
        sa.Column("postal_code", sa.String(length=32), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "credentials",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("role", credential_role_enum, nullable=False, server_default="owner"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("email_verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_credentials_email", "credentials", ["email"], unique=True)

    op.create_table(
        "accounts",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "owner_credential_id",
            sa.String(length=36),
            sa.ForeignKey("credentials.id", ondelete="RESTRICT"),
            nullable=False,
            unique=True,
        ),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=32), nullable=True),
        sa.Column("document", sa.String(length=64), nullable=True),
        sa.Column("document_country_code", sa.String(length=2), nullable=True),
        sa.Column("plan_id", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint(
            "document_country_code", "document", name="uq_accounts_document_country"
        ),
    )

    op.create_table(
        "identities",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("document", sa.String(length=64), nullable=True),
        sa.Column("document_key", sa.String(length=64), nullable=True),
        sa.Column("document_type", sa.String(length=16), nullable=True),
        sa.Column("document_country_code", sa.String(length=2), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("phone_number", sa.String(length=32), nullable=True),
        sa.Column("phone_country_code", sa.String(length=8), nullable=True),
        sa.Column(
            "address_id",
            sa.String(length=36),
            sa.ForeignKey("postal_addresses.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("terms_accepted", sa.Boolean(), nullable=True),
        sa.Column("privacy_accepted", sa.Boolean(), nullable=True),
        sa.Column("pending_secrets", sa.JSON(), nullable=False),
        sa.Column(
            "linked_account_id",
            sa.String(length=36),
            sa.ForeignKey("accounts.id", ondelete="RESTRICT"),
            nullable=True,
            unique=True,
        ),
        *_timestamps(),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_identities_email", "identities", ["email"], unique=True)
    op.create_index(
        "ix_identities_document_key",
        "identities",
        ["document_country_code", "document_key"],
    )

    op.create_table(
        "qualification_answers",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("subject_id", sa.String(length=36), nullable=False),
        sa.Column("question_key", sa.String(length=64), nullable=False),
        sa.Column("answer", sa.JSON(), nullable=False),
        sa.Column("score", sa.Float(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("subject_id", "question_key", name="uq_qualification_per_subject"),
    )
    op.create_index(
        "ix_qualification_answers_subject_id", "qualification_answers", ["subject_id"]
    )

    op.create_table(
        "verification_codes",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "identity_id",
            sa.String(length=36),
            sa.ForeignKey("identities.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("channel", verification_channel_enum, nullable=False),
        sa.Column("destination", sa.String(length=255), nullable=False),
        sa.Column("code_hash", sa.String(length=64), nullable=False),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index(
        "ix_verification_codes_identity_channel",
        "verification_codes",
        ["identity_id", "channel"],
    )


def downgrade() -> None:
    op.drop_index("ix_verification_codes_identity_channel", table_name="verification_codes")
    op.drop_table("verification_codes")
    op.drop_index("ix_qualification_answers_subject_id", table_name="qualification_answers")
    op.drop_table("qualification_answers")
    op.drop_index("ix_identities_document_key", table_name="identities")
    op.drop_index("ix_identities_email", table_name="identities")
    op.drop_table("identities")
    op.drop_table("accounts")
    op.drop_index("ix_credentials_email", table_name="credentials")
    op.drop_table("credentials")
    op.drop_table("postal_addresses")

    verification_channel_enum.drop(op.get_bind(), checkfirst=True)
    credential_role_enum.drop(op.get_bind(), checkfirst=True)
