"""
Email and phone verification gateway.

Codes are random digits, stored only as SHA-256 digests, one row per send.
The most recent row of a channel decides that channel's status, so sending
to a new destination resets it to unverified.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
from datetime import UTC, datetime, timedelta

import structlog
from onboarding.core.config import get_settings
from onboarding.domain.errors import VerificationFailedError
from onboarding.domain.models import VerificationStatus
from onboarding.infrastructure.db.models import VerificationChannelType, VerificationCodeModel
from onboarding.libs.code_delivery import (
    CodeDeliveryError,
    CodeSenderProtocol,
    LoggingCodeSender,
    ResendEmailCodeSender,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


def hash_code(code: str) -> str:
    return hashlib.sha256(code.strip().encode("utf-8")).hexdigest()


def _aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


class VerificationService:
    """Sends and checks one-time codes for the email and phone channels."""

    def __init__(
        self,
        session: AsyncSession,
        *,
        email_sender: CodeSenderProtocol | None = None,
        phone_sender: CodeSenderProtocol | None = None,
    ) -> None:
        self.session = session
        self.settings = get_settings()
        self.email_sender = email_sender or ResendEmailCodeSender()
        self.phone_sender = phone_sender or LoggingCodeSender("phone")

    async def send_email_code(self, identity_id: str, email: str) -> bool:
        return await self._send(
            identity_id, VerificationChannelType.EMAIL, email.strip().lower(), self.email_sender
        )

    async def send_phone_code(self, identity_id: str, phone: str) -> bool:
        return await self._send(
            identity_id, VerificationChannelType.PHONE, phone.strip(), self.phone_sender
        )

    async def verify_email_code(self, identity_id: str, code: str) -> None:
        await self._verify(identity_id, VerificationChannelType.EMAIL, code)

    async def verify_phone_code(self, identity_id: str, code: str) -> None:
        await self._verify(identity_id, VerificationChannelType.PHONE, code)

    async def get_status(self, identity_id: str) -> VerificationStatus:
        email = await self._latest(identity_id, VerificationChannelType.EMAIL)
        phone = await self._latest(identity_id, VerificationChannelType.PHONE)
        return VerificationStatus(
            email_verified=email is not None and email.verified_at is not None,
            phone_verified=phone is not None and phone.verified_at is not None,
        )

    async def _latest(
        self, identity_id: str, channel: VerificationChannelType
    ) -> VerificationCodeModel | None:
        stmt = (
            select(VerificationCodeModel)
            .where(
                VerificationCodeModel.identity_id == identity_id,
                VerificationCodeModel.channel == channel,
            )
            .order_by(VerificationCodeModel.sent_at.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    def _generate_code(self) -> str:
        length = self.settings.verification_code_length
        return "".join(secrets.choice("0123456789") for _ in range(length))

    async def _send(
        self,
        identity_id: str,
        channel: VerificationChannelType,
        destination: str,
        sender: CodeSenderProtocol,
    ) -> bool:
        """Issue and deliver a code; returns False when a recent pending code is reused."""
        now = datetime.now(UTC)
        cooldown = timedelta(seconds=self.settings.verification_resend_cooldown_seconds)
        latest = await self._latest(identity_id, channel)

        if (
            latest is not None
            and latest.verified_at is None
            and latest.destination == destination
            and _aware(latest.expires_at) > now
            and now - _aware(latest.sent_at) < cooldown
        ):
            logger.debug("verification_send_skipped", identity_id=identity_id, channel=channel.value)
            return False

        ttl = self.settings.verification_code_ttl_seconds
        code = self._generate_code()
        record = VerificationCodeModel(
            identity_id=identity_id,
            channel=channel,
            destination=destination,
            code_hash=hash_code(code),
            attempts=0,
            sent_at=now,
            expires_at=now + timedelta(seconds=ttl),
        )
        self.session.add(record)
        await self.session.commit()

        try:
            await sender.send_code(destination=destination, code=code, ttl_seconds=ttl)
        except CodeDeliveryError:
            # an undelivered code must not count as pending
            record.expires_at = now
            await self.session.commit()
            raise

        logger.info("verification_code_sent", identity_id=identity_id, channel=channel.value)
        return True

    async def _verify(
        self, identity_id: str, channel: VerificationChannelType, code: str
    ) -> None:
        latest = await self._latest(identity_id, channel)
        if latest is None:
            raise VerificationFailedError(channel.value, "No code was sent")

        digest = hash_code(code)
        if latest.verified_at is not None:
            if hmac.compare_digest(latest.code_hash, digest):
                return
            raise VerificationFailedError(channel.value, "Invalid code")

        if _aware(latest.expires_at) <= datetime.now(UTC):
            raise VerificationFailedError(channel.value, "Code expired")
        if latest.attempts >= self.settings.verification_max_attempts:
            raise VerificationFailedError(channel.value, "Too many attempts")

        if not hmac.compare_digest(latest.code_hash, digest):
            latest.attempts += 1
            await self.session.commit()
            await logger.awarning(
                "verification_code_rejected",
                identity_id=identity_id,
                channel=channel.value,
                attempts=latest.attempts,
            )
            raise VerificationFailedError(channel.value, "Invalid code")

        latest.verified_at = datetime.now(UTC)
        await self.session.commit()
        await logger.ainfo("verification_code_accepted", identity_id=identity_id, channel=channel.value)
