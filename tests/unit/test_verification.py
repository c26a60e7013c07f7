"""Unit tests for the verification gateway."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from onboarding.domain.errors import VerificationFailedError
from onboarding.domain.services.verification import VerificationService, hash_code
from onboarding.infrastructure.db.models import VerificationChannelType
from onboarding.infrastructure.repositories import IdentityRepository
from onboarding.libs.code_delivery import CodeDeliveryError
from tests.utils import RecordingCodeSender

EMAIL = "maria@example.com"


@pytest.fixture()
async def identity_id(db: AsyncSession) -> str:
    identity = await IdentityRepository(db).create(email=EMAIL)
    await db.commit()
    return identity.id


async def test_send_stores_only_digest(
    verification: VerificationService, email_sender: RecordingCodeSender, identity_id: str
) -> None:
    assert await verification.send_email_code(identity_id, EMAIL) is True

    code = email_sender.last_code(EMAIL)
    latest = await verification._latest(identity_id, VerificationChannelType.EMAIL)
    assert len(code) == 6 and code.isdigit()
    assert latest.code_hash == hash_code(code)
    assert latest.code_hash != code


async def test_resend_within_cooldown_is_skipped(
    verification: VerificationService, email_sender: RecordingCodeSender, identity_id: str
) -> None:
    await verification.send_email_code(identity_id, EMAIL)

    assert await verification.send_email_code(identity_id, EMAIL) is False
    assert len(email_sender.sent) == 1


async def test_new_destination_resets_channel(
    verification: VerificationService, phone_sender: RecordingCodeSender, identity_id: str
) -> None:
    await verification.send_phone_code(identity_id, "+5511911111111")
    await verification.verify_phone_code(identity_id, phone_sender.last_code("+5511911111111"))
    assert (await verification.get_status(identity_id)).phone_verified is True

    await verification.send_phone_code(identity_id, "+5511922222222")

    assert (await verification.get_status(identity_id)).phone_verified is False
    assert len(phone_sender.sent) == 2


async def test_correct_code_verifies_channel(
    verification: VerificationService, email_sender: RecordingCodeSender, identity_id: str
) -> None:
    await verification.send_email_code(identity_id, EMAIL)

    await verification.verify_email_code(identity_id, email_sender.last_code(EMAIL))

    status = await verification.get_status(identity_id)
    assert status.email_verified is True
    assert status.phone_verified is False


async def test_resubmitting_accepted_code_succeeds(
    verification: VerificationService, email_sender: RecordingCodeSender, identity_id: str
) -> None:
    await verification.send_email_code(identity_id, EMAIL)
    code = email_sender.last_code(EMAIL)
    await verification.verify_email_code(identity_id, code)

    await verification.verify_email_code(identity_id, code)

    with pytest.raises(VerificationFailedError):
        await verification.verify_email_code(identity_id, "not-a-code")


async def test_no_code_sent(verification: VerificationService, identity_id: str) -> None:
    with pytest.raises(VerificationFailedError) as exc_info:
        await verification.verify_phone_code(identity_id, "123456")

    assert exc_info.value.details == {"channel": "phone"}
    assert "No code was sent" in exc_info.value.message


async def test_wrong_code_counts_attempts_until_locked(
    verification: VerificationService, email_sender: RecordingCodeSender, identity_id: str
) -> None:
    await verification.send_email_code(identity_id, EMAIL)
    max_attempts = verification.settings.verification_max_attempts

    for _ in range(max_attempts):
        with pytest.raises(VerificationFailedError, match="Invalid code"):
            await verification.verify_email_code(identity_id, "not-a-code")

    with pytest.raises(VerificationFailedError, match="Too many attempts"):
        await verification.verify_email_code(identity_id, email_sender.last_code(EMAIL))


async def test_expired_code_is_rejected(
    db: AsyncSession,
    verification: VerificationService,
    email_sender: RecordingCodeSender,
    identity_id: str,
) -> None:
    await verification.send_email_code(identity_id, EMAIL)
    latest = await verification._latest(identity_id, VerificationChannelType.EMAIL)
    latest.expires_at = datetime.now(UTC) - timedelta(seconds=1)
    await db.commit()

    with pytest.raises(VerificationFailedError, match="Code expired"):
        await verification.verify_email_code(identity_id, email_sender.last_code(EMAIL))


async def test_failed_delivery_does_not_leave_pending_code(
    db: AsyncSession, identity_id: str
) -> None:
    failing = RecordingCodeSender(fail=True)
    service = VerificationService(db, email_sender=failing, phone_sender=RecordingCodeSender())

    with pytest.raises(CodeDeliveryError):
        await service.send_email_code(identity_id, EMAIL)

    # the next send is not suppressed by the cooldown
    working = RecordingCodeSender()
    service.email_sender = working
    assert await service.send_email_code(identity_id, EMAIL) is True
    assert len(working.sent) == 1
