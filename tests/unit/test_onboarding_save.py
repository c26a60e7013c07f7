"""Unit tests for progressive onboarding saves."""

from __future__ import annotations

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from onboarding.domain.errors import EmailAlreadyExistsError, VerificationFailedError
from onboarding.domain.models import (
    BusinessProfile,
    OnboardingSubmission,
    PhoneNumber,
    PostalAddress,
)
from onboarding.domain.services import OnboardingService, ProgressService, VerificationService
from onboarding.domain.services.auth_service import hash_password, verify_password
from onboarding.domain.services.onboarding import PASSWORD_SECRET
from onboarding.infrastructure.repositories import AccountRepository, IdentityRepository
from tests.utils import RecordingCodeSender, verify_contacts

EMAIL = "maria@example.com"
PHONE = "+5511987654321"


@pytest.fixture()
def service(db: AsyncSession, verification: VerificationService) -> OnboardingService:
    return OnboardingService(db, verification=verification)


def _address() -> PostalAddress:
    return PostalAddress(
        street="Avenida Paulista",
        number="1000",
        neighborhood="Bela Vista",
        city="Sao Paulo",
        state="SP",
        country="BR",
        postal_code="01310-100",
    )


async def test_first_save_creates_identity_and_sends_codes(
    service: OnboardingService,
    email_sender: RecordingCodeSender,
    phone_sender: RecordingCodeSender,
) -> None:
    result = await service.save(
        OnboardingSubmission(email="Maria@Example.com", phone=PhoneNumber(PHONE, "+55"))
    )

    assert result.saved_fields == ["email", "phone"]
    assert result.step == "phone"
    assert result.account_id is None
    assert [dest for dest, _ in phone_sender.sent] == [PHONE]
    assert [dest for dest, _ in email_sender.sent] == [EMAIL]


async def test_email_only_save_is_email_step(service: OnboardingService) -> None:
    result = await service.save(OnboardingSubmission(email=EMAIL))

    assert result.step == "email"
    assert result.saved_fields == ["email"]


async def test_invalid_document_is_not_rejected_at_save(service: OnboardingService) -> None:
    result = await service.save(
        OnboardingSubmission(
            email=EMAIL, document="123", document_type="CPF", document_country_code="br"
        )
    )

    assert result.step == "document"
    assert result.saved_fields == ["email", "document", "document_type", "document_country_code"]


async def test_saves_are_order_independent(db: AsyncSession, service: OnboardingService) -> None:
    def identity_part(email: str) -> OnboardingSubmission:
        return OnboardingSubmission(
            email=email,
            name="Maria Silva",
            document="529.982.247-25",
            document_type="cpf",
            document_country_code="BR",
            address=_address(),
        )

    def business_part(email: str) -> OnboardingSubmission:
        return OnboardingSubmission(
            email=email,
            business=BusinessProfile(
                active_customers=10,
                working_capital=50000,
                business_options=["lendMoney", "rentRooms"],
            ),
            terms_accepted=True,
        )

    await service.save(identity_part("first@example.com"))
    first = await service.save(business_part("first@example.com"))
    await service.save(business_part("second@example.com"))
    second = await service.save(identity_part("second@example.com"))

    assert first.step == second.step == "address"

    progress = ProgressService(db, verification=service.verification)
    first_data = (await progress.resolve("first@example.com")).data
    second_data = (await progress.resolve("second@example.com")).data
    first_data.pop("email")
    second_data.pop("email")
    assert first_data == second_data


async def test_rejected_code_keeps_other_fields(
    service: OnboardingService, session_factory: async_sessionmaker[AsyncSession]
) -> None:
    await service.save(OnboardingSubmission(email=EMAIL))

    with pytest.raises(VerificationFailedError):
        await service.save(
            OnboardingSubmission(email=EMAIL, name="Maria Silva", email_code="not-a-code")
        )

    async with session_factory() as session:
        identity = await IdentityRepository(session).find_by_email(EMAIL)
    assert identity.name == "Maria Silva"
    assert "email_code" not in identity.pending_secrets


async def test_accepted_codes_advance_step(
    service: OnboardingService,
    email_sender: RecordingCodeSender,
    phone_sender: RecordingCodeSender,
) -> None:
    await verify_contacts(
        service, email=EMAIL, phone=PHONE, email_sender=email_sender, phone_sender=phone_sender
    )

    status = await service.verification.get_status(
        (await service.uow.identities.find_by_email(EMAIL)).id
    )
    result = await service.save(OnboardingSubmission(email=EMAIL))

    assert status.email_verified is True
    assert status.phone_verified is True
    assert result.step == "email_verification"
    # no new email code once the channel is verified
    assert len(email_sender.sent) == 1


async def test_email_code_is_not_resent_within_cooldown(
    service: OnboardingService, email_sender: RecordingCodeSender
) -> None:
    await service.save(OnboardingSubmission(email=EMAIL))
    await service.save(OnboardingSubmission(email=EMAIL, name="Maria Silva"))

    assert len(email_sender.sent) == 1


async def test_password_is_stored_hashed_and_not_rehashed(service: OnboardingService) -> None:
    first = await service.save(OnboardingSubmission(email=EMAIL, password="Sup3r$ecret"))
    second = await service.save(OnboardingSubmission(email=EMAIL, password="Sup3r$ecret"))

    identity = await service.uow.identities.find_by_email(EMAIL)
    stored = identity.pending_secrets[PASSWORD_SECRET]
    assert "password" in first.saved_fields
    assert "password" not in second.saved_fields
    assert stored != "Sup3r$ecret"
    assert verify_password("Sup3r$ecret", stored)
    assert first.step == "password"


async def test_phone_change_sends_new_code_and_resets_verification(
    service: OnboardingService,
    email_sender: RecordingCodeSender,
    phone_sender: RecordingCodeSender,
) -> None:
    await verify_contacts(
        service, email=EMAIL, phone=PHONE, email_sender=email_sender, phone_sender=phone_sender
    )

    result = await service.save(
        OnboardingSubmission(email=EMAIL, phone=PhoneNumber("+5511900000000", "+55"))
    )

    identity = await service.uow.identities.find_by_email(EMAIL)
    status = await service.verification.get_status(identity.id)
    assert "phone" in result.saved_fields
    assert phone_sender.sent[-1][0] == "+5511900000000"
    assert status.phone_verified is False


async def test_email_with_credential_is_rejected(db: AsyncSession, service: OnboardingService) -> None:
    await AccountRepository(db).create_credential(
        email=EMAIL, password_hash=hash_password("Sup3r$ecret")
    )
    await db.commit()

    with pytest.raises(EmailAlreadyExistsError):
        await service.save(OnboardingSubmission(email=EMAIL.upper()))


async def test_delivery_failure_does_not_fail_save(db: AsyncSession) -> None:
    verification = VerificationService(
        db,
        email_sender=RecordingCodeSender(fail=True),
        phone_sender=RecordingCodeSender(fail=True),
    )
    service = OnboardingService(db, verification=verification)

    result = await service.save(
        OnboardingSubmission(email=EMAIL, phone=PhoneNumber(PHONE), name="Maria Silva")
    )

    assert result.step == "phone"


async def test_business_answers_are_overwritten(
    db: AsyncSession, service: OnboardingService
) -> None:
    await service.save(
        OnboardingSubmission(email=EMAIL, business=BusinessProfile(business_options=["lendMoney"]))
    )
    result = await service.save(
        OnboardingSubmission(
            email=EMAIL, business=BusinessProfile(business_options=["rentVehicles"])
        )
    )

    snapshot = await ProgressService(db, verification=service.verification).resolve(EMAIL)
    assert result.saved_fields == ["business_options"]
    assert snapshot.data["business_options"] == ["rentVehicles"]
    assert snapshot.step == "business_options"


async def test_identical_answers_are_not_reported_as_saved(service: OnboardingService) -> None:
    first = await service.save(
        OnboardingSubmission(email=EMAIL, business=BusinessProfile(active_customers=5))
    )
    second = await service.save(
        OnboardingSubmission(
            email=EMAIL, business=BusinessProfile(active_customers=5, working_capital=1000)
        )
    )

    assert first.saved_fields == ["email", "active_customers"]
    assert second.saved_fields == ["working_capital"]
