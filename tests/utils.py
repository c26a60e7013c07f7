from __future__ import annotations

import random
from typing import Any

from onboarding.api.deps import issue_smoke_token
from onboarding.core.auth import Role
from onboarding.domain.documents import (
    CNPJ_WEIGHTS_FIRST,
    CNPJ_WEIGHTS_SECOND,
    CPF_WEIGHTS_FIRST,
    CPF_WEIGHTS_SECOND,
    cnpj_check_digit,
    cpf_check_digit,
)
from onboarding.domain.models import (
    BusinessProfile,
    FinalizationRequest,
    OnboardingSubmission,
    PhoneNumber,
)
from onboarding.libs.code_delivery import CodeDeliveryError

STRONG_PASSWORD = "Sup3r$ecret"


class RecordingCodeSender:
    """Code sender that keeps every delivered code in memory."""

    def __init__(self, *, fail: bool = False) -> None:
        self.sent: list[tuple[str, str]] = []
        self.fail = fail

    async def send_code(self, *, destination: str, code: str, ttl_seconds: int) -> None:
        if self.fail:
            raise CodeDeliveryError("provider unavailable")
        self.sent.append((destination, code))

    def last_code(self, destination: str) -> str:
        for sent_to, code in reversed(self.sent):
            if sent_to == destination:
                return code
        raise AssertionError(f"no code sent to {destination}")


def make_cpf(seed: int = 0) -> str:
    """Build a valid CPF by deriving both check digits from a random base."""
    rng = random.Random(seed)
    while True:
        base = "".join(str(rng.randint(0, 9)) for _ in range(9))
        if len(set(base)) > 1:
            break
    first = cpf_check_digit(base, CPF_WEIGHTS_FIRST)
    second = cpf_check_digit(f"{base}{first}", CPF_WEIGHTS_SECOND)
    return f"{base}{first}{second}"


def make_cnpj(seed: int = 0) -> str:
    rng = random.Random(seed)
    while True:
        base = "".join(str(rng.randint(0, 9)) for _ in range(12))
        if len(set(base)) > 1:
            break
    first = cnpj_check_digit(base, CNPJ_WEIGHTS_FIRST)
    second = cnpj_check_digit(f"{base}{first}", CNPJ_WEIGHTS_SECOND)
    return f"{base}{first}{second}"


def format_cpf(cpf: str) -> str:
    return f"{cpf[:3]}.{cpf[3:6]}.{cpf[6:9]}-{cpf[9:]}"


def auth_headers(
    user_id: str = "credential-1", role: Role = Role.OWNER, account_id: str | None = None
) -> dict[str, str]:
    token = issue_smoke_token(user_id, role=role, email="owner@example.com", account_id=account_id)
    return {"Authorization": f"Bearer {token}"}


def address_payload(**overrides: Any) -> dict[str, Any]:
    payload = {
        "postal_code": "01310-100",
        "street": "Avenida Paulista",
        "number": "1000",
        "neighborhood": "Bela Vista",
        "city": "Sao Paulo",
        "state": "SP",
        "country": "BR",
    }
    payload.update(overrides)
    return payload


def phone_payload(number: str = "+5511987654321") -> dict[str, Any]:
    return {"phone_number": number, "country_code": "+55", "country": "BR"}


def finalize_payload(email: str, **overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "email": email,
        "password": STRONG_PASSWORD,
        "name": "Maria Silva",
        "business_options": ["lendMoney"],
        "terms_accepted": True,
        "privacy_accepted": True,
    }
    payload.update(overrides)
    return payload


async def verify_contacts(
    service: Any,
    *,
    email: str,
    phone: str,
    email_sender: RecordingCodeSender,
    phone_sender: RecordingCodeSender,
) -> None:
    """Drive an identity through both verification channels with the delivered codes."""
    await service.save(OnboardingSubmission(email=email, phone=PhoneNumber(phone, "+55")))
    await service.save(
        OnboardingSubmission(
            email=email,
            phone_code=phone_sender.last_code(phone),
            email_code=email_sender.last_code(email),
        )
    )


def finalization_request(email: str | None, **overrides: Any) -> FinalizationRequest:
    values: dict[str, Any] = {
        "email": email,
        "password": STRONG_PASSWORD,
        "name": "Maria Silva",
        "business": BusinessProfile(business_options=["lendMoney"]),
        "terms_accepted": True,
        "privacy_accepted": True,
    }
    values.update(overrides)
    return FinalizationRequest(**values)
