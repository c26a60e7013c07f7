from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any


class OnboardingStatus(str, enum.Enum):
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


# Submission attribute -> qualification question key.
QUESTION_KEYS: dict[str, str] = {
    "active_customers": "active_customers",
    "financial_operations": "financial_operations",
    "working_capital": "working_capital",
    "business_duration": "business_duration",
    "business_options": "business_type",
}


@dataclass(slots=True)
class PhoneNumber:
    number: str
    country_code: str | None = None


@dataclass(slots=True)
class PostalAddress:
    street: str
    number: str
    neighborhood: str
    city: str
    state: str
    country: str
    postal_code: str
    complement: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "street": self.street,
            "number": self.number,
            "complement": self.complement,
            "neighborhood": self.neighborhood,
            "city": self.city,
            "state": self.state,
            "country": self.country,
            "postal_code": self.postal_code,
        }


@dataclass(slots=True)
class QualificationAnswer:
    question_key: str
    answer: Any
    score: float | None = None


@dataclass(slots=True)
class BusinessProfile:
    """Business qualification metrics collected during onboarding."""

    active_customers: int | None = None
    financial_operations: int | None = None
    working_capital: int | None = None
    business_duration: int | None = None
    business_options: list[str] | None = None

    def answers(self) -> list[QualificationAnswer]:
        """Answers for every metric present; an empty option list counts as absent."""
        answers: list[QualificationAnswer] = []
        for attribute, question_key in QUESTION_KEYS.items():
            value = getattr(self, attribute)
            if value is None or (attribute == "business_options" and not value):
                continue
            answers.append(QualificationAnswer(question_key=question_key, answer=value))
        return answers


@dataclass(slots=True)
class OnboardingSubmission:
    """One partial, order-independent onboarding save."""

    email: str
    document: str | None = None
    document_type: str | None = None
    document_country_code: str | None = None
    name: str | None = None
    phone: PhoneNumber | None = None
    phone_code: str | None = None
    email_code: str | None = None
    password: str | None = None
    address: PostalAddress | None = None
    business: BusinessProfile = field(default_factory=BusinessProfile)
    terms_accepted: bool | None = None
    privacy_accepted: bool | None = None


@dataclass(slots=True)
class FinalizationRequest:
    """Data required to turn an identity into an account."""

    email: str | None
    password: str | None
    name: str | None
    document: str | None = None
    document_type: str | None = None
    document_country_code: str | None = None
    phone: PhoneNumber | None = None
    address: PostalAddress | None = None
    business: BusinessProfile = field(default_factory=BusinessProfile)
    terms_accepted: bool | None = None
    privacy_accepted: bool | None = None
    account_name: str | None = None
    account_email: str | None = None
    plan_id: int | None = None


@dataclass(slots=True)
class VerificationStatus:
    email_verified: bool = False
    phone_verified: bool = False


@dataclass(slots=True)
class TokenPair:
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int = 0


@dataclass(slots=True)
class SaveResult:
    identity_id: str
    step: str
    saved_fields: list[str]
    account_id: str | None = None
    message: str = "Data saved successfully"


@dataclass(slots=True)
class SubmitResult:
    account_id: str
    credential_id: str
    access_token: str
    refresh_token: str
    message: str = "Registration completed successfully"


@dataclass(slots=True)
class ProgressSnapshot:
    status: OnboardingStatus
    step: str
    data: dict[str, Any]
    identity_id: str | None = None
    account_id: str | None = None


@dataclass(slots=True)
class User:
    """Represents an authenticated credential holder."""

    user_id: str
    email: str = ""
    roles: list[str] = field(default_factory=list)
    account_id: str | None = None
