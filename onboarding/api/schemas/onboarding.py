"""Pydantic schemas for onboarding endpoints."""

from __future__ import annotations

from enum import Enum
from typing import Any

from onboarding.domain.models import (
    BusinessProfile,
    FinalizationRequest,
    OnboardingSubmission,
    PhoneNumber,
    PostalAddress,
)
from pydantic import BaseModel, EmailStr, Field


class DocumentType(str, Enum):
    CPF = "cpf"
    CNPJ = "cnpj"
    SSN = "ssn"
    EIN = "ein"
    NI = "ni"
    CRN = "crn"
    OTHER = "other"


class BusinessOption(str, Enum):
    LEND_MONEY = "lendMoney"
    PROMISSORY_NOTES = "promissoryNotes"
    RENT_PROPERTIES = "rentProperties"
    RENT_ROOMS = "rentRooms"
    RENT_VEHICLES = "rentVehicles"


# --- Shared parts ---


class PhoneInput(BaseModel):
    phone_number: str = Field(..., min_length=1, max_length=32)
    formatted_phone_number: str | None = Field(None, max_length=32)
    country_code: str | None = Field(None, max_length=8, description="Dialing code, e.g. +55")
    country: str | None = None

    def to_domain(self) -> PhoneNumber:
        return PhoneNumber(
            number=self.formatted_phone_number or self.phone_number,
            country_code=self.country_code,
        )


class AddressInput(BaseModel):
    postal_code: str
    street: str
    number: str
    complement: str | None = None
    neighborhood: str
    city: str
    state: str
    country: str | None = None
    country_code: str | None = None

    def to_domain(self) -> PostalAddress:
        return PostalAddress(
            street=self.street,
            number=self.number,
            complement=self.complement,
            neighborhood=self.neighborhood,
            city=self.city,
            state=self.state,
            country=self.country or self.country_code or "BR",
            postal_code=self.postal_code,
        )


class _BusinessFields(BaseModel):
    active_customers: int | None = Field(None, ge=0, description="0 means unlimited")
    financial_operations: int | None = Field(None, ge=0, description="Operations per month")
    working_capital: int | None = Field(None, ge=0, description="In currency units")
    business_duration: int | None = Field(None, ge=0, description="In months")
    business_options: list[BusinessOption] | None = None

    def _business(self) -> BusinessProfile:
        return BusinessProfile(
            active_customers=self.active_customers,
            financial_operations=self.financial_operations,
            working_capital=self.working_capital,
            business_duration=self.business_duration,
            business_options=(
                [option.value for option in self.business_options]
                if self.business_options is not None
                else None
            ),
        )


# --- Request Schemas ---


class OnboardingSaveRequest(_BusinessFields):
    """Any subset of onboarding fields; only ``email`` is required."""

    email: EmailStr = Field(..., description="Primary identifier")
    document: str | None = Field(None, max_length=64)
    document_type: DocumentType | None = None
    document_country_code: str | None = Field(None, min_length=2, max_length=2)
    name: str | None = Field(None, min_length=1, max_length=255)
    phone: PhoneInput | None = None
    phone_code: str | None = Field(None, min_length=4, max_length=10)
    email_code: str | None = Field(None, min_length=4, max_length=10)
    password: str | None = Field(None, min_length=8, max_length=128)
    address: AddressInput | None = None
    terms_accepted: bool | None = None
    privacy_accepted: bool | None = None

    def to_submission(self) -> OnboardingSubmission:
        return OnboardingSubmission(
            email=str(self.email),
            document=self.document,
            document_type=self.document_type.value if self.document_type else None,
            document_country_code=self.document_country_code,
            name=self.name,
            phone=self.phone.to_domain() if self.phone else None,
            phone_code=self.phone_code,
            email_code=self.email_code,
            password=self.password,
            address=self.address.to_domain() if self.address else None,
            business=self._business(),
            terms_accepted=self.terms_accepted,
            privacy_accepted=self.privacy_accepted,
        )


class OnboardingSubmitRequest(_BusinessFields):
    """Finalization payload.

    Required fields are optional here on purpose: the service reports every
    missing one in a single ``MissingRequiredFields`` error.
    """

    email: EmailStr | None = None
    password: str | None = Field(None, max_length=128)
    name: str | None = Field(None, max_length=255)
    document: str | None = Field(None, max_length=64)
    document_type: DocumentType | None = None
    document_country_code: str | None = Field(None, min_length=2, max_length=2)
    phone: PhoneInput | None = None
    address: AddressInput | None = None
    terms_accepted: bool | None = None
    privacy_accepted: bool | None = None
    account_name: str | None = Field(None, max_length=255)
    account_email: EmailStr | None = None
    plan_id: int | None = Field(None, gt=0)

    def to_request(self) -> FinalizationRequest:
        return FinalizationRequest(
            email=str(self.email) if self.email else None,
            password=self.password,
            name=self.name,
            document=self.document,
            document_type=self.document_type.value if self.document_type else None,
            document_country_code=self.document_country_code,
            phone=self.phone.to_domain() if self.phone else None,
            address=self.address.to_domain() if self.address else None,
            business=self._business(),
            terms_accepted=self.terms_accepted,
            privacy_accepted=self.privacy_accepted,
            account_name=self.account_name,
            account_email=str(self.account_email) if self.account_email else None,
            plan_id=self.plan_id,
        )


# --- Response Schemas ---


class OnboardingSaveResponse(BaseModel):
    identity_id: str
    account_id: str | None = None
    step: str
    message: str
    saved_fields: list[str]


class OnboardingSubmitResponse(BaseModel):
    account_id: str
    credential_id: str
    access_token: str
    refresh_token: str
    message: str


class OnboardingProgressResponse(BaseModel):
    identity_id: str | None = None
    account_id: str | None = None
    status: str
    step: str
    data: dict[str, Any]


class DocumentTypesResponse(BaseModel):
    country_code: str
    document_types: list[str]
