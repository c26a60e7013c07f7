"""Typed onboarding failures.

Every error carries a stable ``kind`` string, a human readable message and
optional structured details, so the HTTP layer can render the
``(kind, message, details)`` triple without knowing each subclass.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any


class OnboardingError(Exception):
    """Base class for user-recoverable onboarding failures."""

    kind = "OnboardingError"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "message": self.message, "details": self.details}


class EmailAlreadyExistsError(OnboardingError):
    kind = "EmailAlreadyExists"

    def __init__(self, email: str | None = None) -> None:
        message = f"Email {email} is already registered" if email else "Email is already registered"
        super().__init__(message)


class DocumentAlreadyExistsError(OnboardingError):
    kind = "DocumentAlreadyExists"

    def __init__(self, document_type: str | None, country_code: str | None) -> None:
        super().__init__(
            "This document is already registered in this country",
            {"document_type": document_type, "country_code": country_code},
        )


class InvalidDocumentError(OnboardingError):
    kind = "InvalidDocument"

    def __init__(self, message: str = "Invalid document", details: dict[str, Any] | None = None):
        super().__init__(message, details)


class MissingRequiredFieldsError(OnboardingError):
    kind = "MissingRequiredFields"

    def __init__(self, missing_fields: Sequence[str]) -> None:
        self.missing_fields = list(missing_fields)
        super().__init__(
            f"Missing required fields: {', '.join(self.missing_fields)}",
            {"missing_fields": self.missing_fields},
        )


class WeakPasswordError(OnboardingError):
    kind = "WeakPassword"

    def __init__(self) -> None:
        super().__init__(
            "Password must have at least 8 characters, including uppercase and lowercase "
            "letters, a number and a special character"
        )


class EmailNotVerifiedError(OnboardingError):
    kind = "EmailNotVerified"

    def __init__(self) -> None:
        super().__init__("Email not verified. Please verify your email before finishing sign-up")


class PhoneNotVerifiedError(OnboardingError):
    kind = "PhoneNotVerified"

    def __init__(self) -> None:
        super().__init__("Phone not verified. Please verify your phone before finishing sign-up")


class VerificationFailedError(OnboardingError):
    kind = "VerificationFailed"

    def __init__(self, channel: str, reason: str = "Invalid code") -> None:
        self.channel = channel
        super().__init__(f"{channel.capitalize()} verification failed: {reason}", {"channel": channel})


class IdentityNotFoundError(OnboardingError):
    """Finalization was attempted for an email that never went through save."""

    kind = "IdentityNotFound"

    def __init__(self, email: str) -> None:
        super().__init__(
            f"No onboarding record found for {email}. Please complete the onboarding steps first"
        )
