"""
Onboarding step inference.

The current step is never stored: it is projected from which facts are
present on the identity, checked from the most advanced step to the least
advanced one. The order encodes the forward progression of the onboarding
UI and must not be rearranged.
"""

from __future__ import annotations

import enum
from collections.abc import Callable
from dataclasses import dataclass


class OnboardingStep(str, enum.Enum):
    COMPLETED = "completed"
    ADDRESS = "address"
    BUSINESS_OPTIONS = "business_options"
    BUSINESS_DURATION = "business_duration"
    CAPITAL = "capital"
    FINANCIAL_OPERATIONS = "financial_operations"
    ACTIVE_CUSTOMERS = "active_customers"
    PASSWORD = "password"
    EMAIL_VERIFICATION = "email_verification"
    PHONE_VERIFICATION = "phone_verification"
    PHONE = "phone"
    NAME = "name"
    DOCUMENT = "document"
    EMAIL = "email"


@dataclass(frozen=True, slots=True)
class StepFacts:
    """Presence flags the step projection reads from an identity snapshot."""

    linked_account: bool = False
    postal_address: bool = False
    business_options: bool = False
    business_duration: bool = False
    working_capital: bool = False
    financial_operations: bool = False
    active_customers: bool = False
    password: bool = False
    email_code: bool = False
    phone_code: bool = False
    phone: bool = False
    name: bool = False
    document: bool = False


STEP_RULES: tuple[tuple[OnboardingStep, Callable[[StepFacts], bool]], ...] = (
    (OnboardingStep.COMPLETED, lambda f: f.linked_account),
    (OnboardingStep.ADDRESS, lambda f: f.postal_address),
    (OnboardingStep.BUSINESS_OPTIONS, lambda f: f.business_options),
    (OnboardingStep.BUSINESS_DURATION, lambda f: f.business_duration),
    (OnboardingStep.CAPITAL, lambda f: f.working_capital),
    (OnboardingStep.FINANCIAL_OPERATIONS, lambda f: f.financial_operations),
    (OnboardingStep.ACTIVE_CUSTOMERS, lambda f: f.active_customers),
    (OnboardingStep.PASSWORD, lambda f: f.password),
    (OnboardingStep.EMAIL_VERIFICATION, lambda f: f.email_code),
    (OnboardingStep.PHONE_VERIFICATION, lambda f: f.phone_code),
    (OnboardingStep.PHONE, lambda f: f.phone),
    (OnboardingStep.NAME, lambda f: f.name),
    (OnboardingStep.DOCUMENT, lambda f: f.document),
)

STEP_ORDER: tuple[OnboardingStep, ...] = tuple(step for step, _ in STEP_RULES) + (
    OnboardingStep.EMAIL,
)


def infer_step(facts: StepFacts) -> OnboardingStep:
    """Return the most advanced step whose condition holds."""
    for step, condition in STEP_RULES:
        if condition(facts):
            return step
    return OnboardingStep.EMAIL


def step_rank(step: OnboardingStep) -> int:
    """Position in the forward progression; ``email`` is 0, ``completed`` is highest."""
    return len(STEP_ORDER) - 1 - STEP_ORDER.index(step)
