"""Domain services."""

from onboarding.domain.services.auth_service import AuthService, TokenIssuer
from onboarding.domain.services.finalization import FinalizationService
from onboarding.domain.services.onboarding import OnboardingService
from onboarding.domain.services.progress import ProgressService
from onboarding.domain.services.verification import VerificationService

__all__ = [
    "AuthService",
    "FinalizationService",
    "OnboardingService",
    "ProgressService",
    "TokenIssuer",
    "VerificationService",
]
