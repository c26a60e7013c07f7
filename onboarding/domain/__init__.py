from onboarding.domain.models import User

__all__ = ["User"]
