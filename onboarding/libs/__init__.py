"""Shared library helpers."""

from onboarding.libs.code_delivery import (
    CodeDeliveryError,
    CodeSenderProtocol,
    LoggingCodeSender,
    ResendEmailCodeSender,
)
from onboarding.libs.resend_client import ResendAPIError, ResendClient, ResendClientError

__all__ = [
    "CodeDeliveryError",
    "CodeSenderProtocol",
    "LoggingCodeSender",
    "ResendAPIError",
    "ResendClient",
    "ResendClientError",
    "ResendEmailCodeSender",
]
