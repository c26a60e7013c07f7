"""
Delivery of one-time verification codes over email and phone.
"""

from __future__ import annotations

from typing import Protocol

import structlog
from onboarding.libs.resend_client import ResendClient, ResendClientError

logger = structlog.get_logger()


class CodeDeliveryError(Exception):
    """Raised when a code could not be handed to its delivery channel."""


class CodeSenderProtocol(Protocol):
    """Protocol for code senders (allows mocking)."""

    async def send_code(self, *, destination: str, code: str, ttl_seconds: int) -> None:
        ...


class ResendEmailCodeSender:
    """Sends email codes through Resend."""

    def __init__(self, client: ResendClient | None = None) -> None:
        self.client = client or ResendClient()

    async def send_code(self, *, destination: str, code: str, ttl_seconds: int) -> None:
        try:
            response = await self.client.send_verification_code(
                to_email=destination, code=code, ttl_minutes=max(1, ttl_seconds // 60)
            )
        except ResendClientError as exc:
            raise CodeDeliveryError(str(exc)) from exc
        logger.info("email_code_delivered", destination=destination, message_id=response.id)


class LoggingCodeSender:
    """Writes the delivery to the log instead of a provider.

    Used for the phone channel until a messaging provider is configured, and
    for local environments. The code itself is redacted by the log pipeline.
    """

    def __init__(self, channel: str) -> None:
        self.channel = channel

    async def send_code(self, *, destination: str, code: str, ttl_seconds: int) -> None:
        logger.info(
            "verification_code_logged",
            channel=self.channel,
            destination=destination,
            code=code,
            ttl_seconds=ttl_seconds,
        )
