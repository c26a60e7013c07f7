"""
Resend API client for onboarding verification emails.
"""

from __future__ import annotations

from dataclasses import dataclass

import httpx
import structlog
from onboarding.core.config import get_settings

logger = structlog.get_logger(__name__)


class ResendClientError(Exception):
    """Base exception for Resend client errors."""


class ResendAPIError(ResendClientError):
    """Raised for non-success responses from Resend."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(slots=True)
class ResendEmailResponse:
    id: str


class ResendClient:
    """Async Resend API client."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout_seconds: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self.api_key = api_key or settings.resend_api_key
        self.base_url = (base_url or settings.resend_base_url).rstrip("/")
        self.timeout = (
            timeout_seconds if timeout_seconds is not None else settings.resend_timeout_seconds
        )
        self.sender = settings.email_from
        self._transport = transport

        if not self.api_key:
            logger.warning("resend_api_key_missing", msg="RESEND_API_KEY not configured")

    async def send_email(
        self,
        *,
        to_emails: list[str],
        subject: str,
        html: str,
        text: str,
        from_email: str | None = None,
    ) -> ResendEmailResponse:
        if not self.api_key:
            raise ResendClientError("RESEND_API_KEY not configured")

        payload = {
            "from": from_email or self.sender,
            "to": to_emails,
            "subject": subject,
            "html": html,
            "text": text,
        }

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = await client.post(
                    f"{self.base_url}/emails",
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    json=payload,
                )
            except httpx.HTTPError as exc:
                raise ResendClientError(f"Resend request failed: {exc}") from exc

        if response.status_code not in (200, 201):
            raise ResendAPIError(
                f"Resend error {response.status_code}: {response.text}",
                status_code=response.status_code,
            )

        try:
            email_id = response.json().get("id")
        except ValueError as exc:
            raise ResendAPIError(
                "Resend response was not valid JSON", status_code=response.status_code
            ) from exc

        if not email_id:
            raise ResendAPIError(
                "Resend response missing email id", status_code=response.status_code
            )

        return ResendEmailResponse(id=email_id)

    async def send_verification_code(
        self, *, to_email: str, code: str, ttl_minutes: int
    ) -> ResendEmailResponse:
        """Deliver a one-time onboarding code."""
        text = (
            f"Your verification code is {code}.\n"
            f"It expires in {ttl_minutes} minutes. If you did not start a sign-up, ignore this email."
        )
        html = (
            f"<p>Your verification code is <strong>{code}</strong>.</p>"
            f"<p>It expires in {ttl_minutes} minutes. "
            "If you did not start a sign-up, ignore this email.</p>"
        )
        return await self.send_email(
            to_emails=[to_email],
            subject="Your verification code",
            html=html,
            text=text,
        )
