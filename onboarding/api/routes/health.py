from __future__ import annotations

from datetime import UTC, datetime

import structlog
from fastapi import APIRouter
from onboarding.core.config import Settings, get_settings
from onboarding.infrastructure.db.session import get_session_factory
from sqlalchemy import text

router = APIRouter(tags=["Observability"])
logger = structlog.get_logger()


async def check_database() -> dict:
    """Check the relational store connection."""
    try:
        session_factory = get_session_factory()
        async with session_factory() as session:
            await session.execute(text("SELECT 1"))
            return {"status": "ok"}
    except Exception as e:
        return {"status": "error", "message": str(e)[:100]}


def check_code_delivery(settings: Settings) -> dict:
    """Check that verification codes can reach an email inbox."""
    if not settings.resend_api_key:
        return {"status": "not_configured", "message": "RESEND_API_KEY is not set"}
    return {"status": "ok", "sender": settings.email_from}


@router.get("/health", summary="Service health check")
async def health_check() -> dict:
    """Return basic service and datastore status information."""
    settings = get_settings()

    database_status = await check_database()
    delivery_status = check_code_delivery(settings)
    healthy = database_status.get("status") == "ok" and delivery_status.get("status") == "ok"
    overall_status = "ok" if healthy else "degraded"

    payload = {
        "service": settings.app_name,
        "version": settings.version,
        "status": overall_status,
        "timestamp": datetime.now(UTC).isoformat(),
        "datastores": {"postgres": database_status},
        "integrations": {"resend": delivery_status},
    }
    logger.info("health_checked", **payload)
    return payload
