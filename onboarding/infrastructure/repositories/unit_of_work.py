from __future__ import annotations

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from .accounts import AccountRepository
from .identities import IdentityRepository
from .qualifications import QualificationRepository

logger = structlog.get_logger()


class UnitOfWork:
    """Groups the onboarding repositories over one session and transaction.

    Used as ``async with uow:``; the block commits on success and rolls back
    when an exception escapes it.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.identities = IdentityRepository(session)
        self.accounts = AccountRepository(session)
        self.qualifications = QualificationRepository(session)

    async def __aenter__(self) -> UnitOfWork:
        logger.debug("uow_enter")
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc:
            await self.rollback()
        else:
            await self.commit()
        logger.debug("uow_exit", exc_type=str(exc_type) if exc_type else None)

    async def commit(self) -> None:
        await self.session.commit()
        logger.debug("uow_commit")

    async def rollback(self) -> None:
        await self.session.rollback()
        logger.debug("uow_rollback")
