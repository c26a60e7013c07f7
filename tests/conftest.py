from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
from fastapi import Depends
from httpx import ASGITransport, AsyncClient
from onboarding.api.deps import get_db_session, get_verification_service
from onboarding.api.main import app
from onboarding.domain.services.verification import VerificationService
from onboarding.infrastructure.db.base import Base
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from tests.utils import RecordingCodeSender


@pytest.fixture()
async def engine() -> AsyncIterator[AsyncEngine]:
    # StaticPool keeps a single connection so the in-memory database survives
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture()
async def db(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    """Provide a database session for tests that need direct DB access."""
    async with session_factory() as session:
        yield session


@pytest.fixture()
def email_sender() -> RecordingCodeSender:
    return RecordingCodeSender()


@pytest.fixture()
def phone_sender() -> RecordingCodeSender:
    return RecordingCodeSender()


@pytest.fixture()
def verification(
    db: AsyncSession, email_sender: RecordingCodeSender, phone_sender: RecordingCodeSender
) -> VerificationService:
    return VerificationService(db, email_sender=email_sender, phone_sender=phone_sender)


@pytest.fixture()
async def async_client(
    session_factory: async_sessionmaker[AsyncSession],
    email_sender: RecordingCodeSender,
    phone_sender: RecordingCodeSender,
) -> AsyncIterator[AsyncClient]:
    """Async HTTP client wired to the in-memory database and recording senders."""

    async def override_db_session() -> AsyncIterator[AsyncSession]:
        async with session_factory() as session:
            yield session

    def override_verification(
        session: AsyncSession = Depends(get_db_session),
    ) -> VerificationService:
        return VerificationService(session, email_sender=email_sender, phone_sender=phone_sender)

    app.dependency_overrides[get_db_session] = override_db_session
    app.dependency_overrides[get_verification_service] = override_verification

    transport = ASGITransport(app=app)  # type: ignore
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.pop(get_db_session, None)
    app.dependency_overrides.pop(get_verification_service, None)
