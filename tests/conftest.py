"""Shared test fixtures and configuration."""

from __future__ import annotations

import os
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

os.environ.setdefault("RHYTHM_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("RHYTHM_LOG_LEVEL", "WARNING")

import rhythm.modules.crm.models  # noqa: E402,F401
import rhythm.modules.interactions.models  # noqa: E402,F401
from rhythm.config import Settings  # noqa: E402
from rhythm.database import Base, get_session  # noqa: E402
from rhythm.modules.calendar.service import CalendarService  # noqa: E402
from rhythm.modules.calendar.store import EventStore  # noqa: E402
from rhythm.modules.crm.models import Contact  # noqa: E402
from rhythm.modules.crm.service import CrmDirectory  # noqa: E402
from helpers import CONTACT_EMAIL, CONTACT_ID, OWNER_ID  # noqa: E402


@pytest.fixture
def settings() -> Settings:
    """Return test settings."""
    return Settings(
        rhythm_env="test",
        database_url="sqlite+aiosqlite:///:memory:",
        rhythm_log_level="WARNING",
        _env_file=None,
    )


@pytest_asyncio.fixture
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Provide a session factory over a fresh file-backed database for each test.

    A file database (rather than ``:memory:``) gives every concurrent session
    its own connection.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'rhythm_test.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def store(session_factory, settings) -> EventStore:
    return EventStore(session_factory, settings)


@pytest.fixture
def directory(session_factory) -> CrmDirectory:
    return CrmDirectory(session_factory)


@pytest.fixture
def calendar_service(session_factory, settings) -> CalendarService:
    return CalendarService(session_factory=session_factory, settings=settings)


@pytest.fixture
def add_rows(session_factory):
    """Insert ORM rows directly, bypassing the services under test."""

    async def _add(*rows) -> None:
        async with get_session(session_factory) as session:
            session.add_all(rows)

    return _add


@pytest_asyncio.fixture
async def contact(add_rows) -> Contact:
    """The default contact, owned by OWNER_ID."""
    row = Contact(
        id=CONTACT_ID,
        owner_id=OWNER_ID,
        display_name="Jane Doe",
        primary_email=CONTACT_EMAIL,
        primary_phone="+31 6 1234 5678",
        health_context={"allergies": ["lavender"]},
        preferences={"pressure": "light"},
    )
    await add_rows(row)
    return row
