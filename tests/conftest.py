"""Shared test fixtures: in-memory SQLite, async session, fake storage."""

from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    create_async_engine,
)

from indexwarden.models.base import Base
from indexwarden.repositories.fakes import FakeKnowledgeStorage


@pytest.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    """Function-scoped engine: fresh schema per test."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def session(engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    """Session wrapped in a connection-level transaction.

    Even ``session.commit()`` inside a test is rolled back at teardown.
    """
    async with engine.connect() as connection:
        transaction = await connection.begin()
        session = AsyncSession(bind=connection, expire_on_commit=False)
        yield session
        await session.close()
        await transaction.rollback()


@pytest.fixture
def storage() -> FakeKnowledgeStorage:
    return FakeKnowledgeStorage()


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    root = tmp_path / "ws"
    root.mkdir()
    return root.resolve()
