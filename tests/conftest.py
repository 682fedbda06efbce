"""Pytest configuration and shared fixtures."""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Callable, Optional, Sequence, Union

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, QueryExecutor
from gemini_client import CompletionClient
from models import CallerIdentity

# Monday, so this_week runs 2026-10-19 .. 2026-10-25
FIXED_NOW = datetime(2026, 10, 19, 10, 30)

Reply = Union[str, None, Callable[[str, str], Optional[str]]]


class FakeCompletionClient(CompletionClient):
    """
    Scripted completion backend.

    Replies are consumed in order; once exhausted the last one repeats.
    A reply may be a callable taking (system_prompt, user_prompt).
    """

    def __init__(self, replies: Sequence[Reply] = (), available: bool = True, models=None):
        self.replies = list(replies)
        self.available = available
        self.models = models if models is not None else ["models/gemini-2.5-flash"]
        self.calls = []

    async def complete(self, system_prompt, user_prompt, history=None):
        self.calls.append(
            {"system": system_prompt, "user": user_prompt, "history": list(history or [])}
        )
        if not self.replies:
            return None
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if callable(reply):
            return reply(system_prompt, user_prompt)
        return reply

    async def is_available(self):
        return self.available

    async def list_models(self):
        return self.models if self.available else None


class MemoryDatabase:
    """In-memory SQLite schema plus an executor bound to it."""

    def __init__(self, session_factory):
        self.session_factory = session_factory
        self.executor = QueryExecutor(session_factory=session_factory, timeout=5)

    async def add(self, *objects):
        async with self.session_factory() as session:
            session.add_all(objects)
            await session.commit()


@pytest.fixture
def fake_llm():
    """Factory for scripted completion clients."""
    return FakeCompletionClient


@pytest.fixture
def memory_db():
    """
    Returns an async context manager factory. Use inside a coroutine:

        async with memory_db() as db:
            await db.add(...)
    """

    @asynccontextmanager
    async def _open():
        engine = create_async_engine(
            "sqlite+aiosqlite://",
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        factory = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        try:
            yield MemoryDatabase(factory)
        finally:
            await engine.dispose()

    return _open


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def student_caller():
    return CallerIdentity(name="Maria", role="student", id=5)


@pytest.fixture
def teacher_caller():
    return CallerIdentity(name="Mr. Cruz", role="teacher", id=9)


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as unit test"
    )


def pytest_collection_modifyitems(config, items):
    """Mark database-backed tests as integration, everything else as unit."""
    for item in items:
        if "memory_db" in getattr(item, "fixturenames", ()):
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)
