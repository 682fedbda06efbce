"""
RollCall – Async SQLAlchemy engine, ORM models and the query executor.
Matches the school tables: students, teachers, classes, student_class,
attendance_records, excuse_requests.
"""

import asyncio
import logging
from typing import Any, Optional

from sqlalchemy import (
    Boolean, Column, Date, DateTime, ForeignKey, Integer, String, Text, text
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from config import config
from exceptions import ConfigurationError, QueryExecutionError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Base and Models (can be defined immediately)
# ---------------------------------------------------------------------------
Base = declarative_base()


# ---------------------------------------------------------------------------
# Engine and Session (created lazily)
# ---------------------------------------------------------------------------
engine = None
async_session_factory = None


def to_async_url(db_url: str) -> str:
    """Swap a sync driver URL for its async counterpart."""
    if db_url.startswith("postgresql://"):
        return db_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if db_url.startswith("sqlite://"):
        return db_url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return db_url


def initialize_database():
    """
    Initialize the database engine and session factory.
    Must be called after DB_URL is configured.
    """
    global engine, async_session_factory

    if not config.DB_URL:
        raise ConfigurationError(
            "DB_URL is not configured. "
            "Set the DB_URL (or DATABASE_URL) environment variable."
        )

    engine = create_async_engine(to_async_url(config.DB_URL), echo=False, pool_pre_ping=True)
    async_session_factory = sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False
    )


def get_session_factory():
    """
    Get the async session factory, ensuring database is initialized.
    """
    if async_session_factory is None:
        initialize_database()
    return async_session_factory


def get_engine():
    """
    Get the database engine, ensuring it's initialized.
    """
    if engine is None:
        initialize_database()
    return engine


# ---------------------------------------------------------------------------
# Connectivity check
# ---------------------------------------------------------------------------
async def test_connection():
    """
    Test database connectivity.
    """
    current_engine = get_engine()
    async with current_engine.connect() as conn:
        await conn.execute(text("SELECT 1"))


# ---------------------------------------------------------------------------
# Query executor
# ---------------------------------------------------------------------------
class QueryExecutor:
    """
    Runs one read-only statement per call and hands back plain rows.

    Accepts either a SQLAlchemy Core construct (built by the router) or a
    ``text()`` clause (literal SQL from the synthesizer). Every driver error
    and every timeout surfaces as QueryExecutionError.
    """

    def __init__(self, session_factory=None, timeout: Optional[float] = None):
        self._session_factory = session_factory
        self.timeout = timeout or config.QUERY_TIMEOUT

    def _factory(self):
        if self._session_factory is None:
            self._session_factory = get_session_factory()
        return self._session_factory

    async def _run(self, statement, params: Optional[dict] = None):
        async with self._factory()() as session:
            result = await session.execute(statement, params or {})
            columns = list(result.keys())
            return [dict(zip(columns, row)) for row in result.fetchall()]

    async def fetch_all(self, statement, params: Optional[dict] = None) -> list[dict[str, Any]]:
        try:
            return await asyncio.wait_for(self._run(statement, params), timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            raise QueryExecutionError(f"Query timed out after {self.timeout}s") from exc
        except (SQLAlchemyError, OSError, ConfigurationError) as exc:
            raise QueryExecutionError(str(exc)) from exc

    async def scalar(self, statement, params: Optional[dict] = None) -> Any:
        """First column of the first row, or None for an empty result."""
        rows = await self.fetch_all(statement, params)
        if not rows:
            return None
        return next(iter(rows[0].values()))


# ---------------------------------------------------------------------------
# ORM Models
# ---------------------------------------------------------------------------

class Student(Base):
    __tablename__ = "students"

    id         = Column(Integer, primary_key=True, autoincrement=True)
    user_id    = Column(Integer, index=True)        # users.id of the login
    student_id = Column(String(50))                 # school-issued code
    name       = Column(String(200), nullable=False)
    email      = Column(String(200))
    year       = Column(String(20))
    course     = Column(String(100))
    section    = Column(String(50))
    is_active  = Column(Boolean, default=True)


class Teacher(Base):
    __tablename__ = "teachers"

    id         = Column(Integer, primary_key=True, autoincrement=True)
    user_id    = Column(Integer, index=True)
    teacher_id = Column(String(50))
    name       = Column(String(200), nullable=False)
    email      = Column(String(200))
    department = Column(String(100))
    is_active  = Column(Boolean, default=True)


class ClassModel(Base):
    __tablename__ = "classes"

    id         = Column(Integer, primary_key=True, autoincrement=True)
    teacher_id = Column(Integer, ForeignKey("teachers.id"))
    name       = Column(String(200), nullable=False)
    subject    = Column(String(200))
    section    = Column(String(50))
    schedule   = Column(String(200))
    room       = Column(String(50))


class StudentClass(Base):
    __tablename__ = "student_class"

    id          = Column(Integer, primary_key=True, autoincrement=True)
    student_id  = Column(Integer, ForeignKey("students.id"))
    class_id    = Column(Integer, ForeignKey("classes.id"))
    enrolled_at = Column(DateTime)


class AttendanceRecord(Base):
    __tablename__ = "attendance_records"

    id         = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(Integer, ForeignKey("students.id"))
    class_id   = Column(Integer, ForeignKey("classes.id"))
    status     = Column(String(20))                 # absent / present / late / excused
    date       = Column(Date, index=True)
    remarks    = Column(Text)
    created_at = Column(DateTime)


class ExcuseRequest(Base):
    __tablename__ = "excuse_requests"

    id          = Column(Integer, primary_key=True, autoincrement=True)
    student_id  = Column(Integer, ForeignKey("students.id"))
    status      = Column(String(20))                # pending / approved / rejected
    reviewed_by = Column(Integer)                   # users.id or teachers.id
    reviewed_at = Column(DateTime)
