"""Fixtures for tests that run the forum queries against PostgreSQL.

Point ``TEST_DATABASE_URL`` at a throwaway database; every table in the
forum metadata is dropped and recreated around each test. The tests are
skipped when the variable is unset.
"""

import os
from types import SimpleNamespace
from typing import AsyncGenerator
from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from lms_forum.config import DB_SCHEMA
from lms_forum.database import Base
from lms_forum.models import classroom_model, forum_model, user_model  # noqa: F401  (register tables)
from lms_forum.models.classroom_model import Faculty, Student, Unit, VirtualClassroom, VirtualClassroomStudent
from lms_forum.models.user_model import User, UserRole
from lms_forum.services.access_guard import AccessGuard, UnitDirectory
from lms_forum.services.like_ledger import LikeLedger
from lms_forum.services.thread_store import ThreadStore


@pytest.fixture(scope="session")
def database_url() -> str:
    """Get the test database URL, or skip when none is configured."""
    url = os.environ.get("TEST_DATABASE_URL")
    if not url:
        pytest.skip("TEST_DATABASE_URL is not set")
    return url.replace("postgresql://", "postgresql+asyncpg://")


@pytest_asyncio.fixture(scope="function")
async def db_engine(database_url: str):
    """Create an engine over a freshly built schema."""
    engine = create_async_engine(database_url, echo=False)

    async with engine.begin() as conn:
        await conn.execute(text(f'CREATE SCHEMA IF NOT EXISTS "{DB_SCHEMA}"'))
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    async_session = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture(scope="function")
async def campus(db_session: AsyncSession) -> SimpleNamespace:
    """
    One classroom with one unit.

    Asha and Bilal are enrolled students, Chen teaches the classroom and
    Dana is a registered user with no classroom.
    """
    asha = User(id=uuid4(), name="Asha", email="asha@college.edu", role=UserRole.STUDENT.value)
    bilal = User(id=uuid4(), name="Bilal", email="bilal@college.edu", role=UserRole.STUDENT.value)
    chen = User(id=uuid4(), name="Chen", email="chen@college.edu", role=UserRole.FACULTY.value)
    dana = User(id=uuid4(), name="Dana", email="dana@college.edu", role=UserRole.STUDENT.value)
    db_session.add_all([asha, bilal, chen, dana])
    await db_session.flush()

    faculty = Faculty(id=uuid4(), user_id=chen.id)
    students = [Student(id=uuid4(), user_id=u.id) for u in (asha, bilal)]
    db_session.add_all([faculty, *students])
    await db_session.flush()

    classroom = VirtualClassroom(id=uuid4(), name="Systems Programming", faculty_id=faculty.id)
    db_session.add(classroom)
    await db_session.flush()

    unit = Unit(id=uuid4(), name="Unit 3: Memory", classroom_id=classroom.id)
    db_session.add(unit)
    db_session.add_all(
        [VirtualClassroomStudent(id=uuid4(), classroom_id=classroom.id, student_id=s.id) for s in students]
    )
    await db_session.commit()

    return SimpleNamespace(asha=asha, bilal=bilal, chen=chen, dana=dana, classroom=classroom, unit=unit)


@pytest.fixture
def likes(db_session: AsyncSession) -> LikeLedger:
    return LikeLedger(db_session)


@pytest.fixture
def store(db_session: AsyncSession, likes: LikeLedger) -> ThreadStore:
    return ThreadStore(db_session, AccessGuard(db_session), UnitDirectory(db_session), likes)
