import os
from datetime import date
from decimal import Decimal
from typing import AsyncGenerator, Optional

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.main import app
from app.db.session import Base, get_db
from app.api.v1.classes import service as class_service
from app.api.v1.classes.schemas import ClassCreate
from app.api.v1.students import service as student_service
from app.api.v1.students.schemas import StudentCreate
from app.api.v1.subjects import service as subject_service
from app.api.v1.subjects.schemas import SubjectCreate


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture()
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory SQLite database per test; StaticPool keeps the single connection alive."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
async def db_session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Provide a database session for a test and override FastAPI dependency."""
    async_session = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:

        async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
            yield session

        app.dependency_overrides[get_db] = override_get_db
        yield session

    app.dependency_overrides.clear()


@pytest.fixture()
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture()
def make_class(db_session: AsyncSession):
    async def _make(
        name: str = "Class 5",
        fee: Optional[Decimal] = Decimal("500"),
        late_fine_amount: Optional[Decimal] = Decimal("100"),
    ):
        return await class_service.create_class(
            db_session,
            ClassCreate(class_name=name, section="A", fee=fee, late_fine_amount=late_fine_amount),
        )

    return _make


@pytest.fixture()
def make_subject(db_session: AsyncSession):
    async def _make(name: str = "Mathematics", code: str = "MATH"):
        return await subject_service.create_subject(db_session, SubjectCreate(name=name, code=code))

    return _make


@pytest.fixture()
def make_student(db_session: AsyncSession):
    async def _make(class_id, name: str = "Asha Verma", email: Optional[str] = None, subject_ids=()):
        return await student_service.register_student(
            db_session,
            StudentCreate(
                name=name,
                email=email,
                gender="female",
                dob=date(2014, 6, 1),
                student_class_id=class_id,
                subject_ids=list(subject_ids),
                parent_name="R. Verma",
            ),
        )

    return _make


@pytest.fixture()
async def file_sessionmaker(tmp_path) -> AsyncGenerator[async_sessionmaker, None]:
    """Sessions on a file-backed SQLite database; each session gets its own connection."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'school.db'}", future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()
