from collections.abc import AsyncGenerator
from datetime import date
from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from src.core.auth.jwt import create_access_token
from src.core.auth.models import UserRole
from src.core.database import get_db
from src.core.database.base import Base
from src.main import app
from src.modules.catalog.models import PaymentDeadline, TuitionPrice
from src.modules.students.models import Student

# In-memory SQLite, one connection shared by every session of a test
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

ACTOR_ID = 1
DEPARTMENT_ID = 10
ACADEMIC_YEAR = "2025/2026"


@pytest.fixture
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh schema per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(test_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Get test database session."""
    session_factory = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Get test HTTP client with overridden database dependency."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()


def auth_headers(role: UserRole = UserRole.ACCOUNTANT, user_id: int = ACTOR_ID) -> dict[str, str]:
    """Bearer header signed with the test key."""
    token = create_access_token(user_id, role.value, name="Test Cashier")
    return {"Authorization": f"Bearer {token}"}


async def create_student(
    db_session: AsyncSession,
    student_number: str = "STU-2025-000001",
    department_id: int = DEPARTMENT_ID,
    academic_year: str = ACADEMIC_YEAR,
    semester: int = 1,
) -> Student:
    student = Student(
        student_number=student_number,
        first_name="Amina",
        last_name="Okafor",
        faculty_id=1,
        department_id=department_id,
        academic_year=academic_year,
        semester=semester,
        is_active=True,
    )
    db_session.add(student)
    await db_session.commit()
    return student


async def set_tuition_price(
    db_session: AsyncSession,
    amount: str,
    department_id: int = DEPARTMENT_ID,
    academic_year: str = ACADEMIC_YEAR,
    semester: int = 1,
) -> TuitionPrice:
    price = TuitionPrice(
        department_id=department_id,
        academic_year=academic_year,
        semester=semester,
        amount=Decimal(amount),
    )
    db_session.add(price)
    await db_session.commit()
    return price


async def set_payment_deadline(
    db_session: AsyncSession,
    due_date: date,
    academic_year: str = ACADEMIC_YEAR,
    semester: int = 1,
) -> PaymentDeadline:
    deadline = PaymentDeadline(academic_year=academic_year, semester=semester, due_date=due_date)
    db_session.add(deadline)
    await db_session.commit()
    return deadline
