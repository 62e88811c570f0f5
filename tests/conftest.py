"""
Test configuration and fixtures for LoanFlow backend tests.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool
from httpx import AsyncClient, ASGITransport

from app.core.database import Base, get_db
from app.core.permissions import Principal
from app.core.security import get_password_hash, get_token_verifier
from app.modules.users.models import User, UserRole
from main import app


# ============================================================
# Database Fixtures
# ============================================================

# Use SQLite for testing (in-memory)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

TEST_PASSWORD = "TestPassword123!"
TEST_PASSWORD_HASH = get_password_hash(TEST_PASSWORD)


@pytest.fixture
async def test_engine():
    """Create a fresh test database engine per test"""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    """Session factory bound to the test engine"""
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False
    )


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for each test"""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def client(db_session) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database override"""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ============================================================
# Clock
# ============================================================

class FakeClock:
    """Controllable clock for token expiry tests"""

    def __init__(self, start: datetime = None):
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ============================================================
# User Fixtures
# ============================================================

async def create_user(db_session, username: str, role: UserRole, active: bool = True) -> User:
    user = User(
        username=username,
        hashed_password=TEST_PASSWORD_HASH,
        role=role,
        active=active,
        full_name=username.title()
    )

    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)

    return user


def principal_for(user: User) -> Principal:
    return Principal(user_id=user.id, username=user.username, role=user.role, active=user.active)


def headers_for(user: User) -> dict:
    token = get_token_verifier().issue(user.username, user.role.value)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def password() -> str:
    """Plain password shared by every fixture user"""
    return TEST_PASSWORD


@pytest.fixture
def make_user(db_session):
    """Factory for extra users: await make_user("name", UserRole.X, active=...)"""

    async def _make_user(username: str, role: UserRole = UserRole.CUSTOMER, active: bool = True) -> User:
        return await create_user(db_session, username, role, active)

    return _make_user


@pytest.fixture
async def customer_user(db_session):
    return await create_user(db_session, "carla", UserRole.CUSTOMER)


@pytest.fixture
async def analyst_user(db_session):
    return await create_user(db_session, "andy", UserRole.ANALYST)


@pytest.fixture
async def admin_user(db_session):
    return await create_user(db_session, "ada", UserRole.ADMIN)


@pytest.fixture
def customer(customer_user) -> Principal:
    return principal_for(customer_user)


@pytest.fixture
def analyst(analyst_user) -> Principal:
    return principal_for(analyst_user)


@pytest.fixture
def admin(admin_user) -> Principal:
    return principal_for(admin_user)


@pytest.fixture
def customer_headers(customer_user) -> dict:
    return headers_for(customer_user)


@pytest.fixture
def analyst_headers(analyst_user) -> dict:
    return headers_for(analyst_user)


@pytest.fixture
def admin_headers(admin_user) -> dict:
    return headers_for(admin_user)


# ============================================================
# Loan Fixtures
# ============================================================

@pytest.fixture
def applicant():
    """A strong applicant: ELIGIBLE with risk 20"""
    from app.modules.loans.risk import ApplicantRecord

    return ApplicantRecord(
        full_name="Carla Customer",
        amount=25000.0,
        tenure=36,
        monthly_income=8000.0,
        monthly_debt=1200.0,
        credit_score=780,
        employment_type="SALARIED",
        purpose="HOME"
    )


@pytest.fixture
async def submitted_loan(db_session, customer, applicant):
    """A SUBMITTED application owned by the customer"""
    from app.modules.loans.services import LoanService

    return await LoanService(db_session).create(applicant, customer)
