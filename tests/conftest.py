"""Shared test fixtures — async DB, client, auth helpers, factories.

Reusable across all test modules (auth, core_hr, attendance, leave, etc.).
Uses SQLite + aiosqlite for fast isolated tests without PostgreSQL.
"""

from __future__ import annotations

import os

# Configure settings before any other import touches pydantic-settings
os.environ.setdefault("IDP_JWT_SECRET", "test-secret-for-ci-do-not-use-in-production")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["IDP_SECRET_KEY"] = ""
os.environ["IDP_AUDIENCE"] = ""
os.environ["IDP_ISSUER"] = ""
os.environ["ADMIN_EMAILS"] = '["root@example.com"]'

import uuid
from datetime import date, datetime, timedelta, timezone
from typing import AsyncGenerator, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from ems.common.constants import EmployeeStatus, UserRole
from ems.config import settings
from ems.database import Base, get_db
from ems.main import create_app

# Import ALL model modules so SQLAlchemy can resolve cross-module relationships
# (e.g. Employee → LeaveBalance, AttendanceRecord, etc.)
import ems.auth.models  # noqa: F401
import ems.core_hr.models  # noqa: F401
import ems.leave.models  # noqa: F401
import ems.attendance.models  # noqa: F401
import ems.notifications.models  # noqa: F401
import ems.common.audit  # noqa: F401

from ems.auth.models import Admin, HRUser, ManagerAssignment
from ems.core_hr.models import Department, Employee, Role

# ── SQLite compat: compile PG-specific types ────────────────────────

from sqlalchemy.dialects.postgresql import JSONB, UUID as PG_UUID
from sqlalchemy.ext.compiler import compiles


@compiles(JSONB, "sqlite")
def _jsonb_sqlite(element, compiler, **kw):
    return "TEXT"


@compiles(PG_UUID, "sqlite")
def _uuid_sqlite(element, compiler, **kw):
    return "CHAR(36)"


# ── Test database (SQLite in-memory) ────────────────────────────────

TEST_DATABASE_URL = "sqlite+aiosqlite://"

engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestSessionFactory = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False,
)


@pytest.fixture(autouse=True)
async def _setup_db():
    """Create all tables before each test, drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── FastAPI test client ─────────────────────────────────────────────

@pytest.fixture
async def app():
    """Create a fresh app instance with DB dependency overridden."""
    application = create_app()
    application.dependency_overrides[get_db] = _override_get_db
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to the test app."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# ── Database session (for direct DB operations in tests) ────────────

@pytest.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        yield session
        await session.commit()


# ── Model factories ─────────────────────────────────────────────────

async def make_role(
    db: AsyncSession,
    role_name: str,
    *,
    access_level: Optional[UserRole] = None,
) -> Role:
    role = Role(id=uuid.uuid4(), role_name=role_name, access_level=access_level)
    db.add(role)
    await db.flush()
    return role


async def make_department(
    db: AsyncSession,
    name: str = "Engineering",
    *,
    location: Optional[str] = "Mumbai",
    manager_id: Optional[uuid.UUID] = None,
) -> Department:
    dept = Department(id=uuid.uuid4(), name=name, location=location, manager_id=manager_id)
    db.add(dept)
    await db.flush()
    return dept


async def make_employee(
    db: AsyncSession,
    name: str = "Test User",
    *,
    email: Optional[str] = None,
    department_id: Optional[uuid.UUID] = None,
    role_id: Optional[uuid.UUID] = None,
    auth_user_id: Optional[str] = None,
    status: EmployeeStatus = EmployeeStatus.active,
    joining_date: Optional[date] = date(2024, 1, 15),
) -> Employee:
    slug = uuid.uuid4().hex[:8]
    emp = Employee(
        id=uuid.uuid4(),
        employee_code=f"EMP-{slug.upper()}",
        name=name,
        email=email or f"{name.lower().replace(' ', '.')}.{slug}@example.com",
        department_id=department_id,
        role_id=role_id,
        auth_user_id=auth_user_id,
        status=status,
        joining_date=joining_date,
    )
    db.add(emp)
    await db.flush()
    return emp


async def make_admin(
    db: AsyncSession,
    email: str = "admin@example.com",
    *,
    auth_user_id: Optional[str] = None,
) -> Admin:
    admin = Admin(id=uuid.uuid4(), email=email, auth_user_id=auth_user_id, name="Admin")
    db.add(admin)
    await db.flush()
    return admin


async def make_hr(
    db: AsyncSession,
    email: str = "hr@example.com",
    *,
    employee_id: Optional[uuid.UUID] = None,
) -> HRUser:
    hr = HRUser(id=uuid.uuid4(), email=email, employee_id=employee_id, name="HR")
    db.add(hr)
    await db.flush()
    return hr


async def make_manager_assignment(
    db: AsyncSession,
    auth_user_id: str,
    *,
    employee_id: Optional[uuid.UUID] = None,
    is_active: bool = True,
) -> ManagerAssignment:
    row = ManagerAssignment(
        id=uuid.uuid4(),
        auth_user_id=auth_user_id,
        employee_id=employee_id,
        is_active=is_active,
    )
    db.add(row)
    await db.flush()
    return row


@pytest.fixture
async def base_roles(db) -> dict[str, Role]:
    """The default role and the Department Manager role."""
    default = await make_role(db, settings.DEFAULT_ROLE_NAME)
    manager = await make_role(db, settings.DEPARTMENT_MANAGER_ROLE_NAME)
    return {"default": default, "manager": manager}


# ── Auth helpers ────────────────────────────────────────────────────

def create_identity_token(
    auth_id: str,
    email: Optional[str] = None,
    *,
    expired: bool = False,
) -> str:
    """Generate an identity-provider style JWT for testing."""
    if expired:
        exp = datetime.now(timezone.utc) - timedelta(hours=1)
    else:
        exp = datetime.now(timezone.utc) + timedelta(hours=1)
    payload = {"sub": auth_id, "exp": exp}
    if email:
        payload["email"] = email
    return jwt.encode(payload, settings.IDP_JWT_SECRET, algorithm=settings.IDP_JWT_ALGORITHM)


def auth_headers(auth_id: str, email: Optional[str] = None) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_identity_token(auth_id, email)}"}


@pytest.fixture
async def admin_headers(db) -> dict[str, str]:
    """Bearer headers for an identity listed in the admins table."""
    await make_admin(db, "admin@example.com", auth_user_id="user_admin")
    await db.commit()
    return auth_headers("user_admin", "admin@example.com")


@pytest.fixture
async def hr_headers(db) -> dict[str, str]:
    """Bearer headers for an identity listed in the hrs table."""
    await make_hr(db, "hr@example.com")
    await db.commit()
    return auth_headers("user_hr", "hr@example.com")
