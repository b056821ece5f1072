"""Pytest fixtures for rota engine tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import date, datetime, time, timezone
from decimal import Decimal
from uuid import UUID, uuid4

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from rota_engine.api.app import create_app
from rota_engine.api.dependencies import get_db_session
from rota_engine.models import (
    Base,
    JobRole,
    Shift,
    Staff,
    StaffAvailability,
    StaffHourlyRate,
    StaffRole,
    TenantPayrollSettings,
    Timesheet,
)
from rota_engine.services.authorization import Actor

# In-memory SQLite shared across the connections of one engine
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def engine():
    """Create test database engine with a fresh schema."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def session(engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def tenant_id() -> UUID:
    return uuid4()


@pytest.fixture
def admin(tenant_id) -> Actor:
    return Actor(tenant_id=tenant_id, user_id=uuid4(), role="admin")


@pytest.fixture
def manager(tenant_id) -> Actor:
    return Actor(tenant_id=tenant_id, user_id=uuid4(), role="manager")


@pytest.fixture
def staff_member(tenant_id) -> Actor:
    return Actor(tenant_id=tenant_id, user_id=uuid4(), role="staff")


def at(day: date, hour: int, minute: int = 0) -> datetime:
    """UTC timestamp on a day."""
    return datetime.combine(day, time(hour, minute), tzinfo=timezone.utc)


class Seeder:
    """Creates tenant data for a test and flushes it to the session."""

    def __init__(self, session: AsyncSession, tenant_id: UUID):
        self.session = session
        self.tenant_id = tenant_id

    async def _add(self, obj):
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def staff(
        self,
        first_name: str,
        last_name: str = "Smith",
        employee_number: str | None = None,
        **kwargs,
    ) -> Staff:
        return await self._add(
            Staff(
                id=uuid4(),
                tenant_id=kwargs.pop("tenant_id", self.tenant_id),
                first_name=first_name,
                last_name=last_name,
                employee_number=employee_number,
                **kwargs,
            )
        )

    async def rate(self, staff: Staff, hourly_rate: str, effective_date: date) -> StaffHourlyRate:
        return await self._add(
            StaffHourlyRate(
                id=uuid4(),
                tenant_id=staff.tenant_id,
                staff_id=staff.id,
                hourly_rate=Decimal(hourly_rate),
                effective_date=effective_date,
            )
        )

    async def timesheet(
        self,
        staff: Staff,
        work_date: date,
        hours: str,
        status: str = "approved",
    ) -> Timesheet:
        return await self._add(
            Timesheet(
                id=uuid4(),
                tenant_id=staff.tenant_id,
                staff_id=staff.id,
                work_date=work_date,
                status=status,
                total_hours=Decimal(hours),
            )
        )

    async def role(self, name: str, is_active: bool = True) -> JobRole:
        return await self._add(
            JobRole(id=uuid4(), tenant_id=self.tenant_id, name=name, is_active=is_active)
        )

    async def assign_role(self, staff: Staff, role: JobRole) -> StaffRole:
        return await self._add(StaffRole(staff_id=staff.id, role_id=role.id))

    async def shift(
        self,
        staff: Staff,
        start: datetime,
        end: datetime,
        role: JobRole | None = None,
        status: str = "scheduled",
        break_minutes: int = 0,
    ) -> Shift:
        return await self._add(
            Shift(
                id=uuid4(),
                tenant_id=staff.tenant_id,
                staff_id=staff.id,
                role_id=role.id if role else None,
                start_time=start,
                end_time=end,
                status=status,
                break_duration_minutes=break_minutes,
            )
        )

    async def availability(
        self,
        staff: Staff,
        day_of_week: int,
        start: time | None = None,
        end: time | None = None,
        is_available: bool = True,
    ) -> StaffAvailability:
        return await self._add(
            StaffAvailability(
                id=uuid4(),
                staff_id=staff.id,
                day_of_week=day_of_week,
                start_time=start,
                end_time=end,
                is_available=is_available,
            )
        )

    async def payroll_settings(self, **kwargs) -> TenantPayrollSettings:
        return await self._add(TenantPayrollSettings(tenant_id=self.tenant_id, **kwargs))


@pytest.fixture
def seed(session, tenant_id) -> Seeder:
    return Seeder(session, tenant_id)


@pytest.fixture
async def client(session) -> AsyncGenerator[AsyncClient, None]:
    """API client sharing the test session."""
    app = create_app()

    async def _session_override() -> AsyncGenerator[AsyncSession, None]:
        yield session

    app.dependency_overrides[get_db_session] = _session_override

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


def headers(actor: Actor) -> dict[str, str]:
    """Identity headers for an actor."""
    result = {"X-Tenant-ID": str(actor.tenant_id)}
    if actor.user_id:
        result["X-User-ID"] = str(actor.user_id)
    if actor.role:
        result["X-User-Role"] = actor.role
    return result
