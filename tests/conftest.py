"""Pytest fixtures for HR engine tests."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import AsyncGenerator
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from hr_engine.clock import FixedClock
from hr_engine.config import Settings
from hr_engine.integrations.notifications import Notification, NotificationEmitter
from hr_engine.integrations.object_store import InMemoryObjectStore
from hr_engine.models import (
    Base,
    ClaimCategory,
    Company,
    Department,
    Employee,
    GroupingMode,
    LeaveType,
    ManagedOutlet,
    Outlet,
)
from hr_engine.services.authority import Actor, ActorClaims, load_actor
from hr_engine.services.context import ServiceContext

# One in-memory SQLite database per test; StaticPool keeps the single
# connection alive for the life of the engine.
TEST_DATABASE_URL = "sqlite+aiosqlite://"

# Monday
TEST_NOW = datetime(2025, 12, 1, 9, 0)


@pytest.fixture
async def engine():
    """Create test database engine."""
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


class RecordingSink:
    """Notification sink that keeps everything it receives."""

    def __init__(self) -> None:
        self.received: list[Notification] = []

    def __call__(self, notification: Notification) -> None:
        self.received.append(notification)

    def of_type(self, type_: str) -> list[Notification]:
        return [n for n in self.received if n.type == type_]

    def recipients(self, type_: str) -> set:
        return {n.employee_id for n in self.of_type(type_)}


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url=TEST_DATABASE_URL,
        engine_version="test",
        host="127.0.0.1",
        port=8000,
        debug=True,
        upload_timeout_seconds=2.0,
    )


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(TEST_NOW)


@pytest.fixture
def object_store() -> InMemoryObjectStore:
    return InMemoryObjectStore()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def ctx(settings, clock, object_store, sink) -> ServiceContext:
    notifier = NotificationEmitter()
    notifier.register(sink)
    return ServiceContext(
        settings=settings,
        clock=clock,
        object_store=object_store,
        notifier=notifier,
    )


# ============================================================================
# Outlet-mode company
# ============================================================================


@pytest.fixture
async def company(session: AsyncSession) -> Company:
    """Outlet-mode company with the default 510 minute standard day."""
    company = Company(
        company_id=uuid4(),
        name="Kedai Kopi Sdn Bhd",
        grouping_mode=GroupingMode.OUTLET.value,
        standard_work_minutes=510,
        claim_auto_approve_threshold=Decimal("100.00"),
        claim_amount_tolerance=Decimal("0.00"),
    )
    session.add(company)
    await session.commit()
    return company


@pytest.fixture
async def outlet(session: AsyncSession, company: Company) -> Outlet:
    outlet = Outlet(outlet_id=uuid4(), company_id=company.company_id, name="Bangsar")
    session.add(outlet)
    await session.commit()
    return outlet


@pytest.fixture
async def other_outlet(session: AsyncSession, company: Company) -> Outlet:
    outlet = Outlet(outlet_id=uuid4(), company_id=company.company_id, name="Cheras")
    session.add(outlet)
    await session.commit()
    return outlet


async def add_employee(
    session: AsyncSession,
    company: Company,
    name: str,
    role: str = "staff",
    outlet: Outlet | None = None,
    department: Department | None = None,
    gender: str = "male",
    join_date: date = date(2022, 1, 10),
    work_type: str = "full_time",
    manages: list[Outlet] | None = None,
) -> Employee:
    """Insert an employee (and the outlets they manage) and commit."""
    employee = Employee(
        employee_id=uuid4(),
        company_id=company.company_id,
        company=company,
        name=name,
        outlet_id=outlet.outlet_id if outlet else None,
        department_id=department.department_id if department else None,
        role=role,
        gender=gender,
        join_date=join_date,
        work_type=work_type,
        status="active",
    )
    session.add(employee)
    await session.flush()
    for managed in manages or []:
        session.add(ManagedOutlet(employee_id=employee.employee_id, outlet_id=managed.outlet_id))
    await session.commit()
    return employee


@pytest.fixture
async def staff(session: AsyncSession, company: Company, outlet: Outlet) -> Employee:
    return await add_employee(session, company, "Aiman", outlet=outlet)


@pytest.fixture
async def supervisor(session: AsyncSession, company: Company, outlet: Outlet) -> Employee:
    return await add_employee(
        session,
        company,
        "Siti",
        role="supervisor",
        outlet=outlet,
        gender="female",
        manages=[outlet],
    )


@pytest.fixture
async def manager(session: AsyncSession, company: Company, outlet: Outlet) -> Employee:
    return await add_employee(
        session, company, "Rajesh", role="manager", outlet=outlet, manages=[outlet]
    )


async def actor_for(session: AsyncSession, employee: Employee) -> Actor:
    """Resolve an employee into an Actor the way the API does."""
    return await load_actor(
        session,
        ActorClaims(
            employee_id=employee.employee_id,
            role=employee.role,
            company_id=employee.company_id,
        ),
    )


async def admin_of(session: AsyncSession, company: Company, role: str = "admin") -> Actor:
    return await load_actor(
        session, ActorClaims(employee_id=None, role=role, company_id=company.company_id)
    )


@pytest.fixture
async def staff_actor(session: AsyncSession, staff: Employee) -> Actor:
    return await actor_for(session, staff)


@pytest.fixture
async def supervisor_actor(session: AsyncSession, supervisor: Employee) -> Actor:
    return await actor_for(session, supervisor)


@pytest.fixture
async def manager_actor(session: AsyncSession, manager: Employee) -> Actor:
    return await actor_for(session, manager)


@pytest.fixture
async def admin_actor(session: AsyncSession, company: Company) -> Actor:
    return await admin_of(session, company)


# ============================================================================
# Department-mode company
# ============================================================================


@pytest.fixture
async def dept_company(session: AsyncSession) -> Company:
    company = Company(
        company_id=uuid4(),
        name="Perunding Teknik Bhd",
        grouping_mode=GroupingMode.DEPARTMENT.value,
        standard_work_minutes=480,
    )
    session.add(company)
    await session.commit()
    return company


@pytest.fixture
async def department(session: AsyncSession, dept_company: Company) -> Department:
    department = Department(
        department_id=uuid4(), company_id=dept_company.company_id, name="Engineering"
    )
    session.add(department)
    await session.commit()
    return department


@pytest.fixture
async def dept_staff(
    session: AsyncSession, dept_company: Company, department: Department
) -> Employee:
    return await add_employee(
        session, dept_company, "Mei Ling", department=department, gender="female"
    )


@pytest.fixture
async def dept_supervisor(
    session: AsyncSession, dept_company: Company, department: Department
) -> Employee:
    return await add_employee(
        session, dept_company, "Hafiz", role="supervisor", department=department
    )


# ============================================================================
# Leave types and claim categories
# ============================================================================


@pytest.fixture
async def annual_leave(session: AsyncSession) -> LeaveType:
    """Global annual leave: 8/12/16 days by service years, carry forward 5."""
    leave_type = LeaveType(
        leave_type_id=uuid4(),
        company_id=None,
        code="AL",
        name="Annual Leave",
        is_paid=True,
        carries_forward=True,
        max_carry_forward=Decimal("5"),
        default_days_per_year=Decimal("8"),
        entitlement_rules=[
            {"min_years": 0, "max_years": 2, "days": 8},
            {"min_years": 2, "max_years": 5, "days": 12},
            {"min_years": 5, "max_years": None, "days": 16},
        ],
    )
    session.add(leave_type)
    await session.commit()
    return leave_type


@pytest.fixture
async def unpaid_leave(session: AsyncSession) -> LeaveType:
    leave_type = LeaveType(
        leave_type_id=uuid4(),
        company_id=None,
        code="UL",
        name="Unpaid Leave",
        is_paid=False,
        default_days_per_year=Decimal("0"),
    )
    session.add(leave_type)
    await session.commit()
    return leave_type


@pytest.fixture
async def maternity_leave(session: AsyncSession) -> LeaveType:
    leave_type = LeaveType(
        leave_type_id=uuid4(),
        company_id=None,
        code="MAT",
        name="Maternity Leave",
        is_paid=True,
        is_consecutive=True,
        gender_restriction="female",
        min_service_days=90,
        max_occurrences=5,
        default_days_per_year=Decimal("98"),
    )
    session.add(leave_type)
    await session.commit()
    return leave_type


@pytest.fixture
async def claim_categories(session: AsyncSession, company: Company) -> dict[str, ClaimCategory]:
    """meal (max 30, auto-cap), fuel (max 200), parking (receipt required)."""
    categories = {
        "meal": ClaimCategory(
            company_id=company.company_id,
            code="meal",
            name="Meal",
            max_amount=Decimal("30.00"),
            auto_cap=True,
        ),
        "fuel": ClaimCategory(
            company_id=company.company_id,
            code="fuel",
            name="Fuel",
            max_amount=Decimal("200.00"),
            auto_cap=False,
        ),
        "parking": ClaimCategory(
            company_id=company.company_id,
            code="parking",
            name="Parking",
            receipt_required=True,
        ),
    }
    session.add_all(categories.values())
    await session.commit()
    return categories
