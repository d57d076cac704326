"""Integration test fixtures: the FastAPI app over the per-test database."""

from collections.abc import AsyncGenerator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from hr_engine.api.app import create_app
from hr_engine.api.dependencies import get_db_session
from hr_engine.models import Company, Employee
from hr_engine.services.context import ServiceContext


def employee_headers(employee: Employee) -> dict[str, str]:
    return {
        "X-Company-ID": str(employee.company_id),
        "X-Role": employee.role,
        "X-Employee-ID": str(employee.employee_id),
    }


def admin_headers(company: Company, role: str = "admin") -> dict[str, str]:
    return {"X-Company-ID": str(company.company_id), "X-Role": role}


@pytest.fixture
def app(session: AsyncSession, ctx: ServiceContext) -> FastAPI:
    """App bound to the test context, sharing the test session."""
    app = create_app(ctx)

    async def override_session() -> AsyncGenerator[AsyncSession, None]:
        yield session

    app.dependency_overrides[get_db_session] = override_session
    return app


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for testing."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


# Headers are resolved up front; fixture rows expire once a request rolls back.


@pytest.fixture
def staff_headers(staff: Employee) -> dict[str, str]:
    return employee_headers(staff)


@pytest.fixture
def supervisor_headers(supervisor: Employee) -> dict[str, str]:
    return employee_headers(supervisor)


@pytest.fixture
def admin_company_headers(company: Company) -> dict[str, str]:
    return admin_headers(company)


@pytest.fixture
def super_admin_headers(company: Company) -> dict[str, str]:
    return admin_headers(company, "super_admin")
