"""API routes."""

from hr_engine.api.routes.advances import router as advances_router
from hr_engine.api.routes.attendance import router as attendance_router
from hr_engine.api.routes.claims import router as claims_router
from hr_engine.api.routes.companies import router as companies_router
from hr_engine.api.routes.health import router as health_router
from hr_engine.api.routes.holidays import router as holidays_router
from hr_engine.api.routes.leave import router as leave_router
from hr_engine.api.routes.payroll import router as payroll_router

__all__ = [
    "advances_router",
    "attendance_router",
    "claims_router",
    "companies_router",
    "health_router",
    "holidays_router",
    "leave_router",
    "payroll_router",
]
