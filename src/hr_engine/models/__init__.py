"""ORM models."""

from hr_engine.models.advances import (
    AdvanceStatus,
    DeductionMethod,
    SalaryAdvance,
    SalaryAdvanceDeduction,
)
from hr_engine.models.attendance import (
    SLOTS,
    ApprovalStatus,
    AttendanceStatus,
    PublicHoliday,
    Schedule,
    ScheduleStatus,
    Timecard,
    TimecardPunch,
    TimecardStatus,
)
from hr_engine.models.base import Base, TimestampMixin
from hr_engine.models.claims import AIConfidence, Claim, ClaimCategory, ClaimStatus
from hr_engine.models.leave import (
    LeaveBalance,
    LeavePayrollLink,
    LeaveRequest,
    LeaveStatus,
    LeaveType,
)
from hr_engine.models.organization import (
    Company,
    Department,
    Employee,
    EmployeeRole,
    GroupingMode,
    ManagedDepartment,
    ManagedOutlet,
    Outlet,
    WorkType,
)
from hr_engine.models.payroll import PayrollItem, PayrollItemStatus

__all__ = [
    "AIConfidence",
    "AdvanceStatus",
    "ApprovalStatus",
    "AttendanceStatus",
    "Base",
    "Claim",
    "ClaimCategory",
    "ClaimStatus",
    "Company",
    "DeductionMethod",
    "Department",
    "Employee",
    "EmployeeRole",
    "GroupingMode",
    "LeaveBalance",
    "LeavePayrollLink",
    "LeaveRequest",
    "LeaveStatus",
    "LeaveType",
    "ManagedDepartment",
    "ManagedOutlet",
    "Outlet",
    "PayrollItem",
    "PayrollItemStatus",
    "PublicHoliday",
    "SLOTS",
    "SalaryAdvance",
    "SalaryAdvanceDeduction",
    "Schedule",
    "ScheduleStatus",
    "Timecard",
    "TimecardPunch",
    "TimecardStatus",
    "TimestampMixin",
    "WorkType",
]
