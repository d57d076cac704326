"""Company, grouping and employee models."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    Date,
    ForeignKey,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hr_engine.models.base import Base, TimestampMixin


class GroupingMode(str, Enum):
    """How a company groups its employees."""

    OUTLET = "outlet"
    DEPARTMENT = "department"


class EmployeeRole(str, Enum):
    """Employee roles; admin roles belong to back-office users."""

    STAFF = "staff"
    SUPERVISOR = "supervisor"
    MANAGER = "manager"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


class WorkType(str, Enum):
    FULL_TIME = "full_time"
    PART_TIME = "part_time"


class Company(Base, TimestampMixin):
    """Tenant company."""

    __tablename__ = "company"

    company_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    grouping_mode: Mapped[str] = mapped_column(
        String, nullable=False, default=GroupingMode.OUTLET.value
    )
    standard_work_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=510)
    claim_auto_approve_threshold: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("100.00")
    )
    claim_amount_tolerance: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("0.00")
    )

    __table_args__ = (
        CheckConstraint(
            "grouping_mode IN ('outlet', 'department')",
            name="company_grouping_mode_check",
        ),
    )

    @property
    def is_outlet_mode(self) -> bool:
        return self.grouping_mode == GroupingMode.OUTLET.value


class Outlet(Base, TimestampMixin):
    """Physical outlet (outlet-mode companies)."""

    __tablename__ = "outlet"

    outlet_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    company_id: Mapped[UUID] = mapped_column(
        ForeignKey("company.company_id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String, nullable=False)


class Department(Base, TimestampMixin):
    """Department (department-mode companies)."""

    __tablename__ = "department"

    department_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    company_id: Mapped[UUID] = mapped_column(
        ForeignKey("company.company_id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String, nullable=False)


class Employee(Base, TimestampMixin):
    """Employee record."""

    __tablename__ = "employee"

    employee_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    company_id: Mapped[UUID] = mapped_column(
        ForeignKey("company.company_id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    outlet_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("outlet.outlet_id"), nullable=True
    )
    department_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("department.department_id"), nullable=True
    )
    role: Mapped[str] = mapped_column(String, nullable=False, default=EmployeeRole.STAFF.value)
    gender: Mapped[str | None] = mapped_column(String, nullable=True)
    join_date: Mapped[date] = mapped_column(Date, nullable=False)
    work_type: Mapped[str] = mapped_column(
        String, nullable=False, default=WorkType.FULL_TIME.value
    )
    status: Mapped[str] = mapped_column(String, nullable=False, default="active")

    __table_args__ = (
        CheckConstraint(
            "role IN ('staff', 'supervisor', 'manager')",
            name="employee_role_check",
        ),
        CheckConstraint(
            "work_type IN ('full_time', 'part_time')",
            name="employee_work_type_check",
        ),
        CheckConstraint(
            "status IN ('active', 'inactive', 'resigned')",
            name="employee_status_check",
        ),
        CheckConstraint(
            "outlet_id IS NULL OR department_id IS NULL",
            name="employee_single_grouping_check",
        ),
    )

    company: Mapped[Company] = relationship(lazy="joined", innerjoin=True)


class ManagedOutlet(Base):
    """Outlets a supervisor or manager looks after."""

    __tablename__ = "employee_outlet"

    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"), primary_key=True
    )
    outlet_id: Mapped[UUID] = mapped_column(
        ForeignKey("outlet.outlet_id", ondelete="CASCADE"), primary_key=True
    )


class ManagedDepartment(Base):
    """Departments a manager administers."""

    __tablename__ = "employee_department"

    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"), primary_key=True
    )
    department_id: Mapped[UUID] = mapped_column(
        ForeignKey("department.department_id", ondelete="CASCADE"), primary_key=True
    )
