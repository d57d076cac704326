"""Leave type, balance and request models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hr_engine.models.base import Base, TimestampMixin


class LeaveStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class LeaveType(Base, TimestampMixin):
    """Leave type definition; company_id NULL marks a global type."""

    __tablename__ = "leave_type"

    leave_type_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    company_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("company.company_id", ondelete="CASCADE"), nullable=True
    )
    code: Mapped[str] = mapped_column(String, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    is_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    requires_attachment: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_consecutive: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    max_occurrences: Mapped[int | None] = mapped_column(Integer, nullable=True)
    min_service_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    gender_restriction: Mapped[str | None] = mapped_column(String, nullable=True)
    carries_forward: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    max_carry_forward: Mapped[Decimal] = mapped_column(
        Numeric(5, 1), nullable=False, default=Decimal("0")
    )
    default_days_per_year: Mapped[Decimal] = mapped_column(
        Numeric(5, 1), nullable=False, default=Decimal("0")
    )
    # [{"min_years": 0, "max_years": 2, "days": 8}, ...]; max_years null = open ended
    entitlement_rules: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON, nullable=True)

    __table_args__ = (
        UniqueConstraint("company_id", "code", name="leave_type_company_code_unique"),
    )


class LeaveBalance(Base, TimestampMixin):
    """Per employee, type and year balance."""

    __tablename__ = "leave_balance"

    balance_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"), nullable=False
    )
    leave_type_id: Mapped[UUID] = mapped_column(
        ForeignKey("leave_type.leave_type_id", ondelete="CASCADE"), nullable=False
    )
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    entitled_days: Mapped[Decimal] = mapped_column(
        Numeric(5, 1), nullable=False, default=Decimal("0")
    )
    carried_forward: Mapped[Decimal] = mapped_column(
        Numeric(5, 1), nullable=False, default=Decimal("0")
    )
    used_days: Mapped[Decimal] = mapped_column(
        Numeric(5, 1), nullable=False, default=Decimal("0")
    )

    __table_args__ = (
        UniqueConstraint(
            "employee_id", "leave_type_id", "year", name="leave_balance_employee_type_year_unique"
        ),
    )

    @property
    def available_days(self) -> Decimal:
        """entitled + carried_forward - used."""
        return (
            Decimal(self.entitled_days or 0)
            + Decimal(self.carried_forward or 0)
            - Decimal(self.used_days or 0)
        )


class LeaveRequest(Base, TimestampMixin):
    """Leave application moving through the approval levels."""

    __tablename__ = "leave_request"

    leave_request_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"), nullable=False
    )
    leave_type_id: Mapped[UUID] = mapped_column(
        ForeignKey("leave_type.leave_type_id"), nullable=False
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    total_days: Mapped[Decimal] = mapped_column(Numeric(5, 1), nullable=False)
    half_day: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    reason: Mapped[str | None] = mapped_column(String, nullable=True)
    attachment_url: Mapped[str | None] = mapped_column(String, nullable=True)

    status: Mapped[str] = mapped_column(String, nullable=False, default=LeaveStatus.PENDING.value)
    approval_level: Mapped[int] = mapped_column(Integer, nullable=False, default=3)

    supervisor_id: Mapped[UUID | None] = mapped_column(nullable=True)
    supervisor_approved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    manager_id: Mapped[UUID | None] = mapped_column(nullable=True)
    manager_approved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    approver_id: Mapped[UUID | None] = mapped_column(nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(String, nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'cancelled')",
            name="leave_request_status_check",
        ),
        CheckConstraint("approval_level IN (1, 2, 3)", name="leave_request_level_check"),
        CheckConstraint("end_date >= start_date", name="leave_request_dates_check"),
    )

    leave_type: Mapped[LeaveType] = relationship(lazy="joined", innerjoin=True)
    payroll_links: Mapped[list[LeavePayrollLink]] = relationship(
        back_populates="leave_request",
        lazy="selectin",
        cascade="all, delete-orphan",
    )

    @property
    def is_linked(self) -> bool:
        return bool(self.payroll_links)


class LeavePayrollLink(Base, TimestampMixin):
    """Binds the unpaid days of a leave request that fall in one payroll month."""

    __tablename__ = "leave_payroll_link"

    link_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    leave_request_id: Mapped[UUID] = mapped_column(
        ForeignKey("leave_request.leave_request_id", ondelete="CASCADE"), nullable=False
    )
    payroll_item_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_item.payroll_item_id", ondelete="CASCADE"), nullable=False
    )
    unpaid_days: Mapped[Decimal] = mapped_column(Numeric(5, 1), nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "leave_request_id", "payroll_item_id", name="leave_payroll_link_unique"
        ),
    )

    leave_request: Mapped[LeaveRequest] = relationship(back_populates="payroll_links")
