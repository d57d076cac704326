"""Salary advance models."""

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
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hr_engine.models.base import Base, TimestampMixin


class AdvanceStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class DeductionMethod(str, Enum):
    FULL = "full"
    INSTALLMENT = "installment"


class SalaryAdvance(Base, TimestampMixin):
    """Salary advance repaid through payroll deductions."""

    __tablename__ = "salary_advance"

    advance_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"), nullable=False
    )
    company_id: Mapped[UUID] = mapped_column(
        ForeignKey("company.company_id", ondelete="CASCADE"), nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    advance_date: Mapped[date] = mapped_column(Date, nullable=False)
    reason: Mapped[str | None] = mapped_column(String, nullable=True)
    reference_number: Mapped[str | None] = mapped_column(String, nullable=True)

    deduction_method: Mapped[str] = mapped_column(
        String, nullable=False, default=DeductionMethod.FULL.value
    )
    installment_amount: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    first_deduction_month: Mapped[int] = mapped_column(Integer, nullable=False)
    first_deduction_year: Mapped[int] = mapped_column(Integer, nullable=False)

    total_deducted: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("0.00")
    )
    remaining_balance: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=AdvanceStatus.ACTIVE.value
    )
    created_by: Mapped[UUID | None] = mapped_column(nullable=True)

    __table_args__ = (
        CheckConstraint("amount > 0", name="salary_advance_amount_positive_check"),
        CheckConstraint(
            "total_deducted >= 0 AND total_deducted <= amount",
            name="salary_advance_deducted_bounds_check",
        ),
        CheckConstraint(
            "deduction_method IN ('full', 'installment')",
            name="salary_advance_method_check",
        ),
        CheckConstraint(
            "status IN ('active', 'completed', 'cancelled')",
            name="salary_advance_status_check",
        ),
        CheckConstraint(
            "first_deduction_month BETWEEN 1 AND 12",
            name="salary_advance_month_check",
        ),
    )

    deductions: Mapped[list[SalaryAdvanceDeduction]] = relationship(
        back_populates="advance",
        lazy="selectin",
        cascade="all, delete-orphan",
    )


class SalaryAdvanceDeduction(Base, TimestampMixin):
    """One month's deduction of an advance against a payroll item."""

    __tablename__ = "salary_advance_deduction"

    deduction_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    advance_id: Mapped[UUID] = mapped_column(
        ForeignKey("salary_advance.advance_id", ondelete="CASCADE"), nullable=False
    )
    payroll_item_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_item.payroll_item_id", ondelete="CASCADE"), nullable=False
    )
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "advance_id", "year", "month", name="salary_advance_deduction_month_unique"
        ),
    )

    advance: Mapped[SalaryAdvance] = relationship(back_populates="deductions")
