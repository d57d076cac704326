"""Claim category and claim models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from hr_engine.models.base import Base, TimestampMixin


class ClaimStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class AIConfidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    UNREADABLE = "unreadable"


class ClaimCategory(Base, TimestampMixin):
    """Per-company claim category rules."""

    __tablename__ = "claim_category"

    category_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    company_id: Mapped[UUID] = mapped_column(
        ForeignKey("company.company_id", ondelete="CASCADE"), nullable=False
    )
    code: Mapped[str] = mapped_column(String, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    max_amount: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    auto_cap: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    receipt_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("company_id", "code", name="claim_category_company_code_unique"),
    )


class Claim(Base, TimestampMixin):
    """Expense claim."""

    __tablename__ = "claim"

    claim_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"), nullable=False
    )
    company_id: Mapped[UUID] = mapped_column(
        ForeignKey("company.company_id", ondelete="CASCADE"), nullable=False
    )
    claim_date: Mapped[date] = mapped_column(Date, nullable=False)
    category: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(String, nullable=True)
    claimed_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    receipt_url: Mapped[str | None] = mapped_column(String, nullable=True)
    receipt_hash: Mapped[str | None] = mapped_column(String, nullable=True, index=True)

    ai_extracted_amount: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    ai_confidence: Mapped[str | None] = mapped_column(String, nullable=True)
    amount_mismatch_ignored: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    status: Mapped[str] = mapped_column(String, nullable=False, default=ClaimStatus.PENDING.value)
    auto_approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    review_reason: Mapped[str | None] = mapped_column(String, nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(String, nullable=True)
    approver_id: Mapped[UUID | None] = mapped_column(nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    linked_payroll_item_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("payroll_item.payroll_item_id", ondelete="SET NULL"), nullable=True
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="claim_status_check",
        ),
        CheckConstraint(
            "ai_confidence IS NULL OR ai_confidence IN ('high', 'medium', 'low', 'unreadable')",
            name="claim_ai_confidence_check",
        ),
        CheckConstraint("amount >= 0", name="claim_amount_nonnegative_check"),
    )

    @property
    def is_linked(self) -> bool:
        return self.linked_payroll_item_id is not None
