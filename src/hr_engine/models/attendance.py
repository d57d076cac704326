"""Timecard, schedule and public holiday models."""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hr_engine.models.base import Base, TimestampMixin


class TimecardStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class AttendanceStatus(str, Enum):
    PRESENT = "present"
    NO_SCHEDULE = "no_schedule"


class ScheduleStatus(str, Enum):
    SCHEDULED = "scheduled"
    SWAPPED = "swapped"
    CANCELLED = "cancelled"


# Slot order is the order of the four clock actions.
SLOTS = ("in1", "out1", "in2", "out2")


class Timecard(Base, TimestampMixin):
    """One employee's one working date with up to four clock actions."""

    __tablename__ = "timecard"

    timecard_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"), nullable=False
    )
    company_id: Mapped[UUID] = mapped_column(
        ForeignKey("company.company_id", ondelete="CASCADE"), nullable=False
    )
    work_date: Mapped[date] = mapped_column(Date, nullable=False)

    clock_in_1: Mapped[time | None] = mapped_column(Time, nullable=True)
    clock_out_1: Mapped[time | None] = mapped_column(Time, nullable=True)
    clock_in_2: Mapped[time | None] = mapped_column(Time, nullable=True)
    clock_out_2: Mapped[time | None] = mapped_column(Time, nullable=True)

    work_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    ot_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    ot_flagged: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # Left unset until payroll applies company policy.
    ot_rate: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    # NULL until a supervisor decides flagged overtime.
    ot_approved: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    ot_decided_by: Mapped[UUID | None] = mapped_column(nullable=True)
    ot_decided_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    ot_rejection_reason: Mapped[str | None] = mapped_column(String, nullable=True)

    status: Mapped[str] = mapped_column(
        String, nullable=False, default=TimecardStatus.NOT_STARTED.value
    )
    approval_status: Mapped[str] = mapped_column(
        String, nullable=False, default=ApprovalStatus.PENDING.value
    )
    approved_by: Mapped[UUID | None] = mapped_column(nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(String, nullable=True)

    schedule_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("schedule.schedule_id", ondelete="SET NULL"), nullable=True
    )
    attendance_status: Mapped[str | None] = mapped_column(String, nullable=True)

    linked_payroll_item_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("payroll_item.payroll_item_id", ondelete="SET NULL"), nullable=True
    )

    __table_args__ = (
        UniqueConstraint("employee_id", "work_date", name="timecard_employee_date_unique"),
        CheckConstraint(
            "status IN ('not_started', 'in_progress', 'completed')",
            name="timecard_status_check",
        ),
        CheckConstraint(
            "approval_status IN ('pending', 'approved', 'rejected')",
            name="timecard_approval_status_check",
        ),
        CheckConstraint("ot_minutes >= 0", name="timecard_ot_nonnegative_check"),
    )

    punches: Mapped[list[TimecardPunch]] = relationship(
        back_populates="timecard",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="TimecardPunch.punched_at",
    )

    def slot_time(self, slot: str) -> time | None:
        """Time recorded for slot ``in1``/``out1``/``in2``/``out2``."""
        return getattr(self, _SLOT_COLUMNS[slot])

    def set_slot_time(self, slot: str, value: time | None) -> None:
        setattr(self, _SLOT_COLUMNS[slot], value)

    def punch_for(self, slot: str) -> TimecardPunch | None:
        for punch in self.punches:
            if punch.slot == slot:
                return punch
        return None

    @property
    def is_linked(self) -> bool:
        return self.linked_payroll_item_id is not None


_SLOT_COLUMNS = {
    "in1": "clock_in_1",
    "out1": "clock_out_1",
    "in2": "clock_in_2",
    "out2": "clock_out_2",
}


class TimecardPunch(Base, TimestampMixin):
    """Evidence captured with one clock action: location, selfie, face check."""

    __tablename__ = "timecard_punch"

    punch_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    timecard_id: Mapped[UUID] = mapped_column(
        ForeignKey("timecard.timecard_id", ondelete="CASCADE"), nullable=False
    )
    slot: Mapped[str] = mapped_column(String, nullable=False)
    punched_at: Mapped[time] = mapped_column(Time, nullable=False)
    latitude: Mapped[Decimal | None] = mapped_column(Numeric(9, 6), nullable=True)
    longitude: Mapped[Decimal | None] = mapped_column(Numeric(9, 6), nullable=True)
    address: Mapped[str | None] = mapped_column(String, nullable=True)
    selfie_url: Mapped[str | None] = mapped_column(String, nullable=True)
    face_detected: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    face_confidence: Mapped[float | None] = mapped_column(Float, nullable=True)
    evidence_purged_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        UniqueConstraint("timecard_id", "slot", name="timecard_punch_slot_unique"),
        CheckConstraint(
            "slot IN ('in1', 'out1', 'in2', 'out2')",
            name="timecard_punch_slot_check",
        ),
    )

    timecard: Mapped[Timecard] = relationship(back_populates="punches")


class Schedule(Base, TimestampMixin):
    """Scheduled shift for an outlet-mode employee."""

    __tablename__ = "schedule"

    schedule_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"), nullable=False
    )
    schedule_date: Mapped[date] = mapped_column(Date, nullable=False)
    shift_start: Mapped[time] = mapped_column(Time, nullable=False)
    shift_end: Mapped[time] = mapped_column(Time, nullable=False)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=ScheduleStatus.SCHEDULED.value
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('scheduled', 'swapped', 'cancelled')",
            name="schedule_status_check",
        ),
    )


class PublicHoliday(Base, TimestampMixin):
    """Public holiday; company_id NULL means it applies to every company."""

    __tablename__ = "public_holiday"

    holiday_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    company_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("company.company_id", ondelete="CASCADE"), nullable=True
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    holiday_date: Mapped[date] = mapped_column(Date, nullable=False)
    extra_pay: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("company_id", "holiday_date", name="public_holiday_company_date_unique"),
    )
