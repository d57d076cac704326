"""Attendance service: clock actions, timecard review and evidence retention."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from hr_engine.calculators.work_time import compute_work_time
from hr_engine.calculators.working_days import month_bounds
from hr_engine.clock import time_of_day, today
from hr_engine.database import unit_of_work
from hr_engine.errors import (
    AlreadyClockedIn,
    AuthorizationDenied,
    Conflict,
    LinkedToPayroll,
    NotFound,
    ValidationFailed,
)
from hr_engine.integrations.notifications import Notification
from hr_engine.integrations.object_store import upload_with_deadline
from hr_engine.models import (
    SLOTS,
    ApprovalStatus,
    AttendanceStatus,
    Employee,
    EmployeeRole,
    Schedule,
    ScheduleStatus,
    Timecard,
    TimecardPunch,
    TimecardStatus,
    WorkType,
)
from hr_engine.services.authority import (
    Actor,
    ApprovalTarget,
    find_approvers,
    get_employee,
    require_admin,
    require_authority,
    scope_to_actor,
)
from hr_engine.services.clock_state_machine import (
    ACTION_SLOTS,
    ClockAction,
    ClockState,
    ClockStateMachine,
)
from hr_engine.services.context import ServiceContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PunchEvidence:
    """What the device sends with a clock action."""

    selfie: bytes | None
    face_detected: bool
    latitude: Decimal | None
    longitude: Decimal | None
    address: str | None = None
    face_confidence: float | None = None


@dataclass
class TodayStatus:
    work_date: date
    state: ClockState
    next_action: str | None
    timecard: Timecard | None


@dataclass
class AttendanceHistory:
    """A month of timecards with totals."""

    month: int
    year: int
    timecards: list[Timecard] = field(default_factory=list)

    @property
    def days_worked(self) -> int:
        return sum(1 for t in self.timecards if t.clock_in_1 is not None)

    @property
    def days_completed(self) -> int:
        return sum(1 for t in self.timecards if t.status == TimecardStatus.COMPLETED.value)

    @property
    def total_work_minutes(self) -> int:
        return sum(t.work_minutes for t in self.timecards)

    @property
    def total_ot_minutes(self) -> int:
        return sum(t.ot_minutes for t in self.timecards)


class OvertimeDecision(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


@dataclass(frozen=True)
class TimecardOutcome:
    """Per-timecard result of a batch review."""

    timecard_id: UUID
    outcome: str  # approved | rejected | skipped | denied | not_found
    detail: str | None = None


def validate_evidence(evidence: PunchEvidence, max_selfie_bytes: int) -> None:
    """Collect every evidence problem and raise them together."""
    reasons: list[str] = []
    if not evidence.selfie:
        reasons.append("selfie is required")
    elif len(evidence.selfie) > max_selfie_bytes:
        reasons.append(
            f"selfie is {len(evidence.selfie)} bytes; maximum is {max_selfie_bytes}"
        )
    if not evidence.face_detected:
        reasons.append("no face detected in selfie")
    if evidence.latitude is None or evidence.longitude is None:
        reasons.append("location (latitude and longitude) is required")
    if reasons:
        raise ValidationFailed(reasons)


def months_before(on: date, months: int) -> date:
    """Same day ``months`` earlier, clamped to the end of a shorter month."""
    index = on.year * 12 + (on.month - 1) - months
    year, month = divmod(index, 12)
    month += 1
    last_day = month_bounds(year, month)[1].day
    return date(year, month, min(on.day, last_day))


class AttendanceService:
    """Service for the clock state machine and timecard review.

    Operations:
    - clock_action: record the next of the four daily clock actions
    - today_status / history: read views for the employee
    - approve_timecard / reject_timecard: supervisor review
    - bulk_approve_timecards: approve many completed timecards at once
    - pending_overtime / decide_overtime: supervisor decision on flagged overtime
    - clear_slot: supervisor override clearing a slot and all later slots
    - purge_evidence: drop selfie and location evidence past retention
    """

    def __init__(self, session: AsyncSession, ctx: ServiceContext):
        self.session = session
        self.ctx = ctx

    async def _get_employee(self, employee_id: UUID) -> Employee:
        return await get_employee(self.session, employee_id)

    async def _lock_timecard(self, employee_id: UUID, work_date: date) -> Timecard | None:
        result = await self.session.execute(
            select(Timecard)
            .where(Timecard.employee_id == employee_id, Timecard.work_date == work_date)
            .with_for_update(of=Timecard)
        )
        return result.scalar_one_or_none()

    async def _lock_timecard_by_id(self, timecard_id: UUID) -> Timecard:
        result = await self.session.execute(
            select(Timecard)
            .where(Timecard.timecard_id == timecard_id)
            .with_for_update(of=Timecard)
        )
        timecard = result.scalar_one_or_none()
        if timecard is None:
            raise NotFound("Timecard", timecard_id)
        return timecard

    async def _find_schedule(self, employee_id: UUID, work_date: date) -> Schedule | None:
        result = await self.session.execute(
            select(Schedule)
            .where(
                Schedule.employee_id == employee_id,
                Schedule.schedule_date == work_date,
                Schedule.status.in_(
                    [ScheduleStatus.SCHEDULED.value, ScheduleStatus.SWAPPED.value]
                ),
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    def _apply_totals(self, timecard: Timecard, employee: Employee) -> None:
        if timecard.clock_out_2 is None:
            timecard.work_minutes = 0
            timecard.ot_minutes = 0
            timecard.ot_flagged = False
            return

        totals = compute_work_time(
            timecard.clock_in_1,
            timecard.clock_out_1,
            timecard.clock_in_2,
            timecard.clock_out_2,
            standard_minutes=employee.company.standard_work_minutes,
            full_time=employee.work_type == WorkType.FULL_TIME.value,
        )
        timecard.work_minutes = totals.work_minutes
        timecard.ot_minutes = totals.ot_minutes
        timecard.ot_flagged = totals.ot_flagged

    async def clock_action(
        self, actor: Actor, action: ClockAction | str, evidence: PunchEvidence
    ) -> Timecard:
        """Record a clock action at server time and return the resulting row."""
        if actor.employee_id is None:
            raise AuthorizationDenied("Only employees can clock in or out")
        action = ClockAction(action)
        validate_evidence(evidence, self.ctx.settings.selfie_max_bytes)

        employee = await self._get_employee(actor.employee_id)
        work_date = today(self.ctx.clock)
        stamped = time_of_day(self.ctx.clock)
        slot = ACTION_SLOTS[action]

        async with self.ctx.notifier.outbox() as outbox:
            async with unit_of_work(self.session):
                timecard = await self._lock_timecard(employee.employee_id, work_date)
                state = ClockStateMachine.state_of(timecard)
                new_state = ClockStateMachine.apply(state, action, timecard)
                if timecard is not None and timecard.is_linked:
                    raise LinkedToPayroll(
                        "Timecard", timecard.timecard_id, timecard.linked_payroll_item_id
                    )

                schedule = None
                if action == ClockAction.CLOCK_IN_1 and employee.company.is_outlet_mode:
                    schedule = await self._find_schedule(employee.employee_id, work_date)

                # Upload before the first write; a timeout leaves nothing behind.
                selfie_url = await upload_with_deadline(
                    self.ctx.object_store,
                    evidence.selfie or b"",
                    folder="selfies",
                    key=f"{employee.employee_id}/{work_date.isoformat()}/{slot}-{uuid4().hex}.jpg",
                    timeout=self.ctx.settings.upload_timeout_seconds,
                )

                if timecard is None:
                    timecard = Timecard(
                        employee_id=employee.employee_id,
                        company_id=employee.company_id,
                        work_date=work_date,
                        work_minutes=0,
                        ot_minutes=0,
                        ot_flagged=False,
                        approval_status=ApprovalStatus.PENDING.value,
                        punches=[],
                    )
                    self.session.add(timecard)

                if action == ClockAction.CLOCK_IN_1 and employee.company.is_outlet_mode:
                    timecard.schedule_id = schedule.schedule_id if schedule else None
                    timecard.attendance_status = (
                        AttendanceStatus.PRESENT.value
                        if schedule
                        else AttendanceStatus.NO_SCHEDULE.value
                    )

                timecard.set_slot_time(slot, stamped)
                timecard.punches.append(
                    TimecardPunch(
                        slot=slot,
                        punched_at=stamped,
                        latitude=evidence.latitude,
                        longitude=evidence.longitude,
                        address=evidence.address,
                        selfie_url=selfie_url,
                        face_detected=evidence.face_detected,
                        face_confidence=evidence.face_confidence,
                    )
                )

                if new_state == ClockState.COMPLETED:
                    timecard.status = TimecardStatus.COMPLETED.value
                    self._apply_totals(timecard, employee)
                    if timecard.ot_flagged and employee.company.is_outlet_mode:
                        outbox.extend(await self._ot_notifications(employee, timecard))
                else:
                    timecard.status = TimecardStatus.IN_PROGRESS.value

                try:
                    await self.session.flush()
                except IntegrityError:
                    # A parallel clock_in_1 created the row first.
                    raise AlreadyClockedIn(employee.employee_id, work_date) from None

        logger.info(
            "Employee %s %s at %s on %s",
            employee.employee_id,
            action.value,
            stamped.isoformat(),
            work_date.isoformat(),
        )
        return timecard

    async def _ot_notifications(
        self, employee: Employee, timecard: Timecard
    ) -> list[Notification]:
        supervisors = await find_approvers(
            self.session, employee, EmployeeRole.SUPERVISOR.value
        )
        hours = timecard.ot_minutes / 60
        return [
            Notification(
                employee_id=supervisor.employee_id,
                type="overtime",
                title="Overtime recorded",
                message=(
                    f"{employee.name} worked {hours:.1f}h overtime on "
                    f"{timecard.work_date.isoformat()}"
                ),
                reference_type="timecard",
                reference_id=timecard.timecard_id,
            )
            for supervisor in supervisors
        ]

    async def today_status(self, actor: Actor) -> TodayStatus:
        if actor.employee_id is None:
            raise AuthorizationDenied("Only employees have a clock status")
        work_date = today(self.ctx.clock)
        result = await self.session.execute(
            select(Timecard).where(
                Timecard.employee_id == actor.employee_id, Timecard.work_date == work_date
            )
        )
        timecard = result.scalar_one_or_none()
        state = ClockStateMachine.state_of(timecard)
        return TodayStatus(
            work_date=work_date,
            state=state,
            next_action=ClockStateMachine.next_action(state),
            timecard=timecard,
        )

    async def history(
        self, actor: Actor, month: int, year: int, employee_id: UUID | None = None
    ) -> AttendanceHistory:
        """Timecards of one month; defaults to the actor's own."""
        if not 1 <= month <= 12:
            raise ValidationFailed(f"month must be between 1 and 12, got {month}")
        target_id = employee_id or actor.employee_id
        if target_id is None:
            raise ValidationFailed("employee_id is required")
        if target_id != actor.employee_id:
            employee = await self._get_employee(target_id)
            require_authority(actor, ApprovalTarget.for_employee(employee))

        start, end = month_bounds(year, month)
        result = await self.session.execute(
            select(Timecard)
            .where(
                Timecard.employee_id == target_id,
                Timecard.work_date >= start,
                Timecard.work_date <= end,
            )
            .order_by(Timecard.work_date.desc())
        )
        return AttendanceHistory(month=month, year=year, timecards=list(result.scalars().all()))

    async def _reviewable(self, actor: Actor, timecard_id: UUID) -> tuple[Timecard, Employee]:
        timecard = await self._lock_timecard_by_id(timecard_id)
        if timecard.is_linked:
            raise LinkedToPayroll("Timecard", timecard_id, timecard.linked_payroll_item_id)
        employee = await self._get_employee(timecard.employee_id)
        require_authority(actor, ApprovalTarget.for_employee(employee))
        return timecard, employee

    @staticmethod
    def _approval_blocker(timecard: Timecard) -> str | None:
        if timecard.status != TimecardStatus.COMPLETED.value:
            return f"Timecard {timecard.timecard_id} is not completed"
        if timecard.approval_status == ApprovalStatus.APPROVED.value:
            return f"Timecard {timecard.timecard_id} is already approved"
        return None

    def _approve(self, actor: Actor, timecard: Timecard) -> None:
        timecard.approval_status = ApprovalStatus.APPROVED.value
        timecard.approved_by = actor.employee_id
        timecard.approved_at = self.ctx.clock.now()
        timecard.rejection_reason = None

    async def approve_timecard(self, actor: Actor, timecard_id: UUID) -> Timecard:
        async with unit_of_work(self.session):
            timecard, _ = await self._reviewable(actor, timecard_id)
            blocker = self._approval_blocker(timecard)
            if blocker:
                raise Conflict(blocker)
            self._approve(actor, timecard)

        logger.info("Timecard %s approved by %s", timecard_id, actor.employee_id or actor.role)
        return timecard

    async def _try_review(
        self, actor: Actor, timecard_id: UUID
    ) -> tuple[Timecard | None, Employee | None, TimecardOutcome | None]:
        """Like _reviewable, but a refusal comes back as an outcome."""
        try:
            timecard, employee = await self._reviewable(actor, timecard_id)
        except NotFound as e:
            return None, None, TimecardOutcome(timecard_id, "not_found", e.message)
        except AuthorizationDenied as e:
            return None, None, TimecardOutcome(timecard_id, "denied", e.message)
        except LinkedToPayroll as e:
            return None, None, TimecardOutcome(timecard_id, "skipped", e.message)
        return timecard, employee, None

    async def bulk_approve_timecards(
        self, actor: Actor, timecard_ids: list[UUID]
    ) -> list[TimecardOutcome]:
        """Approve each completed, unlinked timecard the actor may review.

        The rest are reported per id and left untouched.
        """
        outcomes: list[TimecardOutcome] = []
        async with unit_of_work(self.session):
            for timecard_id in dict.fromkeys(timecard_ids):
                timecard, _, failed = await self._try_review(actor, timecard_id)
                if failed:
                    outcomes.append(failed)
                    continue
                blocker = self._approval_blocker(timecard)
                if blocker:
                    outcomes.append(TimecardOutcome(timecard_id, "skipped", blocker))
                    continue
                self._approve(actor, timecard)
                outcomes.append(TimecardOutcome(timecard_id, "approved"))

        logger.info(
            "Bulk timecard approval by %s: %d of %d approved",
            actor.employee_id or actor.role,
            sum(1 for o in outcomes if o.outcome == "approved"),
            len(outcomes),
        )
        return outcomes

    async def pending_overtime(self, actor: Actor) -> list[Timecard]:
        """Flagged, undecided and unlinked overtime the actor may decide."""
        stmt = (
            select(Timecard)
            .join(Employee, Employee.employee_id == Timecard.employee_id)
            .where(
                Timecard.ot_flagged.is_(True),
                Timecard.ot_approved.is_(None),
                Timecard.linked_payroll_item_id.is_(None),
            )
            .order_by(Timecard.work_date, Timecard.timecard_id)
        )
        result = await self.session.execute(scope_to_actor(stmt, actor))
        return list(result.scalars().all())

    async def decide_overtime(
        self,
        actor: Actor,
        timecard_ids: list[UUID],
        decision: OvertimeDecision | str,
        reason: str | None = None,
    ) -> list[TimecardOutcome]:
        """Approve or reject the flagged overtime of several timecards.

        Only the overtime is decided; the timecard's own approval is separate.
        Each affected employee is told of a rejection.
        """
        decision = OvertimeDecision(decision)
        reason = (reason or "").strip() or None
        if decision == OvertimeDecision.REJECT and reason is None:
            raise ValidationFailed("reason is required when rejecting overtime")
        approve = decision == OvertimeDecision.APPROVE

        outcomes: list[TimecardOutcome] = []
        async with self.ctx.notifier.outbox() as outbox:
            async with unit_of_work(self.session):
                for timecard_id in dict.fromkeys(timecard_ids):
                    timecard, employee, failed = await self._try_review(actor, timecard_id)
                    if failed:
                        outcomes.append(failed)
                        continue
                    if not timecard.ot_flagged:
                        outcomes.append(
                            TimecardOutcome(timecard_id, "skipped", "no flagged overtime")
                        )
                        continue
                    if timecard.ot_approved is not None:
                        outcomes.append(
                            TimecardOutcome(timecard_id, "skipped", "overtime already decided")
                        )
                        continue

                    timecard.ot_approved = approve
                    timecard.ot_decided_by = actor.employee_id
                    timecard.ot_decided_at = self.ctx.clock.now()
                    timecard.ot_rejection_reason = None if approve else reason
                    outcomes.append(
                        TimecardOutcome(timecard_id, "approved" if approve else "rejected")
                    )
                    if not approve:
                        hours = timecard.ot_minutes / 60
                        outbox.add(
                            Notification(
                                employee_id=employee.employee_id,
                                type="ot_approval",
                                title="Overtime rejected",
                                message=(
                                    f"Your {hours:.1f}h overtime on "
                                    f"{timecard.work_date.isoformat()} was rejected: {reason}"
                                ),
                                reference_type="timecard",
                                reference_id=timecard.timecard_id,
                            )
                        )

        logger.info(
            "Overtime %s by %s: %d of %d timecards",
            decision.value,
            actor.employee_id or actor.role,
            sum(1 for o in outcomes if o.outcome in ("approved", "rejected")),
            len(outcomes),
        )
        return outcomes

    async def reject_timecard(self, actor: Actor, timecard_id: UUID, reason: str) -> Timecard:
        if not reason or not reason.strip():
            raise ValidationFailed("rejection reason is required")

        async with self.ctx.notifier.outbox() as outbox:
            async with unit_of_work(self.session):
                timecard, employee = await self._reviewable(actor, timecard_id)
                if timecard.approval_status == ApprovalStatus.REJECTED.value:
                    raise Conflict(f"Timecard {timecard_id} is already rejected")

                timecard.approval_status = ApprovalStatus.REJECTED.value
                timecard.approved_by = actor.employee_id
                timecard.approved_at = self.ctx.clock.now()
                timecard.rejection_reason = reason.strip()
                outbox.add(
                    Notification(
                        employee_id=employee.employee_id,
                        type="timecard_rejected",
                        title="Timecard rejected",
                        message=(
                            f"Your timecard for {timecard.work_date.isoformat()} was rejected: "
                            f"{reason.strip()}"
                        ),
                        reference_type="timecard",
                        reference_id=timecard.timecard_id,
                    )
                )

        logger.info("Timecard %s rejected by %s", timecard_id, actor.employee_id or actor.role)
        return timecard

    async def clear_slot(self, actor: Actor, timecard_id: UUID, slot: str) -> Timecard:
        """Clear ``slot`` and every later slot, then recompute the totals."""
        if slot not in SLOTS:
            raise ValidationFailed(f"slot must be one of {', '.join(SLOTS)}")

        async with unit_of_work(self.session):
            timecard, employee = await self._reviewable(actor, timecard_id)
            cleared = SLOTS[SLOTS.index(slot):]
            for name in cleared:
                timecard.set_slot_time(name, None)
                punch = timecard.punch_for(name)
                if punch is not None:
                    timecard.punches.remove(punch)

            if timecard.clock_in_1 is None:
                timecard.status = TimecardStatus.NOT_STARTED.value
            else:
                timecard.status = TimecardStatus.IN_PROGRESS.value
            timecard.approval_status = ApprovalStatus.PENDING.value
            timecard.approved_by = None
            timecard.approved_at = None
            timecard.rejection_reason = None
            timecard.ot_approved = None
            timecard.ot_decided_by = None
            timecard.ot_decided_at = None
            timecard.ot_rejection_reason = None
            self._apply_totals(timecard, employee)

        logger.info(
            "Timecard %s slots %s cleared by %s",
            timecard_id,
            ",".join(cleared),
            actor.employee_id or actor.role,
        )
        return timecard

    async def purge_evidence(self, actor: Actor, before: date | None = None) -> int:
        """Clear selfie and location evidence for work dates before ``before``.

        Defaults to the retention window counted back from today. Returns the
        number of punches purged.
        """
        require_admin(actor)
        if before is None:
            before = months_before(
                today(self.ctx.clock), self.ctx.settings.evidence_retention_months
            )
        purged_at: datetime = self.ctx.clock.now()

        async with unit_of_work(self.session):
            stmt = (
                select(TimecardPunch)
                .join(Timecard, Timecard.timecard_id == TimecardPunch.timecard_id)
                .where(
                    Timecard.work_date < before,
                    TimecardPunch.evidence_purged_at.is_(None),
                )
            )
            if not actor.is_super_admin:
                stmt = stmt.where(Timecard.company_id == actor.company_id)
            result = await self.session.execute(stmt)
            punches = list(result.scalars().all())

            for punch in punches:
                punch.selfie_url = None
                punch.latitude = None
                punch.longitude = None
                punch.address = None
                punch.evidence_purged_at = purged_at

        logger.info("Purged evidence of %d punches dated before %s", len(punches), before)
        return len(punches)

