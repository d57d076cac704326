"""Leave request workflow: submission, multi-level decisions and cancellation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_engine.calculators.working_days import calendar_days, count_working_days
from hr_engine.clock import today
from hr_engine.database import unit_of_work
from hr_engine.errors import (
    AuthorizationDenied,
    ConcurrentBalanceMismatch,
    Conflict,
    LinkedToPayroll,
    NotFound,
    ValidationFailed,
)
from hr_engine.integrations.notifications import Notification
from hr_engine.integrations.object_store import upload_with_deadline
from hr_engine.models import (
    Employee,
    EmployeeRole,
    LeaveRequest,
    LeaveStatus,
    LeaveType,
)
from hr_engine.services.authority import (
    Actor,
    ApprovalTarget,
    find_approvers,
    get_employee,
    initial_approval_level,
    levels_for_role,
    require_admin,
    require_authority,
    role_matches_level,
    scope_to_actor,
)
from hr_engine.services.context import ServiceContext
from hr_engine.services.leave_entitlement_service import LeaveEntitlementService

logger = logging.getLogger(__name__)

HALF_DAY = Decimal("0.5")

# Employee roles notified when a request reaches a level
LEVEL_APPROVER_ROLE = {
    1: EmployeeRole.SUPERVISOR.value,
    2: EmployeeRole.MANAGER.value,
}


def request_for_update(leave_request_id: UUID) -> Select:
    """Lock one request row. The eagerly joined leave type row is not locked."""
    return (
        select(LeaveRequest)
        .where(LeaveRequest.leave_request_id == leave_request_id)
        .with_for_update(of=LeaveRequest)
    )


class LeaveDecision(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


@dataclass(frozen=True)
class LeaveSubmission:
    """A leave application as entered by the employee."""

    leave_type_id: UUID
    start_date: date
    end_date: date
    half_day: bool = False
    reason: str | None = None
    attachment: bytes | None = None
    attachment_name: str | None = None
    attachment_url: str | None = None


class LeaveService:
    """Service for the leave request lifecycle.

    Operations:
    - submit: validate, size and route a new request
    - decide: approve (advancing the level, committing balance at level 3)
      or reject with a reason
    - cancel: requester withdraws a pending request
    - admin_cancel: admin withdraws an approved request, restoring balance
    - team_pending: requests the actor can decide right now
    """

    def __init__(self, session: AsyncSession, ctx: ServiceContext):
        self.session = session
        self.ctx = ctx
        self.entitlements = LeaveEntitlementService(session)

    async def _get_employee(self, employee_id: UUID) -> Employee:
        return await get_employee(self.session, employee_id)

    async def _get_leave_type(self, leave_type_id: UUID, company_id: UUID) -> LeaveType:
        leave_type = await self.session.get(LeaveType, leave_type_id)
        if leave_type is None or leave_type.company_id not in (None, company_id):
            raise NotFound("LeaveType", leave_type_id)
        return leave_type

    async def _lock_request(self, leave_request_id: UUID) -> LeaveRequest:
        result = await self.session.execute(request_for_update(leave_request_id))
        request = result.scalar_one_or_none()
        if request is None:
            raise NotFound("LeaveRequest", leave_request_id)
        return request

    async def find_overlapping(
        self,
        employee_id: UUID,
        start_date: date,
        end_date: date,
        statuses: tuple[str, ...] = (LeaveStatus.PENDING.value, LeaveStatus.APPROVED.value),
        exclude_id: UUID | None = None,
    ) -> list[LeaveRequest]:
        """Requests of the employee whose inclusive range meets [start, end]."""
        stmt = select(LeaveRequest).where(
            LeaveRequest.employee_id == employee_id,
            LeaveRequest.status.in_(statuses),
            LeaveRequest.start_date <= end_date,
            LeaveRequest.end_date >= start_date,
        )
        if exclude_id is not None:
            stmt = stmt.where(LeaveRequest.leave_request_id != exclude_id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count_days(
        self, leave_type: LeaveType, company_id: UUID, start: date, end: date, half_day: bool
    ) -> Decimal:
        """Days charged for a request; raises when the range charges nothing."""
        if leave_type.is_consecutive:
            days = calendar_days(start, end)
        else:
            holidays = await self.ctx.holidays.get(self.session, company_id)
            days = count_working_days(start, end, holidays)

        if half_day:
            if days != 1:
                raise ValidationFailed("half day applies only to a single working day")
            return HALF_DAY
        if days == 0:
            raise ValidationFailed("the selected dates contain no working days")
        return Decimal(days)

    async def submit(self, actor: Actor, submission: LeaveSubmission) -> LeaveRequest:
        if actor.employee_id is None:
            raise AuthorizationDenied("Only employees can apply for leave")

        reasons: list[str] = []
        if submission.start_date > submission.end_date:
            reasons.append("start date must not be after end date")
        if submission.start_date < today(self.ctx.clock):
            reasons.append("start date must not be in the past")
        if reasons:
            raise ValidationFailed(reasons)

        employee = await self._get_employee(actor.employee_id)
        leave_type = await self._get_leave_type(submission.leave_type_id, employee.company_id)

        async with self.ctx.notifier.outbox() as outbox:
            async with unit_of_work(self.session):
                eligibility = await self.entitlements.eligibility(
                    employee, leave_type, submission.start_date
                )
                if not eligibility.eligible:
                    raise ValidationFailed(eligibility.reason or "not eligible for this leave type")

                has_attachment = bool(submission.attachment) or bool(submission.attachment_url)
                if leave_type.requires_attachment and not has_attachment:
                    raise ValidationFailed(f"{leave_type.name} requires a supporting document")

                if await self.find_overlapping(
                    employee.employee_id, submission.start_date, submission.end_date
                ):
                    raise Conflict("overlapping request")

                total_days = await self.count_days(
                    leave_type,
                    employee.company_id,
                    submission.start_date,
                    submission.end_date,
                    submission.half_day,
                )

                if leave_type.is_paid:
                    balance = await self.entitlements.ensure_balance(
                        employee, leave_type, submission.start_date.year
                    )
                    if balance.available_days < total_days:
                        raise ValidationFailed(
                            f"insufficient balance: {balance.available_days} available, "
                            f"{total_days} requested"
                        )

                attachment_url = submission.attachment_url
                if submission.attachment:
                    name = submission.attachment_name or "attachment"
                    attachment_url = await upload_with_deadline(
                        self.ctx.object_store,
                        submission.attachment,
                        folder="leave-attachments",
                        key=f"{employee.employee_id}/{uuid4().hex}-{name}",
                        timeout=self.ctx.settings.upload_timeout_seconds,
                    )

                level = initial_approval_level(employee.company.grouping_mode, employee.role)
                request = LeaveRequest(
                    leave_request_id=uuid4(),
                    employee_id=employee.employee_id,
                    leave_type_id=leave_type.leave_type_id,
                    start_date=submission.start_date,
                    end_date=submission.end_date,
                    total_days=total_days,
                    half_day=submission.half_day,
                    reason=submission.reason,
                    attachment_url=attachment_url,
                    status=LeaveStatus.PENDING.value,
                    approval_level=level,
                    payroll_links=[],
                )
                request.leave_type = leave_type
                self.session.add(request)
                outbox.extend(await self._approver_notifications(employee, request))

        logger.info(
            "Leave request %s submitted by %s: %s %s..%s (%s days, level %d)",
            request.leave_request_id,
            employee.employee_id,
            leave_type.code,
            submission.start_date,
            submission.end_date,
            total_days,
            level,
        )
        return request

    async def _approver_notifications(
        self, employee: Employee, request: LeaveRequest
    ) -> list[Notification]:
        role = LEVEL_APPROVER_ROLE.get(request.approval_level)
        if role is None:
            return []
        approvers = await find_approvers(self.session, employee, role)
        return [
            Notification(
                employee_id=approver.employee_id,
                type="leave_pending",
                title="Leave request awaiting approval",
                message=(
                    f"{employee.name} applied for {request.total_days} day(s) of leave "
                    f"from {request.start_date.isoformat()} to {request.end_date.isoformat()}"
                ),
                reference_type="leave_request",
                reference_id=request.leave_request_id,
            )
            for approver in approvers
        ]

    @staticmethod
    def _requester_notification(request: LeaveRequest, title: str, message: str) -> Notification:
        return Notification(
            employee_id=request.employee_id,
            type="leave_decision",
            title=title,
            message=message,
            reference_type="leave_request",
            reference_id=request.leave_request_id,
        )

    async def decide(
        self,
        actor: Actor,
        leave_request_id: UUID,
        decision: LeaveDecision | str,
        reason: str | None = None,
    ) -> LeaveRequest:
        """Approve or reject at the request's current level."""
        decision = LeaveDecision(decision)
        if decision == LeaveDecision.REJECT and not (reason and reason.strip()):
            raise ValidationFailed("rejection reason is required")

        async with self.ctx.notifier.outbox() as outbox:
            async with unit_of_work(self.session):
                request = await self._lock_request(leave_request_id)
                if request.is_linked:
                    raise LinkedToPayroll("LeaveRequest", leave_request_id)
                if request.status != LeaveStatus.PENDING.value:
                    raise Conflict(f"Leave request {leave_request_id} is {request.status}")

                employee = await self._get_employee(request.employee_id)
                require_authority(actor, ApprovalTarget.for_employee(employee))
                if not role_matches_level(actor.role, request.approval_level):
                    raise AuthorizationDenied(
                        f"Role '{actor.role}' cannot decide at approval level "
                        f"{request.approval_level}"
                    )

                now = self.ctx.clock.now()
                if decision == LeaveDecision.REJECT:
                    request.status = LeaveStatus.REJECTED.value
                    request.rejection_reason = reason.strip()
                    request.approver_id = actor.employee_id
                    outbox.add(
                        self._requester_notification(
                            request,
                            "Leave request rejected",
                            f"Your leave from {request.start_date.isoformat()} was rejected: "
                            f"{request.rejection_reason}",
                        )
                    )
                elif request.approval_level < 3:
                    if request.approval_level == 1:
                        request.supervisor_id = actor.employee_id
                        request.supervisor_approved_at = now
                    else:
                        request.manager_id = actor.employee_id
                        request.manager_approved_at = now
                    request.approval_level += 1
                    outbox.add(
                        self._requester_notification(
                            request,
                            "Leave request progressed",
                            f"Your leave from {request.start_date.isoformat()} moved to "
                            f"approval level {request.approval_level}",
                        )
                    )
                    outbox.extend(await self._approver_notifications(employee, request))
                else:
                    await self._commit_approval(request, employee)
                    request.status = LeaveStatus.APPROVED.value
                    request.approver_id = actor.employee_id
                    request.approved_at = now
                    outbox.add(
                        self._requester_notification(
                            request,
                            "Leave request approved",
                            f"Your leave from {request.start_date.isoformat()} to "
                            f"{request.end_date.isoformat()} was approved",
                        )
                    )

        logger.info(
            "Leave request %s %s by %s (status=%s, level=%d)",
            leave_request_id,
            decision.value,
            actor.employee_id or actor.role,
            request.status,
            request.approval_level,
        )
        return request

    async def _commit_approval(self, request: LeaveRequest, employee: Employee) -> None:
        """Charge the balance under a row lock, re-checking overlap and availability."""
        leave_type = request.leave_type
        balance = await self.entitlements.ensure_balance(
            employee, leave_type, request.start_date.year, lock=True
        )

        overlapping = await self.find_overlapping(
            request.employee_id,
            request.start_date,
            request.end_date,
            statuses=(LeaveStatus.APPROVED.value,),
            exclude_id=request.leave_request_id,
        )
        if overlapping:
            raise ConcurrentBalanceMismatch(
                f"Leave request {request.leave_request_id} overlaps an approved request"
            )

        total = Decimal(request.total_days)
        if leave_type.is_paid and balance.available_days < total:
            raise ConcurrentBalanceMismatch(
                f"Balance changed: {balance.available_days} available, {total} required"
            )
        balance.used_days = Decimal(balance.used_days) + total

    async def cancel(self, actor: Actor, leave_request_id: UUID) -> LeaveRequest:
        """Requester withdraws a pending request."""
        async with unit_of_work(self.session):
            request = await self._lock_request(leave_request_id)
            if actor.employee_id is None or request.employee_id != actor.employee_id:
                raise AuthorizationDenied("Only the requester may cancel a leave request")
            if request.status != LeaveStatus.PENDING.value:
                raise Conflict(
                    f"Only pending requests can be cancelled; this one is {request.status}"
                )

            request.status = LeaveStatus.CANCELLED.value
            request.cancelled_at = self.ctx.clock.now()

        logger.info("Leave request %s cancelled by requester", leave_request_id)
        return request

    async def admin_cancel(
        self, actor: Actor, leave_request_id: UUID, reason: str | None = None
    ) -> LeaveRequest:
        """Withdraw a pending or approved request; approved paid days are restored."""
        async with self.ctx.notifier.outbox() as outbox:
            async with unit_of_work(self.session):
                request = await self._lock_request(leave_request_id)
                employee = await self._get_employee(request.employee_id)
                require_admin(actor, employee.company_id)
                if request.is_linked:
                    raise LinkedToPayroll("LeaveRequest", leave_request_id)
                if request.status not in (LeaveStatus.PENDING.value, LeaveStatus.APPROVED.value):
                    raise Conflict(f"Leave request {leave_request_id} is {request.status}")

                if request.status == LeaveStatus.APPROVED.value:
                    balance = await self.entitlements.get_balance(
                        request.employee_id,
                        request.leave_type_id,
                        request.start_date.year,
                        lock=True,
                    )
                    if balance is not None:
                        balance.used_days = max(
                            Decimal("0"), Decimal(balance.used_days) - Decimal(request.total_days)
                        )

                request.status = LeaveStatus.CANCELLED.value
                request.cancelled_at = self.ctx.clock.now()
                if reason:
                    request.rejection_reason = reason
                outbox.add(
                    self._requester_notification(
                        request,
                        "Leave cancelled",
                        f"Your leave from {request.start_date.isoformat()} was cancelled"
                        + (f": {reason}" if reason else ""),
                    )
                )

        logger.info("Leave request %s cancelled by admin", leave_request_id)
        return request

    async def team_pending(self, actor: Actor) -> list[LeaveRequest]:
        """Pending requests the actor may decide at their current level."""
        levels = levels_for_role(actor.role)
        if not levels:
            return []

        stmt = (
            select(LeaveRequest)
            .join(Employee, Employee.employee_id == LeaveRequest.employee_id)
            .where(
                LeaveRequest.status == LeaveStatus.PENDING.value,
                LeaveRequest.approval_level.in_(levels),
            )
            .order_by(LeaveRequest.start_date)
        )
        result = await self.session.execute(scope_to_actor(stmt, actor))
        return list(result.scalars().all())
