"""Payroll linkage gate.

Snapshots the approved attendance, unpaid leave, claims and advance
deductions of one employee-month into a payroll item and binds every source
record to it. Bound records are immutable until the item is unlinked.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hr_engine.calculators.types import round_to_cents
from hr_engine.calculators.working_days import count_working_days, intersect, month_bounds
from hr_engine.database import unit_of_work
from hr_engine.errors import Conflict, NotFound, ValidationFailed
from hr_engine.models import (
    ApprovalStatus,
    Claim,
    ClaimStatus,
    LeavePayrollLink,
    LeaveRequest,
    LeaveStatus,
    LeaveType,
    PayrollItem,
    PayrollItemStatus,
    Timecard,
)
from hr_engine.services.advance_service import AdvanceService
from hr_engine.services.authority import Actor, get_employee, require_admin
from hr_engine.services.context import ServiceContext

logger = logging.getLogger(__name__)

HALF_DAY = Decimal("0.5")


@dataclass
class PayrollSnapshot:
    """What the payroll service receives for one employee-month."""

    payroll_item_id: UUID
    employee_id: UUID
    month: int
    year: int
    work_minutes: int = 0
    ot_minutes: int = 0
    unpaid_leave_days: Decimal = Decimal("0")
    claims_total: Decimal = Decimal("0.00")
    advance_deduction: Decimal = Decimal("0.00")
    timecard_ids: list[UUID] = field(default_factory=list)
    leave_request_ids: list[UUID] = field(default_factory=list)
    claim_ids: list[UUID] = field(default_factory=list)
    advance_ids: list[UUID] = field(default_factory=list)


class PayrollLinkService:
    """Service binding source records to payroll items.

    Operations:
    - open_payroll_item: draft item for an employee-month (idempotent)
    - link_to_payroll: snapshot and bind, in one transaction
    - unlink: release every bound record, refund advances, delete the item
    """

    def __init__(self, session: AsyncSession, ctx: ServiceContext):
        self.session = session
        self.ctx = ctx
        self.advances = AdvanceService(session, ctx)

    async def _lock_item(self, payroll_item_id: UUID) -> PayrollItem:
        result = await self.session.execute(
            select(PayrollItem)
            .where(PayrollItem.payroll_item_id == payroll_item_id)
            .with_for_update(of=PayrollItem)
        )
        item = result.scalar_one_or_none()
        if item is None:
            raise NotFound("PayrollItem", payroll_item_id)
        return item

    async def open_payroll_item(
        self, actor: Actor, employee_id: UUID, month: int, year: int
    ) -> PayrollItem:
        if not 1 <= month <= 12:
            raise ValidationFailed(f"month must be between 1 and 12, got {month}")
        employee = await get_employee(self.session, employee_id)
        require_admin(actor, employee.company_id)

        async with unit_of_work(self.session):
            result = await self.session.execute(
                select(PayrollItem).where(
                    PayrollItem.employee_id == employee_id,
                    PayrollItem.month == month,
                    PayrollItem.year == year,
                )
            )
            item = result.scalar_one_or_none()
            if item is None:
                item = PayrollItem(
                    employee_id=employee_id,
                    company_id=employee.company_id,
                    month=month,
                    year=year,
                    status=PayrollItemStatus.DRAFT.value,
                    work_minutes=0,
                    ot_minutes=0,
                    unpaid_leave_days=Decimal("0"),
                    claims_total=Decimal("0.00"),
                    advance_deduction=Decimal("0.00"),
                )
                self.session.add(item)
                await self.session.flush()
                logger.info(
                    "Opened payroll item %s for employee %s %d-%02d",
                    item.payroll_item_id,
                    employee_id,
                    year,
                    month,
                )
        return item

    async def link_to_payroll(self, actor: Actor, payroll_item_id: UUID) -> PayrollSnapshot:
        """Bind the employee-month's approved records to the payroll item."""
        async with unit_of_work(self.session):
            item = await self._lock_item(payroll_item_id)
            require_admin(actor, item.company_id)
            if item.status == PayrollItemStatus.LINKED.value:
                raise Conflict(f"Payroll item {payroll_item_id} is already linked")

            period_start, period_end = month_bounds(item.year, item.month)
            snapshot = PayrollSnapshot(
                payroll_item_id=item.payroll_item_id,
                employee_id=item.employee_id,
                month=item.month,
                year=item.year,
            )

            # Attendance
            result = await self.session.execute(
                select(Timecard)
                .where(
                    Timecard.employee_id == item.employee_id,
                    Timecard.work_date >= period_start,
                    Timecard.work_date <= period_end,
                    Timecard.approval_status == ApprovalStatus.APPROVED.value,
                    Timecard.linked_payroll_item_id.is_(None),
                )
                .with_for_update(of=Timecard)
            )
            for timecard in result.scalars().all():
                timecard.linked_payroll_item_id = item.payroll_item_id
                snapshot.work_minutes += timecard.work_minutes
                # Rejected overtime is not paid.
                if timecard.ot_approved is not False:
                    snapshot.ot_minutes += timecard.ot_minutes
                snapshot.timecard_ids.append(timecard.timecard_id)

            # Unpaid leave
            holidays = await self.ctx.holidays.get(self.session, item.company_id)
            result = await self.session.execute(
                select(LeaveRequest)
                .join(LeaveType, LeaveType.leave_type_id == LeaveRequest.leave_type_id)
                .where(
                    LeaveRequest.employee_id == item.employee_id,
                    LeaveRequest.status == LeaveStatus.APPROVED.value,
                    LeaveType.is_paid.is_(False),
                    LeaveRequest.start_date <= period_end,
                    LeaveRequest.end_date >= period_start,
                )
                .with_for_update(of=LeaveRequest)
            )
            for request in result.unique().scalars().all():
                if any(
                    link.payroll_item_id == item.payroll_item_id for link in request.payroll_links
                ):
                    continue
                overlap = intersect(request.start_date, request.end_date, period_start, period_end)
                if overlap is None:
                    continue
                if request.half_day:
                    days = HALF_DAY
                else:
                    days = Decimal(count_working_days(overlap[0], overlap[1], holidays))
                if days <= 0:
                    continue
                request.payroll_links.append(
                    LeavePayrollLink(payroll_item_id=item.payroll_item_id, unpaid_days=days)
                )
                snapshot.unpaid_leave_days += days
                snapshot.leave_request_ids.append(request.leave_request_id)

            # Claims
            result = await self.session.execute(
                select(Claim)
                .where(
                    Claim.employee_id == item.employee_id,
                    Claim.status == ClaimStatus.APPROVED.value,
                    Claim.linked_payroll_item_id.is_(None),
                    Claim.claim_date >= period_start,
                    Claim.claim_date <= period_end,
                )
                .with_for_update(of=Claim)
            )
            for claim in result.scalars().all():
                claim.linked_payroll_item_id = item.payroll_item_id
                snapshot.claims_total += Decimal(claim.amount)
                snapshot.claim_ids.append(claim.claim_id)
            snapshot.claims_total = round_to_cents(snapshot.claims_total)

            # Salary advances
            for deduction in await self.advances.apply(item):
                snapshot.advance_deduction += deduction.amount
                snapshot.advance_ids.append(deduction.advance_id)
            snapshot.advance_deduction = round_to_cents(snapshot.advance_deduction)

            item.work_minutes = snapshot.work_minutes
            item.ot_minutes = snapshot.ot_minutes
            item.unpaid_leave_days = snapshot.unpaid_leave_days
            item.claims_total = snapshot.claims_total
            item.advance_deduction = snapshot.advance_deduction
            item.status = PayrollItemStatus.LINKED.value
            item.linked_at = self.ctx.clock.now()
            item.linked_by = actor.employee_id

        logger.info(
            "Payroll item %s linked: %d timecards, %d leave, %d claims, %d advances",
            payroll_item_id,
            len(snapshot.timecard_ids),
            len(snapshot.leave_request_ids),
            len(snapshot.claim_ids),
            len(snapshot.advance_ids),
        )
        return snapshot

    async def unlink(self, actor: Actor, payroll_item_id: UUID) -> None:
        """Delete the payroll item, releasing every record bound to it."""
        async with unit_of_work(self.session):
            item = await self._lock_item(payroll_item_id)
            require_admin(actor, item.company_id)

            result = await self.session.execute(
                select(Timecard).where(Timecard.linked_payroll_item_id == payroll_item_id)
            )
            for timecard in result.scalars().all():
                timecard.linked_payroll_item_id = None

            result = await self.session.execute(
                select(Claim).where(Claim.linked_payroll_item_id == payroll_item_id)
            )
            for claim in result.scalars().all():
                claim.linked_payroll_item_id = None

            result = await self.session.execute(
                select(LeavePayrollLink)
                .where(LeavePayrollLink.payroll_item_id == payroll_item_id)
                .options(selectinload(LeavePayrollLink.leave_request))
            )
            for link in result.scalars().all():
                link.leave_request.payroll_links.remove(link)

            refunded = await self.advances.refund(payroll_item_id)
            await self.session.flush()
            await self.session.delete(item)

        logger.info("Payroll item %s unlinked (advances refunded: %s)", payroll_item_id, refunded)
