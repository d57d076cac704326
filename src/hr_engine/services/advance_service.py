"""Salary advance service: recording, monthly deductions and refunds."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_engine.calculators.amortization import deduction_for, first_allowed_period, period_key
from hr_engine.calculators.types import AdvanceTerms, DeductionLine, round_to_cents
from hr_engine.clock import today
from hr_engine.database import unit_of_work
from hr_engine.errors import Conflict, NotFound, ValidationFailed
from hr_engine.models import (
    AdvanceStatus,
    DeductionMethod,
    PayrollItem,
    SalaryAdvance,
    SalaryAdvanceDeduction,
)
from hr_engine.services.authority import Actor, get_employee, require_admin
from hr_engine.services.context import ServiceContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AdvanceInput:
    """A salary advance as recorded by an admin."""

    employee_id: UUID
    amount: Decimal
    advance_date: date
    deduction_method: str = DeductionMethod.FULL.value
    installment_amount: Decimal | None = None
    first_deduction_month: int | None = None
    first_deduction_year: int | None = None
    reason: str | None = None
    reference_number: str | None = None


def terms_of(advance: SalaryAdvance) -> AdvanceTerms:
    return AdvanceTerms(
        advance_id=advance.advance_id,
        method=advance.deduction_method,
        remaining=Decimal(advance.remaining_balance),
        installment_amount=advance.installment_amount,
        first_month=advance.first_deduction_month,
        first_year=advance.first_deduction_year,
    )


class AdvanceService:
    """Service for salary advances.

    Operations:
    - record: new active advance, first deducted no earlier than next month
    - cancel: only from active
    - preview_deductions: what a payroll month would deduct
    - apply: deduct against a payroll item (once per advance and month)
    - refund: reverse every deduction taken by a payroll item
    """

    def __init__(self, session: AsyncSession, ctx: ServiceContext):
        self.session = session
        self.ctx = ctx

    async def _active_advances(
        self, employee_id: UUID, lock: bool = False
    ) -> list[SalaryAdvance]:
        stmt = (
            select(SalaryAdvance)
            .where(
                SalaryAdvance.employee_id == employee_id,
                SalaryAdvance.status == AdvanceStatus.ACTIVE.value,
            )
            .order_by(SalaryAdvance.advance_date, SalaryAdvance.created_at)
        )
        if lock:
            stmt = stmt.with_for_update(of=SalaryAdvance)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_advance(self, advance_id: UUID, lock: bool = False) -> SalaryAdvance:
        stmt = select(SalaryAdvance).where(SalaryAdvance.advance_id == advance_id)
        if lock:
            stmt = stmt.with_for_update(of=SalaryAdvance)
        result = await self.session.execute(stmt)
        advance = result.scalar_one_or_none()
        if advance is None:
            raise NotFound("SalaryAdvance", advance_id)
        return advance

    async def record(self, actor: Actor, data: AdvanceInput) -> SalaryAdvance:
        employee = await get_employee(self.session, data.employee_id)
        require_admin(actor, employee.company_id)

        reasons: list[str] = []
        amount = round_to_cents(Decimal(data.amount))
        if amount <= 0:
            reasons.append("amount must be greater than zero")

        method = data.deduction_method
        installment = None
        if method == DeductionMethod.INSTALLMENT.value:
            if data.installment_amount is None or Decimal(data.installment_amount) <= 0:
                reasons.append("installment amount is required for installment deductions")
            else:
                installment = round_to_cents(Decimal(data.installment_amount))
                if installment > amount:
                    reasons.append("installment amount cannot exceed the advance amount")
        elif method != DeductionMethod.FULL.value:
            reasons.append(f"deduction method must be full or installment, got '{method}'")

        earliest_month, earliest_year = first_allowed_period(today(self.ctx.clock))
        month = data.first_deduction_month or earliest_month
        year = data.first_deduction_year or earliest_year
        if not 1 <= month <= 12:
            reasons.append("first deduction month must be between 1 and 12")
        elif period_key(month, year) < period_key(earliest_month, earliest_year):
            reasons.append(
                f"first deduction cannot be earlier than {earliest_year}-{earliest_month:02d}"
            )
        if reasons:
            raise ValidationFailed(reasons)

        async with unit_of_work(self.session):
            advance = SalaryAdvance(
                employee_id=employee.employee_id,
                company_id=employee.company_id,
                amount=amount,
                advance_date=data.advance_date,
                reason=data.reason,
                reference_number=data.reference_number,
                deduction_method=method,
                installment_amount=installment,
                first_deduction_month=month,
                first_deduction_year=year,
                total_deducted=Decimal("0.00"),
                remaining_balance=amount,
                status=AdvanceStatus.ACTIVE.value,
                created_by=actor.employee_id,
                deductions=[],
            )
            self.session.add(advance)

        logger.info(
            "Advance %s of %s recorded for employee %s (%s, first deduction %d-%02d)",
            advance.advance_id,
            amount,
            employee.employee_id,
            method,
            year,
            month,
        )
        return advance

    async def cancel(self, actor: Actor, advance_id: UUID) -> SalaryAdvance:
        async with unit_of_work(self.session):
            advance = await self.get_advance(advance_id, lock=True)
            require_admin(actor, advance.company_id)
            if advance.status != AdvanceStatus.ACTIVE.value:
                raise Conflict(
                    f"Only active advances can be cancelled; this one is {advance.status}"
                )
            advance.status = AdvanceStatus.CANCELLED.value

        logger.info("Advance %s cancelled", advance_id)
        return advance

    async def preview_deductions(
        self, actor: Actor, employee_id: UUID, month: int, year: int
    ) -> list[DeductionLine]:
        """Deductions the month would take, without writing anything."""
        employee = await get_employee(self.session, employee_id)
        require_admin(actor, employee.company_id)

        lines: list[DeductionLine] = []
        for advance in await self._active_advances(employee_id):
            if any(d.month == month and d.year == year for d in advance.deductions):
                continue
            amount = deduction_for(terms_of(advance), month, year)
            if amount > 0:
                lines.append(
                    DeductionLine(
                        advance_id=advance.advance_id,
                        amount=amount,
                        remaining_after=Decimal(advance.remaining_balance) - amount,
                    )
                )
        return lines

    async def apply(self, payroll_item: PayrollItem) -> list[SalaryAdvanceDeduction]:
        """Deduct every due advance against ``payroll_item``.

        Runs inside the caller's transaction. An advance already deducted for
        the item's month is left alone.
        """
        applied: list[SalaryAdvanceDeduction] = []
        month, year = payroll_item.month, payroll_item.year

        for advance in await self._active_advances(payroll_item.employee_id, lock=True):
            if any(d.month == month and d.year == year for d in advance.deductions):
                continue
            amount = deduction_for(terms_of(advance), month, year)
            if amount <= 0:
                continue

            deduction = SalaryAdvanceDeduction(
                advance_id=advance.advance_id,
                payroll_item_id=payroll_item.payroll_item_id,
                month=month,
                year=year,
                amount=amount,
            )
            advance.deductions.append(deduction)
            advance.total_deducted = Decimal(advance.total_deducted) + amount
            advance.remaining_balance = Decimal(advance.remaining_balance) - amount
            if advance.remaining_balance <= 0:
                advance.remaining_balance = Decimal("0.00")
                advance.status = AdvanceStatus.COMPLETED.value
            applied.append(deduction)

            logger.info(
                "Advance %s deducted %s for %d-%02d (remaining %s)",
                advance.advance_id,
                amount,
                year,
                month,
                advance.remaining_balance,
            )
        return applied

    async def refund(self, payroll_item_id: UUID) -> Decimal:
        """Reverse the deductions taken by a payroll item; returns the total."""
        result = await self.session.execute(
            select(SalaryAdvanceDeduction.advance_id).where(
                SalaryAdvanceDeduction.payroll_item_id == payroll_item_id
            )
        )
        advance_ids = set(result.scalars().all())

        refunded = Decimal("0.00")
        for advance_id in advance_ids:
            advance = await self.get_advance(advance_id, lock=True)
            for deduction in [
                d for d in advance.deductions if d.payroll_item_id == payroll_item_id
            ]:
                advance.total_deducted = Decimal(advance.total_deducted) - deduction.amount
                advance.remaining_balance = Decimal(advance.remaining_balance) + deduction.amount
                refunded += deduction.amount
                advance.deductions.remove(deduction)
            if advance.status == AdvanceStatus.COMPLETED.value and advance.remaining_balance > 0:
                advance.status = AdvanceStatus.ACTIVE.value

        if refunded:
            logger.info(
                "Refunded %s of advance deductions from payroll item %s", refunded, payroll_item_id
            )
        return refunded
