"""Leave entitlement, eligibility and yearly balances."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_engine.calculators.entitlement import (
    carry_forward,
    completed_service_years,
    entitlement_for_years,
    evaluate_eligibility,
    prorate_entitlement,
)
from hr_engine.calculators.types import EligibilityResult
from hr_engine.models import Employee, LeaveBalance, LeaveRequest, LeaveStatus, LeaveType

logger = logging.getLogger(__name__)


class LeaveEntitlementService:
    """Entitlement lookups and balance provisioning.

    Balances are created lazily the first time a year is touched: the
    stepped entitlement for the service years completed at the start of the
    year, prorated in the join year, plus any capped carry forward of last
    year's unused paid days.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    @staticmethod
    def entitlement(leave_type: LeaveType, completed_years: int) -> Decimal:
        return entitlement_for_years(
            leave_type.default_days_per_year, leave_type.entitlement_rules, completed_years
        )

    async def approved_occurrences(
        self, employee_id: UUID, leave_type_id: UUID, year: int
    ) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(LeaveRequest)
            .where(
                LeaveRequest.employee_id == employee_id,
                LeaveRequest.leave_type_id == leave_type_id,
                LeaveRequest.status == LeaveStatus.APPROVED.value,
                LeaveRequest.start_date >= date(year, 1, 1),
                LeaveRequest.start_date <= date(year, 12, 31),
            )
        )
        return int(result.scalar_one())

    async def eligibility(
        self, employee: Employee, leave_type: LeaveType, start_date: date
    ) -> EligibilityResult:
        """Gender, minimum service and yearly occurrence checks, first failure wins."""
        occurrences = 0
        if leave_type.max_occurrences is not None:
            occurrences = await self.approved_occurrences(
                employee.employee_id, leave_type.leave_type_id, start_date.year
            )
        return evaluate_eligibility(
            employee_gender=employee.gender,
            join_date=employee.join_date,
            as_of=start_date,
            gender_restriction=leave_type.gender_restriction,
            min_service_days=leave_type.min_service_days,
            max_occurrences=leave_type.max_occurrences,
            approved_occurrences=occurrences,
        )

    def yearly_entitlement(self, employee: Employee, leave_type: LeaveType, year: int) -> Decimal:
        if not leave_type.is_paid:
            return Decimal("0")
        years = completed_service_years(employee.join_date, date(year, 1, 1))
        full = self.entitlement(leave_type, years)
        return prorate_entitlement(full, employee.join_date, year)

    async def get_balance(
        self, employee_id: UUID, leave_type_id: UUID, year: int, lock: bool = False
    ) -> LeaveBalance | None:
        stmt = select(LeaveBalance).where(
            LeaveBalance.employee_id == employee_id,
            LeaveBalance.leave_type_id == leave_type_id,
            LeaveBalance.year == year,
        )
        if lock:
            stmt = stmt.with_for_update(of=LeaveBalance)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def ensure_balance(
        self, employee: Employee, leave_type: LeaveType, year: int, lock: bool = False
    ) -> LeaveBalance:
        """Return the year's balance, creating it from the entitlement if missing."""
        balance = await self.get_balance(
            employee.employee_id, leave_type.leave_type_id, year, lock=lock
        )
        if balance is not None:
            return balance

        carried = Decimal("0")
        if leave_type.is_paid and leave_type.carries_forward:
            previous = await self.get_balance(
                employee.employee_id, leave_type.leave_type_id, year - 1
            )
            if previous is not None:
                carried = carry_forward(
                    previous.available_days, True, leave_type.max_carry_forward
                )

        balance = LeaveBalance(
            employee_id=employee.employee_id,
            leave_type_id=leave_type.leave_type_id,
            year=year,
            entitled_days=self.yearly_entitlement(employee, leave_type, year),
            carried_forward=carried,
            used_days=Decimal("0"),
        )
        self.session.add(balance)
        await self.session.flush()

        logger.info(
            "Created %s balance for employee %s year %d: entitled=%s carried=%s",
            leave_type.code,
            employee.employee_id,
            year,
            balance.entitled_days,
            carried,
        )
        return balance
