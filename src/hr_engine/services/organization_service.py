"""Company settings that the workflows depend on."""

from __future__ import annotations

import logging
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_engine.calculators.entitlement import DEFAULT_LEAVE_TYPES
from hr_engine.config import Settings, get_settings
from hr_engine.database import unit_of_work
from hr_engine.errors import AuthorizationDenied, Conflict, NotFound, ValidationFailed
from hr_engine.models import Company, Employee, GroupingMode, LeaveType
from hr_engine.services.authority import Actor, require_admin

logger = logging.getLogger(__name__)


GROUPING_MODES = (GroupingMode.OUTLET.value, GroupingMode.DEPARTMENT.value)


class OrganizationService:
    """Tenant setup: companies, grouping mode and leave types.

    New companies take their working-day and claim policy from the
    deployment settings unless the caller overrides them.
    """

    def __init__(self, session: AsyncSession, settings: Settings | None = None):
        self.session = session
        self.settings = settings or get_settings()

    async def create_company(
        self,
        actor: Actor,
        name: str,
        grouping_mode: str = GroupingMode.OUTLET.value,
        standard_work_minutes: int | None = None,
        claim_auto_approve_threshold: Decimal | None = None,
        claim_amount_tolerance: Decimal | None = None,
    ) -> Company:
        if not actor.is_super_admin:
            raise AuthorizationDenied("Only a super admin may create companies")

        reasons: list[str] = []
        if not name.strip():
            reasons.append("name is required")
        if grouping_mode not in GROUPING_MODES:
            reasons.append(f"grouping mode must be outlet or department, got '{grouping_mode}'")
        if standard_work_minutes is not None and standard_work_minutes <= 0:
            reasons.append("standard work minutes must be greater than zero")
        if claim_auto_approve_threshold is not None and claim_auto_approve_threshold < 0:
            reasons.append("auto-approve threshold cannot be negative")
        if claim_amount_tolerance is not None and claim_amount_tolerance < 0:
            reasons.append("amount tolerance cannot be negative")
        if reasons:
            raise ValidationFailed(reasons)

        settings = self.settings
        async with unit_of_work(self.session):
            company = Company(
                name=name.strip(),
                grouping_mode=grouping_mode,
                standard_work_minutes=standard_work_minutes or settings.standard_work_minutes,
                claim_auto_approve_threshold=(
                    settings.claim_auto_approve_threshold
                    if claim_auto_approve_threshold is None
                    else claim_auto_approve_threshold
                ),
                claim_amount_tolerance=(
                    settings.claim_amount_tolerance
                    if claim_amount_tolerance is None
                    else claim_amount_tolerance
                ),
            )
            self.session.add(company)

        logger.info("Company %s created (%s mode)", company.company_id, grouping_mode)
        return company

    async def change_grouping_mode(self, actor: Actor, company_id: UUID, mode: str) -> Company:
        """Switch between outlet and department grouping.

        Only allowed while the company has no employees.
        """
        if mode not in GROUPING_MODES:
            raise ValidationFailed(f"grouping mode must be outlet or department, got '{mode}'")
        require_admin(actor, company_id)

        async with unit_of_work(self.session):
            result = await self.session.execute(
                select(Company).where(Company.company_id == company_id).with_for_update(of=Company)
            )
            company = result.scalar_one_or_none()
            if company is None:
                raise NotFound("Company", company_id)
            if company.grouping_mode == mode:
                return company

            count = await self.session.execute(
                select(func.count())
                .select_from(Employee)
                .where(Employee.company_id == company_id)
            )
            if count.scalar_one() > 0:
                raise Conflict("Grouping mode cannot change once the company has employees")
            company.grouping_mode = mode

        logger.info("Company %s grouping mode changed to %s", company_id, mode)
        return company

    async def seed_leave_types(self, company_id: UUID | None = None) -> list[LeaveType]:
        """Insert the statutory leave types missing for a company (or globally)."""
        result = await self.session.execute(
            select(LeaveType.code).where(
                LeaveType.company_id.is_(None)
                if company_id is None
                else LeaveType.company_id == company_id
            )
        )
        existing = set(result.scalars().all())

        created: list[LeaveType] = []
        for definition in DEFAULT_LEAVE_TYPES:
            if definition["code"] in existing:
                continue
            leave_type = LeaveType(company_id=company_id, **definition)
            self.session.add(leave_type)
            created.append(leave_type)
        await self.session.flush()
        return created
