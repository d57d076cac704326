"""Public holidays and working-day counting."""

from __future__ import annotations

import logging
from datetime import date
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_engine.calculators.working_days import count_working_days
from hr_engine.database import unit_of_work
from hr_engine.errors import AuthorizationDenied, Conflict, NotFound
from hr_engine.models import PublicHoliday
from hr_engine.services.authority import Actor, require_admin

logger = logging.getLogger(__name__)


class HolidayCache:
    """Process-local holiday sets keyed by company.

    A company's set includes the global holidays. Any holiday write
    invalidates the cache; a global holiday invalidates every company.
    """

    def __init__(self) -> None:
        self._by_company: dict[UUID | None, frozenset[date]] = {}

    async def get(self, session: AsyncSession, company_id: UUID | None) -> frozenset[date]:
        cached = self._by_company.get(company_id)
        if cached is not None:
            return cached

        stmt = select(PublicHoliday.holiday_date)
        if company_id is None:
            stmt = stmt.where(PublicHoliday.company_id.is_(None))
        else:
            stmt = stmt.where(
                or_(PublicHoliday.company_id == company_id, PublicHoliday.company_id.is_(None))
            )
        result = await session.execute(stmt)
        holidays = frozenset(result.scalars().all())
        self._by_company[company_id] = holidays
        return holidays

    def invalidate(self, company_id: UUID | None = None) -> None:
        if company_id is None:
            self._by_company.clear()
        else:
            self._by_company.pop(company_id, None)

    def __contains__(self, company_id: object) -> bool:
        return company_id in self._by_company


class HolidayService:
    """Holiday calendar maintenance and working-day counts."""

    def __init__(self, session: AsyncSession, cache: HolidayCache):
        self.session = session
        self.cache = cache

    async def working_days(self, start: date, end: date, company_id: UUID | None) -> int:
        """Working days in [start, end]: Sundays and holidays excluded."""
        holidays = await self.cache.get(self.session, company_id)
        return count_working_days(start, end, holidays)

    async def list_holidays(self, company_id: UUID | None, year: int) -> list[PublicHoliday]:
        stmt = (
            select(PublicHoliday)
            .where(
                PublicHoliday.holiday_date >= date(year, 1, 1),
                PublicHoliday.holiday_date <= date(year, 12, 31),
            )
            .order_by(PublicHoliday.holiday_date)
        )
        if company_id is None:
            stmt = stmt.where(PublicHoliday.company_id.is_(None))
        else:
            stmt = stmt.where(
                or_(PublicHoliday.company_id == company_id, PublicHoliday.company_id.is_(None))
            )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def add_holiday(
        self,
        actor: Actor,
        name: str,
        holiday_date: date,
        company_id: UUID | None,
        extra_pay: bool = True,
    ) -> PublicHoliday:
        """Add a company holiday, or a global one (super admin only)."""
        if company_id is None and not actor.is_super_admin:
            raise AuthorizationDenied("Only a super admin may add global holidays")
        require_admin(actor, company_id)

        async with unit_of_work(self.session):
            existing = await self.session.execute(
                select(PublicHoliday).where(
                    PublicHoliday.holiday_date == holiday_date,
                    PublicHoliday.company_id.is_(None)
                    if company_id is None
                    else PublicHoliday.company_id == company_id,
                )
            )
            if existing.scalar_one_or_none() is not None:
                raise Conflict(f"A holiday already exists on {holiday_date}")

            holiday = PublicHoliday(
                company_id=company_id,
                name=name,
                holiday_date=holiday_date,
                extra_pay=extra_pay,
            )
            self.session.add(holiday)

        self.cache.invalidate(company_id)
        logger.info("Holiday %s added on %s for company %s", name, holiday_date, company_id)
        return holiday

    async def remove_holiday(self, actor: Actor, holiday_id: UUID) -> None:
        async with unit_of_work(self.session):
            holiday = await self.session.get(PublicHoliday, holiday_id)
            if holiday is None:
                raise NotFound("PublicHoliday", holiday_id)
            company_id = holiday.company_id
            if company_id is None and not actor.is_super_admin:
                raise AuthorizationDenied("Only a super admin may remove global holidays")
            require_admin(actor, company_id)
            await self.session.delete(holiday)

        self.cache.invalidate(company_id)
        logger.info("Holiday %s removed for company %s", holiday_id, company_id)
