"""Holiday calendar and working-day endpoints."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, Response, status

from hr_engine.api.dependencies import Context, CurrentActor, DbSession
from hr_engine.api.schemas import (
    ErrorResponse,
    HolidayCreate,
    HolidayResponse,
    WorkingDaysResponse,
)
from hr_engine.errors import ValidationFailed
from hr_engine.services.holiday_service import HolidayService

router = APIRouter(prefix="/holidays", tags=["holidays"])


@router.get("", response_model=list[HolidayResponse])
async def list_holidays(
    db: DbSession,
    ctx: Context,
    actor: CurrentActor,
    year: Annotated[int, Query(ge=2000, le=2100)],
) -> list[HolidayResponse]:
    holidays = await HolidayService(db, ctx.holidays).list_holidays(actor.company_id, year)
    return [HolidayResponse.model_validate(h) for h in holidays]


@router.post(
    "",
    response_model=HolidayResponse,
    status_code=status.HTTP_201_CREATED,
    responses={403: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def add_holiday(
    db: DbSession,
    ctx: Context,
    actor: CurrentActor,
    payload: HolidayCreate,
) -> HolidayResponse:
    """Add a company holiday; omit company_id for a global one (super admin)."""
    holiday = await HolidayService(db, ctx.holidays).add_holiday(
        actor,
        name=payload.name,
        holiday_date=payload.holiday_date,
        company_id=payload.company_id,
        extra_pay=payload.extra_pay,
    )
    return HolidayResponse.model_validate(holiday)


@router.delete(
    "/{holiday_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def remove_holiday(
    db: DbSession,
    ctx: Context,
    actor: CurrentActor,
    holiday_id: Annotated[UUID, Path()],
) -> Response:
    await HolidayService(db, ctx.holidays).remove_holiday(actor, holiday_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/working-days", response_model=WorkingDaysResponse)
async def working_days(
    db: DbSession,
    ctx: Context,
    actor: CurrentActor,
    start: Annotated[date, Query()],
    end: Annotated[date, Query()],
) -> WorkingDaysResponse:
    if end < start:
        raise ValidationFailed("end must not be before start")
    count = await HolidayService(db, ctx.holidays).working_days(start, end, actor.company_id)
    return WorkingDaysResponse(start=start, end=end, working_days=count)
