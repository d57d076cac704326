"""Salary advance endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from hr_engine.api.dependencies import Context, CurrentActor, DbSession
from hr_engine.api.schemas import (
    AdvanceCreate,
    AdvanceResponse,
    DeductionLineResponse,
    ErrorResponse,
)
from hr_engine.services.advance_service import AdvanceInput, AdvanceService

router = APIRouter(prefix="/advances", tags=["advances"])


@router.post(
    "",
    response_model=AdvanceResponse,
    status_code=status.HTTP_201_CREATED,
    responses={403: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def record_advance(
    db: DbSession,
    ctx: Context,
    actor: CurrentActor,
    payload: AdvanceCreate,
) -> AdvanceResponse:
    advance = await AdvanceService(db, ctx).record(
        actor, AdvanceInput(**payload.model_dump())
    )
    return AdvanceResponse.model_validate(advance)


@router.post(
    "/{advance_id}/cancel",
    response_model=AdvanceResponse,
    responses={
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def cancel_advance(
    db: DbSession,
    ctx: Context,
    actor: CurrentActor,
    advance_id: Annotated[UUID, Path()],
) -> AdvanceResponse:
    advance = await AdvanceService(db, ctx).cancel(actor, advance_id)
    return AdvanceResponse.model_validate(advance)


@router.get(
    "/preview",
    response_model=list[DeductionLineResponse],
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def preview_deductions(
    db: DbSession,
    ctx: Context,
    actor: CurrentActor,
    employee_id: Annotated[UUID, Query()],
    month: Annotated[int, Query(ge=1, le=12)],
    year: Annotated[int, Query(ge=2000, le=2100)],
) -> list[DeductionLineResponse]:
    """Deductions a payroll month would take, without applying them."""
    lines = await AdvanceService(db, ctx).preview_deductions(actor, employee_id, month, year)
    return [DeductionLineResponse.model_validate(line) for line in lines]
