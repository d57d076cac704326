"""Payroll linkage endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Response, status

from hr_engine.api.dependencies import Context, CurrentActor, DbSession
from hr_engine.api.schemas import (
    ErrorResponse,
    PayrollItemCreate,
    PayrollItemResponse,
    PayrollSnapshotResponse,
)
from hr_engine.services.payroll_link_service import PayrollLinkService

router = APIRouter(prefix="/payroll-items", tags=["payroll"])


@router.post(
    "",
    response_model=PayrollItemResponse,
    status_code=status.HTTP_201_CREATED,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def open_payroll_item(
    db: DbSession,
    ctx: Context,
    actor: CurrentActor,
    payload: PayrollItemCreate,
) -> PayrollItemResponse:
    item = await PayrollLinkService(db, ctx).open_payroll_item(
        actor, payload.employee_id, payload.month, payload.year
    )
    return PayrollItemResponse.model_validate(item)


@router.post(
    "/{payroll_item_id}/link",
    response_model=PayrollSnapshotResponse,
    responses={
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def link_to_payroll(
    db: DbSession,
    ctx: Context,
    actor: CurrentActor,
    payroll_item_id: Annotated[UUID, Path()],
) -> PayrollSnapshotResponse:
    """Snapshot and bind the employee-month's approved records."""
    snapshot = await PayrollLinkService(db, ctx).link_to_payroll(actor, payroll_item_id)
    return PayrollSnapshotResponse.model_validate(snapshot)


@router.delete(
    "/{payroll_item_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def unlink(
    db: DbSession,
    ctx: Context,
    actor: CurrentActor,
    payroll_item_id: Annotated[UUID, Path()],
) -> Response:
    """Delete the item, releasing its records and refunding advance deductions."""
    await PayrollLinkService(db, ctx).unlink(actor, payroll_item_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
