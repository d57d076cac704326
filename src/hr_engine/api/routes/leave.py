"""Leave request endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, status

from hr_engine.api.dependencies import Context, CurrentActor, DbSession
from hr_engine.api.schemas import (
    AdminCancelRequest,
    ErrorResponse,
    LeaveDecisionRequest,
    LeaveRequestResponse,
    LeaveSubmitRequest,
)
from hr_engine.services.leave_service import LeaveService, LeaveSubmission

router = APIRouter(prefix="/leave", tags=["leave"])

ERRORS = {
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
    423: {"model": ErrorResponse},
}


@router.post(
    "/requests",
    response_model=LeaveRequestResponse,
    status_code=status.HTTP_201_CREATED,
    responses={**ERRORS, 503: {"model": ErrorResponse}},
)
async def submit_leave(
    db: DbSession,
    ctx: Context,
    actor: CurrentActor,
    payload: LeaveSubmitRequest,
) -> LeaveRequestResponse:
    request = await LeaveService(db, ctx).submit(
        actor,
        LeaveSubmission(
            leave_type_id=payload.leave_type_id,
            start_date=payload.start_date,
            end_date=payload.end_date,
            half_day=payload.half_day,
            reason=payload.reason,
            attachment=payload.attachment,
            attachment_name=payload.attachment_name,
            attachment_url=payload.attachment_url,
        ),
    )
    return LeaveRequestResponse.model_validate(request)


@router.get("/team-pending", response_model=list[LeaveRequestResponse])
async def team_pending(
    db: DbSession, ctx: Context, actor: CurrentActor
) -> list[LeaveRequestResponse]:
    """Pending requests the caller can decide at their level."""
    requests = await LeaveService(db, ctx).team_pending(actor)
    return [LeaveRequestResponse.model_validate(r) for r in requests]


@router.post(
    "/requests/{leave_request_id}/decision",
    response_model=LeaveRequestResponse,
    responses=ERRORS,
)
async def decide_leave(
    db: DbSession,
    ctx: Context,
    actor: CurrentActor,
    leave_request_id: Annotated[UUID, Path()],
    payload: LeaveDecisionRequest,
) -> LeaveRequestResponse:
    request = await LeaveService(db, ctx).decide(
        actor, leave_request_id, payload.decision, payload.reason
    )
    return LeaveRequestResponse.model_validate(request)


@router.post(
    "/requests/{leave_request_id}/cancel",
    response_model=LeaveRequestResponse,
    responses=ERRORS,
)
async def cancel_leave(
    db: DbSession,
    ctx: Context,
    actor: CurrentActor,
    leave_request_id: Annotated[UUID, Path()],
) -> LeaveRequestResponse:
    request = await LeaveService(db, ctx).cancel(actor, leave_request_id)
    return LeaveRequestResponse.model_validate(request)


@router.post(
    "/requests/{leave_request_id}/admin-cancel",
    response_model=LeaveRequestResponse,
    responses=ERRORS,
)
async def admin_cancel_leave(
    db: DbSession,
    ctx: Context,
    actor: CurrentActor,
    leave_request_id: Annotated[UUID, Path()],
    payload: AdminCancelRequest,
) -> LeaveRequestResponse:
    request = await LeaveService(db, ctx).admin_cancel(actor, leave_request_id, payload.reason)
    return LeaveRequestResponse.model_validate(request)
