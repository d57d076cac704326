"""Attendance API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from hr_engine.api.dependencies import Context, CurrentActor, DbSession
from hr_engine.api.schemas import (
    AttendanceHistoryResponse,
    ClearSlotRequest,
    ClockActionRequest,
    ErrorResponse,
    OvertimeDecisionRequest,
    PurgeEvidenceRequest,
    PurgeEvidenceResponse,
    RejectRequest,
    TimecardBulkApproveRequest,
    TimecardOutcomeResponse,
    TimecardResponse,
    TodayStatusResponse,
)
from hr_engine.services.attendance_service import AttendanceService, PunchEvidence
from hr_engine.services.clock_state_machine import ClockAction

router = APIRouter(prefix="/attendance", tags=["attendance"])

ERRORS = {
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
    423: {"model": ErrorResponse},
}


@router.post(
    "/{action}",
    response_model=TimecardResponse,
    responses={**ERRORS, 503: {"model": ErrorResponse}},
)
async def clock_action(
    db: DbSession,
    ctx: Context,
    actor: CurrentActor,
    action: Annotated[ClockAction, Path()],
    payload: ClockActionRequest,
) -> TimecardResponse:
    """Record clock_in_1, clock_out_1, clock_in_2 or clock_out_2 at server time."""
    timecard = await AttendanceService(db, ctx).clock_action(
        actor,
        action,
        PunchEvidence(
            selfie=payload.selfie,
            face_detected=payload.face_detected,
            face_confidence=payload.face_confidence,
            latitude=payload.latitude,
            longitude=payload.longitude,
            address=payload.address,
        ),
    )
    return TimecardResponse.model_validate(timecard)


@router.get("/today", response_model=TodayStatusResponse)
async def today_status(db: DbSession, ctx: Context, actor: CurrentActor) -> TodayStatusResponse:
    """Current state and next expected action for today."""
    result = await AttendanceService(db, ctx).today_status(actor)
    return TodayStatusResponse(
        work_date=result.work_date,
        state=result.state.value,
        next_action=result.next_action.value if result.next_action else None,
        timecard=TimecardResponse.model_validate(result.timecard) if result.timecard else None,
    )


@router.get("/history", response_model=AttendanceHistoryResponse, responses=ERRORS)
async def history(
    db: DbSession,
    ctx: Context,
    actor: CurrentActor,
    month: Annotated[int, Query(ge=1, le=12)],
    year: Annotated[int, Query(ge=2000, le=2100)],
    employee_id: Annotated[UUID | None, Query()] = None,
) -> AttendanceHistoryResponse:
    result = await AttendanceService(db, ctx).history(actor, month, year, employee_id)
    return AttendanceHistoryResponse.model_validate(result)


@router.post("/timecards/bulk-approve", response_model=list[TimecardOutcomeResponse])
async def bulk_approve_timecards(
    db: DbSession,
    ctx: Context,
    actor: CurrentActor,
    payload: TimecardBulkApproveRequest,
) -> list[TimecardOutcomeResponse]:
    """Approve several completed timecards; each id gets its own outcome."""
    outcomes = await AttendanceService(db, ctx).bulk_approve_timecards(
        actor, payload.timecard_ids
    )
    return [TimecardOutcomeResponse.model_validate(o) for o in outcomes]


@router.get("/overtime/pending", response_model=list[TimecardResponse])
async def pending_overtime(
    db: DbSession, ctx: Context, actor: CurrentActor
) -> list[TimecardResponse]:
    timecards = await AttendanceService(db, ctx).pending_overtime(actor)
    return [TimecardResponse.model_validate(t) for t in timecards]


@router.post(
    "/overtime/decide",
    response_model=list[TimecardOutcomeResponse],
    responses={422: {"model": ErrorResponse}},
)
async def decide_overtime(
    db: DbSession,
    ctx: Context,
    actor: CurrentActor,
    payload: OvertimeDecisionRequest,
) -> list[TimecardOutcomeResponse]:
    outcomes = await AttendanceService(db, ctx).decide_overtime(
        actor, payload.timecard_ids, payload.decision, payload.reason
    )
    return [TimecardOutcomeResponse.model_validate(o) for o in outcomes]


@router.post(
    "/timecards/{timecard_id}/approve",
    response_model=TimecardResponse,
    responses=ERRORS,
)
async def approve_timecard(
    db: DbSession,
    ctx: Context,
    actor: CurrentActor,
    timecard_id: Annotated[UUID, Path()],
) -> TimecardResponse:
    timecard = await AttendanceService(db, ctx).approve_timecard(actor, timecard_id)
    return TimecardResponse.model_validate(timecard)


@router.post(
    "/timecards/{timecard_id}/reject",
    response_model=TimecardResponse,
    responses=ERRORS,
)
async def reject_timecard(
    db: DbSession,
    ctx: Context,
    actor: CurrentActor,
    timecard_id: Annotated[UUID, Path()],
    payload: RejectRequest,
) -> TimecardResponse:
    timecard = await AttendanceService(db, ctx).reject_timecard(actor, timecard_id, payload.reason)
    return TimecardResponse.model_validate(timecard)


@router.post(
    "/timecards/{timecard_id}/clear-slot",
    response_model=TimecardResponse,
    responses=ERRORS,
)
async def clear_slot(
    db: DbSession,
    ctx: Context,
    actor: CurrentActor,
    timecard_id: Annotated[UUID, Path()],
    payload: ClearSlotRequest,
) -> TimecardResponse:
    """Supervisor override: clear a slot and every later slot."""
    timecard = await AttendanceService(db, ctx).clear_slot(actor, timecard_id, payload.slot)
    return TimecardResponse.model_validate(timecard)


@router.post(
    "/evidence/purge",
    response_model=PurgeEvidenceResponse,
    status_code=status.HTTP_200_OK,
    responses=ERRORS,
)
async def purge_evidence(
    db: DbSession,
    ctx: Context,
    actor: CurrentActor,
    payload: PurgeEvidenceRequest,
) -> PurgeEvidenceResponse:
    purged = await AttendanceService(db, ctx).purge_evidence(actor, payload.before)
    return PurgeEvidenceResponse(purged=purged, before=payload.before)
