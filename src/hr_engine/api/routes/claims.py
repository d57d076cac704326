"""Claim endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Response, status

from hr_engine.api.dependencies import Context, CurrentActor, DbSession
from hr_engine.api.schemas import (
    BulkApproveRequest,
    BulkOutcomeResponse,
    ClaimResponse,
    ClaimSubmitRequest,
    ClaimUpdateRequest,
    ErrorResponse,
    RejectRequest,
)
from hr_engine.calculators.types import ReceiptSignals
from hr_engine.services.claim_service import ClaimEdit, ClaimService, ClaimSubmission

router = APIRouter(prefix="/claims", tags=["claims"])

ERRORS = {
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
    423: {"model": ErrorResponse},
}


@router.post(
    "",
    response_model=ClaimResponse,
    status_code=status.HTTP_201_CREATED,
    responses={**ERRORS, 503: {"model": ErrorResponse}},
)
async def submit_claim(
    db: DbSession,
    ctx: Context,
    actor: CurrentActor,
    payload: ClaimSubmitRequest,
) -> ClaimResponse:
    """Submit a claim; it is capped and auto-approved when the rules allow."""
    signals = None
    if payload.ai is not None:
        signals = ReceiptSignals(
            extracted_amount=payload.ai.extracted_amount,
            confidence=payload.ai.confidence,
            receipt_hash=payload.ai.receipt_hash,
        )
    claim = await ClaimService(db, ctx).submit(
        actor,
        ClaimSubmission(
            claim_date=payload.claim_date,
            category=payload.category,
            amount=payload.amount,
            description=payload.description,
            receipt=payload.receipt,
            receipt_name=payload.receipt_name,
            receipt_url=payload.receipt_url,
            signals=signals,
        ),
    )
    return ClaimResponse.model_validate(claim)


@router.post("/bulk-approve", response_model=list[BulkOutcomeResponse])
async def bulk_approve_claims(
    db: DbSession,
    ctx: Context,
    actor: CurrentActor,
    payload: BulkApproveRequest,
) -> list[BulkOutcomeResponse]:
    outcomes = await ClaimService(db, ctx).bulk_approve(actor, payload.claim_ids)
    return [BulkOutcomeResponse.model_validate(o) for o in outcomes]


@router.put("/{claim_id}", response_model=ClaimResponse, responses=ERRORS)
async def update_claim(
    db: DbSession,
    ctx: Context,
    actor: CurrentActor,
    claim_id: Annotated[UUID, Path()],
    payload: ClaimUpdateRequest,
) -> ClaimResponse:
    """Edit a pending claim; the amount is capped and disposed again."""
    claim = await ClaimService(db, ctx).update(
        actor, claim_id, ClaimEdit(**payload.model_dump())
    )
    return ClaimResponse.model_validate(claim)


@router.post("/{claim_id}/approve", response_model=ClaimResponse, responses=ERRORS)
async def approve_claim(
    db: DbSession,
    ctx: Context,
    actor: CurrentActor,
    claim_id: Annotated[UUID, Path()],
) -> ClaimResponse:
    claim = await ClaimService(db, ctx).approve(actor, claim_id)
    return ClaimResponse.model_validate(claim)


@router.post("/{claim_id}/reject", response_model=ClaimResponse, responses=ERRORS)
async def reject_claim(
    db: DbSession,
    ctx: Context,
    actor: CurrentActor,
    claim_id: Annotated[UUID, Path()],
    payload: RejectRequest,
) -> ClaimResponse:
    claim = await ClaimService(db, ctx).reject(actor, claim_id, payload.reason)
    return ClaimResponse.model_validate(claim)


@router.post("/{claim_id}/revert", response_model=ClaimResponse, responses=ERRORS)
async def revert_claim(
    db: DbSession,
    ctx: Context,
    actor: CurrentActor,
    claim_id: Annotated[UUID, Path()],
) -> ClaimResponse:
    claim = await ClaimService(db, ctx).revert(actor, claim_id)
    return ClaimResponse.model_validate(claim)


@router.delete(
    "/{claim_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=ERRORS,
)
async def delete_claim(
    db: DbSession,
    ctx: Context,
    actor: CurrentActor,
    claim_id: Annotated[UUID, Path()],
) -> Response:
    await ClaimService(db, ctx).delete(actor, claim_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
