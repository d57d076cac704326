"""Company setup endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, status

from hr_engine.api.dependencies import Context, CurrentActor, DbSession
from hr_engine.api.schemas import (
    CompanyCreate,
    CompanyResponse,
    ErrorResponse,
    GroupingModeRequest,
)
from hr_engine.services.organization_service import OrganizationService

router = APIRouter(prefix="/companies", tags=["companies"])


@router.post(
    "",
    response_model=CompanyResponse,
    status_code=status.HTTP_201_CREATED,
    responses={403: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def create_company(
    db: DbSession,
    ctx: Context,
    actor: CurrentActor,
    payload: CompanyCreate,
) -> CompanyResponse:
    """Create a tenant; unset policy fields come from the deployment settings."""
    company = await OrganizationService(db, ctx.settings).create_company(
        actor, **payload.model_dump()
    )
    return CompanyResponse.model_validate(company)


@router.put(
    "/{company_id}/grouping-mode",
    response_model=CompanyResponse,
    responses={
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def change_grouping_mode(
    db: DbSession,
    ctx: Context,
    actor: CurrentActor,
    company_id: Annotated[UUID, Path()],
    payload: GroupingModeRequest,
) -> CompanyResponse:
    company = await OrganizationService(db, ctx.settings).change_grouping_mode(
        actor, company_id, payload.grouping_mode
    )
    return CompanyResponse.model_validate(company)
