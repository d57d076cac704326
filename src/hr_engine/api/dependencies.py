"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from hr_engine.database import init_db
from hr_engine.services.authority import Actor, ActorClaims, load_actor
from hr_engine.services.context import ServiceContext


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    _, factory = init_db()
    async with factory() as session:
        try:
            yield session
        finally:
            await session.close()


def get_service_context(request: Request) -> ServiceContext:
    """Shared collaborators created at startup."""
    ctx = getattr(request.app.state, "ctx", None)
    if ctx is None:
        ctx = ServiceContext.from_settings()
        request.app.state.ctx = ctx
    return ctx


def _parse_uuid(value: str, header: str) -> UUID:
    try:
        return UUID(value)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {header} format",
        )


async def get_actor_claims(
    x_company_id: Annotated[str | None, Header()] = None,
    x_role: Annotated[str | None, Header()] = None,
    x_employee_id: Annotated[str | None, Header()] = None,
) -> ActorClaims:
    """Claims forwarded by the token verifier in front of this service."""
    if not x_company_id or not x_role:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-Company-ID and X-Role headers are required",
        )
    return ActorClaims(
        employee_id=_parse_uuid(x_employee_id, "X-Employee-ID") if x_employee_id else None,
        role=x_role,
        company_id=_parse_uuid(x_company_id, "X-Company-ID"),
    )


DbSession = Annotated[AsyncSession, Depends(get_db_session)]
Context = Annotated[ServiceContext, Depends(get_service_context)]
Claims = Annotated[ActorClaims, Depends(get_actor_claims)]


async def get_actor(db: DbSession, claims: Claims) -> Actor:
    return await load_actor(db, claims)


# Type aliases for cleaner dependency injection
CurrentActor = Annotated[Actor, Depends(get_actor)]
