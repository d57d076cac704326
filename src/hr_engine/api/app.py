"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from hr_engine import __version__
from hr_engine.api.routes import (
    advances_router,
    attendance_router,
    claims_router,
    companies_router,
    health_router,
    holidays_router,
    leave_router,
    payroll_router,
)
from hr_engine.database import dispose_db, init_db
from hr_engine.errors import HREngineError
from hr_engine.services.context import ServiceContext

logger = logging.getLogger(__name__)

# Stable error code -> HTTP status
STATUS_BY_CODE: dict[str, int] = {
    "VALIDATION_FAILED": status.HTTP_422_UNPROCESSABLE_CONTENT,
    "CONFLICT": status.HTTP_409_CONFLICT,
    "ALREADY_CLOCKED_IN": status.HTTP_409_CONFLICT,
    "OUT_OF_ORDER_ACTION": status.HTTP_409_CONFLICT,
    "AUTHORIZATION_DENIED": status.HTTP_403_FORBIDDEN,
    "NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "LINKED_TO_PAYROLL": status.HTTP_423_LOCKED,
    "CONCURRENT_BALANCE_MISMATCH": status.HTTP_409_CONFLICT,
    "EXTERNAL_UNAVAILABLE": status.HTTP_503_SERVICE_UNAVAILABLE,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    init_db()
    if getattr(app.state, "ctx", None) is None:
        app.state.ctx = ServiceContext.from_settings()
    yield
    # Shutdown
    await dispose_db()


def create_app(ctx: ServiceContext | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="HR Engine API",
        description="Attendance, leave, claims and payroll linkage",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.ctx = ctx

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(HREngineError)
    async def engine_error_handler(request: Request, exc: HREngineError) -> JSONResponse:
        """Render core errors with their stable code."""
        status_code = STATUS_BY_CODE.get(exc.code, status.HTTP_400_BAD_REQUEST)
        if status_code >= 500:
            logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=status_code, content=exc.to_dict())

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
                "reasons": [],
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(companies_router, prefix="/api/v1")
    app.include_router(attendance_router, prefix="/api/v1")
    app.include_router(holidays_router, prefix="/api/v1")
    app.include_router(leave_router, prefix="/api/v1")
    app.include_router(claims_router, prefix="/api/v1")
    app.include_router(advances_router, prefix="/api/v1")
    app.include_router(payroll_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
