"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from rota_engine.api.routes import health_router, pay_runs_router, rates_router, schedule_router
from rota_engine.config import configure_logging, get_settings
from rota_engine.database import dispose_db, init_db
from rota_engine.services.authorization import AuthorizationError
from rota_engine.services.errors import (
    DuplicatePayRunError,
    DuplicateRateError,
    NotFoundError,
    ServiceError,
    ValidationError,
)
from rota_engine.services.state_machine import (
    InvalidTransitionError,
    PayRunNotEditableError,
    PayRunStateMachine,
)

logger = logging.getLogger(__name__)

SERVICE_ERROR_STATUS: dict[type[ServiceError], int] = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    DuplicatePayRunError: status.HTTP_409_CONFLICT,
    DuplicateRateError: status.HTTP_409_CONFLICT,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    configure_logging()
    init_db()
    logger.info("Rota engine %s starting", get_settings().engine_version)
    yield
    # Shutdown
    await dispose_db()


def _error(status_code: int, detail: str, code: str | None, context: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"detail": detail, "code": code, "context": context or {}},
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Rota Engine API",
        description="Payroll computation and schedule consistency",
        version="0.1.0",
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
        status_code = next(
            (code for cls, code in SERVICE_ERROR_STATUS.items() if isinstance(exc, cls)),
            status.HTTP_400_BAD_REQUEST,
        )
        return _error(status_code, exc.message, exc.code, exc.context)

    @app.exception_handler(AuthorizationError)
    async def authorization_error_handler(
        request: Request, exc: AuthorizationError
    ) -> JSONResponse:
        return _error(
            status.HTTP_403_FORBIDDEN,
            str(exc),
            exc.code,
            {"role": exc.role, "required_roles": sorted(exc.required)},
        )

    @app.exception_handler(InvalidTransitionError)
    async def transition_error_handler(
        request: Request, exc: InvalidTransitionError
    ) -> JSONResponse:
        context: dict = {"current_status": exc.from_status}
        if isinstance(exc, PayRunNotEditableError):
            context["required_status"] = exc.allowed
        else:
            context["requested_status"] = exc.to_status
            context["required_status"] = PayRunStateMachine.required_status_for(exc.to_status)
        return _error(status.HTTP_409_CONFLICT, str(exc), exc.code, context)

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "An unexpected error occurred",
            "INTERNAL_ERROR",
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(pay_runs_router, prefix="/api/v1")
    app.include_router(schedule_router, prefix="/api/v1")
    app.include_router(rates_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
