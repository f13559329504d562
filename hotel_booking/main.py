# hotel_booking/main.py

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from hotel_booking.auth.gate import AuthorizationGate
from hotel_booking.auth.tokens import TokenService
from hotel_booking.config import Settings
from hotel_booking.db.engine import create_db_engine
from hotel_booking.db.gateway import Database
from hotel_booking.errors import DomainError, InternalError, ValidationError
from hotel_booking.logging_config import setup_logging
from hotel_booking.middleware import RequestIDMiddleware, TokenRefreshMiddleware
from hotel_booking.routes.admin import router as admin_router
from hotel_booking.routes.auth import router as auth_router
from hotel_booking.routes.bookings import router as bookings_router
from hotel_booking.routes.health import router as health_router
from hotel_booking.routes.metrics import router as metrics_router
from hotel_booking.services.accounts import AccountService
from hotel_booking.services.bookings import BookingService
from hotel_booking.utils.datetime import Clock, SystemClock

logger = structlog.get_logger(__name__)


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(DomainError)
    async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
        if isinstance(exc, InternalError):
            logger.error("request_failed", error_code=exc.code, path=request.url.path)
        return JSONResponse(status_code=exc.http_status, content=exc.to_payload())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        error = ValidationError(
            "Validation failed",
            details={
                "errors": [
                    {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
                    for err in exc.errors()
                ]
            },
        )
        return JSONResponse(status_code=error.http_status, content=error.to_payload())

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("unhandled_error", path=request.url.path, error=str(exc))
        error = InternalError("An unexpected error occurred")
        return JSONResponse(status_code=error.http_status, content=error.to_payload())


def create_app(settings: Optional[Settings] = None, clock: Optional[Clock] = None) -> FastAPI:
    """
    Build the application and its services.

    Everything stateful (engine, gateway, services) is created here and stored on
    ``app.state``; nothing is created at import time.

    Args:
        settings: Configuration; read from the environment when omitted
        clock: Time source; wall clock when omitted

    Returns:
        FastAPI: The configured application

    Example:
        $ uvicorn hotel_booking.main:create_app --factory
    """
    settings = settings or Settings.from_env()
    clock = clock or SystemClock()

    # Initialize structured logging
    setup_logging(settings.log_level)

    db = Database(create_db_engine(settings))
    tokens = TokenService(db, settings, clock)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("application_starting")
        yield
        db.dispose()
        logger.info("application_stopped")

    app = FastAPI(
        title="Hotel Booking API",
        description="Room reservations, availability, and session management",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.db = db
    app.state.tokens = tokens
    app.state.gate = AuthorizationGate(db, tokens)
    app.state.bookings = BookingService(db, settings, clock)
    app.state.accounts = AccountService(db, settings, tokens, clock)

    # Added first so it runs innermost, after the route handler
    app.add_middleware(TokenRefreshMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_exception_handlers(app)

    # Register routers
    app.include_router(health_router, tags=["Health"])
    app.include_router(metrics_router, tags=["Metrics"])
    app.include_router(auth_router, prefix="/auth", tags=["Auth"])
    app.include_router(bookings_router, prefix="/bookings", tags=["Bookings"])
    app.include_router(admin_router, prefix="/admin", tags=["Admin"])

    return app
