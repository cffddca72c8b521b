"""FastAPI application for Practice OS."""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from practice_os import __version__
from practice_os.api.middleware import RequestLoggingMiddleware
from practice_os.api.routes import health, scheduling
from practice_os.config import get_settings
from practice_os.scheduling.errors import (
    BookingRejectedError,
    InvalidIntervalError,
    InvalidRequestError,
    RetryableConflictError,
)
from practice_os.scheduling.service import SchedulingService
from practice_os.scheduling.store import InMemoryAppointmentStore

logger = logging.getLogger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
    """Translate scheduling errors into JSON responses."""
    settings = get_settings()

    @app.exception_handler(InvalidIntervalError)
    @app.exception_handler(InvalidRequestError)
    async def validation_error_handler(request: Request, exc: Exception):
        logger.info(f"Rejected {request.method} {request.url.path}: {exc}")
        return JSONResponse(
            status_code=422,
            content={"error": type(exc).__name__, "detail": str(exc)},
        )

    @app.exception_handler(BookingRejectedError)
    @app.exception_handler(RetryableConflictError)
    async def conflict_error_handler(request: Request, exc: Exception):
        logger.warning(f"Booking conflict on {request.url.path}: {exc}")
        return JSONResponse(
            status_code=409,
            content={
                "error": type(exc).__name__,
                "detail": str(exc),
                "retryable": isinstance(exc, RetryableConflictError),
                "conflicts": [c.model_dump(mode="json") for c in exc.conflicts],
                "alternatives": [
                    s.model_dump(mode="json") for s in getattr(exc, "alternatives", [])
                ],
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled exception: {exc}")
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "detail": str(exc) if settings.debug_mode else None,
            },
        )


def create_app(service: Optional[SchedulingService] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Without an explicit *service*, bookings live in an in-memory store for the
    lifetime of the process.
    """
    app = FastAPI(
        title="Practice OS Scheduling API",
        description="Conflict checks, availability slots and advisory schedule scores",
        version=__version__,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    app.state.scheduling_service = service or SchedulingService(InMemoryAppointmentStore())

    app.include_router(health.router, tags=["health"])
    app.include_router(scheduling.router, prefix="/api/v1", tags=["scheduling"])

    register_exception_handlers(app)

    return app
