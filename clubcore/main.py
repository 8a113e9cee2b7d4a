"""Main FastAPI application."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from clubcore.api import applications, audit, checkins, health, leave_requests
from clubcore.core.correlation import (
    CAUSATION_HEADER,
    CORRELATION_HEADER,
    create_context,
    extract_correlation_id,
    reset_current_context,
    set_current_context,
)
from clubcore.core.database import init_db
from clubcore.core.errors import ClubCoreError, InternalError, ValidationError
from clubcore.core.logging import configure_logging
from clubcore.core.settings import settings
from clubcore.services.notification_service import NotificationDispatcher, build_notifier
from clubcore.workers.maintenance_scheduler import MaintenanceScheduler

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Starting clubcore application...")

    # Initialize database
    await init_db()
    logger.info("Database initialized")

    if getattr(app.state, "dispatcher", None) is None:
        app.state.dispatcher = NotificationDispatcher(build_notifier(settings))

    maintenance = None
    if settings.maintenance_enabled:
        maintenance = MaintenanceScheduler()
        await maintenance.start()

    yield

    # Cleanup
    logger.info("Shutting down...")
    if maintenance is not None:
        await maintenance.stop()
    await app.state.dispatcher.drain()
    logger.info("Application stopped")


# Create FastAPI app
app = FastAPI(
    title="clubcore",
    description="Membership workflows, leave requests and check-ins for sports clubs",
    version="1.0.0",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=[CORRELATION_HEADER, CAUSATION_HEADER, "X-Idempotency-Replayed"],
)


@app.middleware("http")
async def correlation_middleware(request: Request, call_next):
    """Create the root trace context and echo its ids on the response."""
    context = create_context(
        correlation_id=extract_correlation_id(request.headers),
        meta={"method": request.method, "path": request.url.path},
    )
    request.state.context = context
    token = set_current_context(context)
    try:
        response = await call_next(request)
    finally:
        reset_current_context(token)

    # Commands answer with their own step's causation id
    if CORRELATION_HEADER not in response.headers:
        response.headers[CORRELATION_HEADER] = context.correlation_id
    if CAUSATION_HEADER not in response.headers:
        response.headers[CAUSATION_HEADER] = context.causation_id
    return response


def _error_response(request: Request, error: ClubCoreError) -> JSONResponse:
    context = getattr(request.state, "context", None)
    return JSONResponse(
        status_code=error.status_code,
        content={
            "error": error.to_dict(),
            "correlation_id": context.correlation_id if context else None,
            "causation_id": context.causation_id if context else None,
        },
    )


@app.exception_handler(ClubCoreError)
async def clubcore_error_handler(request: Request, exc: ClubCoreError):
    return _error_response(request, exc)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"{field}: {first.get('msg', 'invalid value')}" if field else "Invalid request"
    return _error_response(request, ValidationError(message))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return _error_response(request, InternalError())


# Include API routers
app.include_router(health.router)
app.include_router(applications.router, prefix="/api")
app.include_router(leave_requests.router, prefix="/api")
app.include_router(checkins.router, prefix="/api")
app.include_router(audit.router, prefix="/api")


if __name__ == "__main__":
    import os

    import uvicorn

    port = int(os.getenv("PORT", 8000))
    uvicorn.run(
        "clubcore.main:app",
        host="0.0.0.0",
        port=port,
        reload=settings.env == "dev",
        proxy_headers=True,
        forwarded_allow_ips="*",
    )
