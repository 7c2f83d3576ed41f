"""
FastAPI application factory.

* Registers routes for events, attendees, rides, notifications and admin.
* Maps the domain error taxonomy onto HTTP status codes.
* Applies rate-limiting middleware.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from rallyhome.api.middleware import limiter
from rallyhome.api.routes import admin, attendees, events, notifications, rides
from rallyhome.domain.errors import (
    ConflictError,
    ForbiddenError,
    InvalidStateTransition,
    NotFoundError,
    SafetyIncompleteError,
    ValidationError,
)
from rallyhome.infrastructure import redis_client
from rallyhome.infrastructure.database import engine

logging.basicConfig(level=logging.INFO)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Release pooled DB and Redis connections on shutdown."""
    yield
    await redis_client.close_pool()
    await engine.dispose()


async def _validation_error(request: Request, exc: ValidationError):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


async def _not_found(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


async def _forbidden(request: Request, exc: ForbiddenError):
    return JSONResponse(status_code=403, content={"detail": str(exc)})


async def _conflict(request: Request, exc: Exception):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


async def _safety_incomplete(request: Request, exc: SafetyIncompleteError):
    return JSONResponse(
        status_code=409,
        content={
            "detail": str(exc),
            "pending": exc.pending,
            "counts": exc.counts,
            "outstanding": exc.outstanding,
        },
    )


def create_app() -> FastAPI:
    app = FastAPI(
        title="R@lly Home API",
        description=(
            "Coordinates who drives whom home from a R@lly, tracks every "
            "attendee's safety status on the way home, and refuses to close "
            "an event while anyone is still unaccounted for."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Domain errors
    app.add_exception_handler(ValidationError, _validation_error)
    app.add_exception_handler(NotFoundError, _not_found)
    app.add_exception_handler(ForbiddenError, _forbidden)
    app.add_exception_handler(ConflictError, _conflict)
    app.add_exception_handler(InvalidStateTransition, _conflict)
    app.add_exception_handler(SafetyIncompleteError, _safety_incomplete)

    # Routers
    for module in (events, attendees, rides, notifications, admin):
        app.include_router(module.router, prefix="/api/v1")

    return app
