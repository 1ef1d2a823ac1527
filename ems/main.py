"""ASGI entrypoint: `uvicorn ems.main:app`.

Builds the FastAPI app, maps `ServiceError` subclasses to JSON error
responses and owns the startup/shutdown of the database engine and the
Redis client.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ems.api.routes import (
    attendance_router,
    auth_router,
    employees_router,
    leaves_router,
    otp_router,
    tasks_router,
)
from ems.core.config import settings
from ems.core.exceptions import CooldownActive, ServiceError
from ems.db import models  # noqa: F401
from ems.db.base import Base
from ems.db.session import engine
from ems.schemas.common import ErrorDetail
from ems.services.otp import close_redis_client

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create missing tables on startup; release Redis and the engine pool on shutdown."""

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await close_redis_client()
    await engine.dispose()


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Render any service-layer failure as `{"detail": ...}` with its mapped status."""
    headers = None
    if isinstance(exc, CooldownActive):
        headers = {"Retry-After": str(exc.remaining_seconds)}
    body = ErrorDetail(detail=exc.detail).model_dump()
    return JSONResponse(status_code=exc.status_code, content=body, headers=headers)


def create_application() -> FastAPI:
    """Build the app: CORS from settings, the error handler and every router."""

    application = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.PROJECT_VERSION,
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.add_exception_handler(ServiceError, service_error_handler)

    application.include_router(auth_router)
    application.include_router(otp_router)
    application.include_router(employees_router)
    application.include_router(leaves_router)
    application.include_router(tasks_router)
    application.include_router(attendance_router)

    @application.get("/")
    async def healthcheck():
        """Lightweight health endpoint used by uptime monitors."""
        return {"message": "Employee Management Service is running!"}

    return application


app = create_application()
