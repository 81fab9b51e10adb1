from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from recruitment.api.router import api_router
from recruitment.core.config import settings
from recruitment.core.errors import (
    ApplicationNotFound,
    FatalConfigurationError,
    InconsistentStateError,
    PipelineError,
    PipelineValidationError,
)
from recruitment.models import Base
from recruitment.db.session import SessionLocal, engine
from recruitment.middleware.logging import RequestLoggingMiddleware
from recruitment.middleware.request_context import RequestContextMiddleware
from recruitment.services.status_catalog import seed_statuses

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("rec")

_ERROR_STATUS: dict[type[PipelineError], int] = {
    PipelineValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    InconsistentStateError: status.HTTP_409_CONFLICT,
    ApplicationNotFound: status.HTTP_404_NOT_FOUND,
    FatalConfigurationError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


async def _pipeline_error_handler(request: Request, exc: PipelineError) -> JSONResponse:
    status_code = next(
        (code for error_type, code in _ERROR_STATUS.items() if isinstance(exc, error_type)),
        status.HTTP_400_BAD_REQUEST,
    )
    detail = exc.message
    if isinstance(exc, FatalConfigurationError) and not settings.show_error_detail:
        detail = "Recruitment pipeline is misconfigured. Contact an administrator."
    return JSONResponse(status_code=status_code, content={"detail": detail, "code": exc.code})


async def _prepare_database() -> None:
    if settings.auto_create_schema:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    if settings.seed_statuses_on_startup:
        async with SessionLocal() as session:
            created = await seed_statuses(session)
            await session.commit()
        logger.info("startup_complete", extra={"statuses_created": created})


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    await _prepare_database()
    yield
    await engine.dispose()


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.app_name,
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Last added runs first: the request id must exist before the access log line.
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestContextMiddleware)

    app.add_exception_handler(PipelineError, _pipeline_error_handler)

    @app.get("/health")
    async def health_check():
        return {"status": "ok", "environment": settings.environment}

    app.include_router(api_router)

    return app


app = create_app()
