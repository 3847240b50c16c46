"""FastAPI application factory."""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from filmorate import __version__
from filmorate.config import get_settings
from filmorate.errors import FilmorateError, NotFoundError, StorageFailure, ValidationError
from filmorate.logging import bind_request_context, get_logger, setup_logging
from filmorate.stores.database import create_schema, dispose_engine

log = get_logger("app")

_STATUS: dict[type[FilmorateError], int] = {
    NotFoundError: 404,
    ValidationError: 400,
    StorageFailure: 500,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    settings = get_settings()
    settings.ensure_dirs()
    setup_logging(settings.log_level.value, json_output=settings.json_logs)

    await create_schema()
    log.info("service_started", version=__version__)

    yield

    await dispose_engine()


async def _filmorate_error(request: Request, exc: FilmorateError) -> JSONResponse:
    status = next((code for cls, code in _STATUS.items() if isinstance(exc, cls)), 500)
    if status >= 500:
        log.error("request_failed", error=str(exc))
    else:
        log.info("request_rejected", status=status, error=str(exc))
    return JSONResponse(status_code=status, content={"error": type(exc).__name__, "detail": str(exc)})


async def _malformed_request(request: Request, exc: RequestValidationError) -> JSONResponse:
    log.info("request_rejected", status=400, error="malformed request")
    return JSONResponse(
        status_code=400,
        content={"error": "ValidationError", "detail": str(exc.errors())},
    )


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    settings = get_settings()
    app = FastAPI(
        title="Filmorate",
        description="Social film-rating service",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        bind_request_context(
            request_id=request.headers.get("x-request-id") or uuid.uuid4().hex[:12],
            method=request.method,
            path=request.url.path,
        )
        return await call_next(request)

    app.add_exception_handler(FilmorateError, _filmorate_error)
    app.add_exception_handler(RequestValidationError, _malformed_request)

    from filmorate.api.routes import router
    app.include_router(router)

    return app


app = create_app()
