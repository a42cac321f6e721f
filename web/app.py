"""
FastAPI application for the Condy access API.

Production deployment configuration via environment variables.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.errors import (
    CondyError,
    DuplicateCondo,
    ExternalIndexDegraded,
    InvalidRequest,
    InvalidTransition,
    NotFound,
    PermissionDenied,
    StoreUnavailable,
    UnknownCondo,
)
from utils.config import Config
from web.access_routes import router as access_router
from web.condo_routes import router as condo_router


logger = logging.getLogger(__name__)

VERSION = "0.1.0"

# Domain error -> HTTP status; first match wins
ERROR_STATUS_CODES = (
    (NotFound, 404),
    (InvalidTransition, 409),
    (DuplicateCondo, 409),
    (UnknownCondo, 422),
    (InvalidRequest, 400),
    (PermissionDenied, 403),
    (StoreUnavailable, 503),
    (ExternalIndexDegraded, 502),
)


def status_code_for(error: CondyError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(error, error_type):
            return status_code
    return 400


def error_body(error: CondyError) -> dict:
    body = {"error": type(error).__name__, "detail": str(error)}
    if isinstance(error, InvalidTransition):
        body["current"] = getattr(error.current, "value", error.current)
        body["requested"] = getattr(error.requested, "value", error.requested)
    elif isinstance(error, DuplicateCondo):
        body["existing_id"] = error.existing_id
    return body


def create_app(config: Config = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    config = config or Config.load()

    app = FastAPI(
        title="Condy Access API",
        description="Access requests and condominium search for gatehouses, residents and drivers",
        version=VERSION,
        debug=config.debug,
    )

    # Health endpoint registered first; no dependencies, no IO
    @app.get("/health", include_in_schema=False)
    def health():
        return {"status": "healthy", "version": VERSION}

    if config.allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.allowed_origins,
            allow_credentials=True,
            allow_methods=["GET", "POST"],
            allow_headers=["*"],
        )

    @app.exception_handler(CondyError)
    async def handle_domain_error(request: Request, exc: CondyError):
        status_code = status_code_for(exc)
        if status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        else:
            logger.info("%s %s rejected (%d): %s", request.method, request.url.path, status_code, exc)
        return JSONResponse(status_code=status_code, content=error_body(exc))

    app.include_router(access_router)
    app.include_router(condo_router)

    return app


app = create_app()
