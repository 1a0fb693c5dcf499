"""
FastAPI application entry point for the campus community API.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend.config import get_settings
from backend.middleware import ACCESS_LOGGER_NAME, RequestLoggingMiddleware
from backend.routes import router
from community.errors import (
    AlreadyExistsError,
    AuthenticationError,
    CommunityError,
    InvalidInputError,
    NotFoundError,
    PermissionDeniedError,
    ResourceExhaustedError,
    ServiceUnavailableError,
)

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = {
    InvalidInputError: 400,
    AuthenticationError: 401,
    PermissionDeniedError: 403,
    NotFoundError: 404,
    AlreadyExistsError: 409,
    ResourceExhaustedError: 429,
    ServiceUnavailableError: 503,
}


async def community_error_handler(request: Request, exc: CommunityError) -> JSONResponse:
    status_code = 500
    for error_type, code in ERROR_STATUS_CODES.items():
        if isinstance(exc, error_type):
            status_code = code
            break
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)

    body: dict[str, object] = {"detail": exc.message}
    if isinstance(exc, InvalidInputError) and exc.field:
        body["field"] = exc.field
    headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
    return JSONResponse(status_code=status_code, content=body, headers=headers)


def create_app() -> FastAPI:
    settings = get_settings()
    logging.getLogger(ACCESS_LOGGER_NAME).setLevel(logging.INFO)

    app = FastAPI(title="Campus Community API", version="0.1.0")
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(CommunityError, community_error_handler)
    app.include_router(router, prefix=settings.api_prefix)

    @app.get("/healthz", include_in_schema=False)
    def healthz() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()
