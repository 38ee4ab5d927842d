"""Mapping of application errors onto HTTP responses."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from rai.exceptions import (
    AccessDeniedError,
    NotFoundError,
    PersistenceError,
    ProviderError,
    RaiError,
    UsageLimitExceededError,
    ValidationError,
)

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES: dict[type[RaiError], int] = {
    NotFoundError: 404,
    AccessDeniedError: 403,
    ValidationError: 422,
    UsageLimitExceededError: 429,
    ProviderError: 502,
    PersistenceError: 500,
}


def status_code_for(exc: RaiError) -> int:
    for error_type, code in ERROR_STATUS_CODES.items():
        if isinstance(exc, error_type):
            return code
    return 500


async def rai_error_handler(request: Request, exc: RaiError) -> JSONResponse:
    code = status_code_for(exc)
    if code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {code}: {exc}")
    return JSONResponse(
        status_code=code,
        content={"detail": str(exc), "error": type(exc).__name__},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RaiError, rai_error_handler)
