"""Exception handlers: keep framework errors in the ``{success, error}`` shape."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from toonify.core.classifier import generic_message
from toonify.core.results import ErrorCategory

logger = logging.getLogger(__name__)


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning("Invalid request body on %s: %s", request.url.path, exc.errors())
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "success": False,
            "error": "Missing or invalid request body",
            "category": str(ErrorCategory.INVALID_IMAGE),
        },
    )


async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) and exc.detail else generic_message(exc.status_code)
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": message},
        headers=getattr(exc, "headers", None),
    )


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s", request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "error": "Failed to generate image",
            "category": str(ErrorCategory.UNKNOWN),
        },
    )


def register_exception_handlers(application: FastAPI) -> None:
    """Install the handlers on ``application``."""
    application.add_exception_handler(RequestValidationError, _validation_error_handler)  # type: ignore[arg-type]
    application.add_exception_handler(StarletteHTTPException, _http_error_handler)  # type: ignore[arg-type]
    application.add_exception_handler(Exception, _unhandled_error_handler)
