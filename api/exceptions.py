"""
Exception handlers for the HTTP layer.

Capture failures never reach the client as stack traces: domain errors map to
short plain-text responses and anything unexpected becomes a 500.
"""

import functools
import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import PlainTextResponse

from core.exceptions import (
    CaptureTimeoutError,
    InvalidPersistenceModeError,
    PhotoApiError,
)

logger = logging.getLogger(__name__)


class InvalidCaptureSizeException(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=400, detail=detail)


def safe_endpoint(func):
    """
    Log and convert unexpected exceptions raised by an endpoint.

    HTTPException and domain errors pass through to their registered
    handlers.
    """

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except (HTTPException, PhotoApiError):
            raise
        except Exception as e:
            logger.error(f"Unhandled error in {func.__name__}: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail=f"Internal server error: {e}")

    return wrapper


async def invalid_persistence_handler(request: Request, exc: InvalidPersistenceModeError):
    logger.warning(f"Rejected savePhoto={exc.value!r}")
    return PlainTextResponse(str(exc), status_code=400)


async def capture_timeout_handler(request: Request, exc: CaptureTimeoutError):
    return PlainTextResponse(str(exc), status_code=504)


async def photo_api_error_handler(request: Request, exc: PhotoApiError):
    logger.error(f"Unhandled capture error: {exc}")
    return PlainTextResponse(str(exc), status_code=500)


async def http_exception_handler(request: Request, exc: HTTPException):
    return PlainTextResponse(str(exc.detail), status_code=exc.status_code, headers=exc.headers)


async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Global exception: {exc}", exc_info=True)
    return PlainTextResponse(f"Internal server error: {exc}", status_code=500)


def register_exception_handlers(app: FastAPI):
    """Attach all handlers to the application"""
    app.add_exception_handler(InvalidPersistenceModeError, invalid_persistence_handler)
    app.add_exception_handler(CaptureTimeoutError, capture_timeout_handler)
    app.add_exception_handler(PhotoApiError, photo_api_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
