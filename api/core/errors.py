"""
Error taxonomy and the FastAPI handlers that render it.

Every error response has the same shape: `{"error": "<message>"}`.
Client errors carry the specific rule that was violated; server errors
carry a generic message so driver/filesystem details never leak.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class BlogError(Exception):
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(BlogError):
    http_status = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class NotFoundError(BlogError):
    http_status = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class StorageError(BlogError):
    default_message = "Database error"


class UploadIOError(BlogError):
    default_message = "Failed to save image"


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(BlogError)
    async def blog_error_handler(request: Request, exc: BlogError) -> JSONResponse:
        if exc.http_status >= 500:
            logger.error("request_failed path=%s error=%s", request.url.path, exc.message)
        else:
            logger.warning("request_rejected path=%s error=%s", request.url.path, exc.message)
        return error_response(exc.http_status, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        response = error_response(exc.status_code, str(exc.detail))
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        logger.warning("request_invalid path=%s errors=%s", request.url.path, exc.errors())
        return error_response(status.HTTP_400_BAD_REQUEST, "Invalid request data")

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("unhandled_exception path=%s", request.url.path, exc_info=exc)
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")
