"""
Application error hierarchy and the FastAPI handlers that render it.

Every error response has the shape ``{"code", "message", "details"}`` so the
mobile client can branch on ``code`` alone.
"""

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ErrorCodes:
    FOOD_ITEM_NOT_FOUND = "FOOD_ITEM_NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_IMAGE_DATA = "INVALID_IMAGE_DATA"
    IMAGE_PROCESSING_FAILED = "IMAGE_PROCESSING_FAILED"
    NOTIFICATION_RUN_FAILED = "NOTIFICATION_RUN_FAILED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class AppError(Exception):
    def __init__(self, code: str, message: str, status_code: int = 500, details: dict | None = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details


class NotFoundError(AppError):
    def __init__(self, resource: str):
        super().__init__(ErrorCodes.FOOD_ITEM_NOT_FOUND, f"{resource} not found", 404)


class ValidationError(AppError):
    def __init__(self, message: str, details: dict | None = None, code: str = ErrorCodes.VALIDATION_ERROR):
        super().__init__(code, message, 400, details)


class ImageProcessingError(AppError):
    def __init__(self, message: str):
        super().__init__(ErrorCodes.IMAGE_PROCESSING_FAILED, message, 422)


class NotificationRunError(AppError):
    """The expiration check could not run at all (e.g. the item store is down)."""

    def __init__(self, message: str):
        super().__init__(ErrorCodes.NOTIFICATION_RUN_FAILED, message, 503)


def _error_body(code: str, message: str, details: dict | None = None) -> dict:
    body = {"code": code, "message": message}
    if details is not None:
        body["details"] = details
    return body


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code} {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.code, exc.message, exc.details),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"loc": list(err.get("loc", [])), "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content=_error_body(ErrorCodes.VALIDATION_ERROR, "Validation failed", {"errors": errors}),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"{request.method} {request.url.path} raised {exc.__class__.__name__}")
    return JSONResponse(
        status_code=500,
        content=_error_body(ErrorCodes.INTERNAL_ERROR, "Internal server error"),
    )
