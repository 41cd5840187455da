# src/utils/exception_handler.py
import re
import traceback
from typing import Optional, Tuple

from fastapi import FastAPI, Request, HTTPException, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError, IntegrityError, NoResultFound
from slowapi.errors import RateLimitExceeded

from core.config import settings
from .logger import setup_logger
from .exceptions import BaseAPIException

logger = setup_logger("EXCEPTION_HANDLER")

UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"

_UNIQUE_FIELD_PATTERNS = (
    # sqlite: UNIQUE constraint failed: patients.cnic
    re.compile(r"UNIQUE constraint failed: \w+\.(\w+)"),
    # postgres: Key (cnic)=(...) already exists
    re.compile(r"Key \((\w+)\)="),
)


def _error_body(message, status_code: int, error_type: str) -> dict:
    return {
        "success": False,
        "message": message,
        "type": error_type,
        "status": status_code,
    }


def classify_integrity_error(exc: IntegrityError) -> Tuple[int, str]:
    """Map a driver integrity error onto (status, message)."""
    orig = getattr(exc, "orig", None)
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    text = str(orig if orig is not None else exc)

    if sqlstate == FOREIGN_KEY_VIOLATION or "FOREIGN KEY constraint failed" in text:
        return status.HTTP_400_BAD_REQUEST, "Related record not found"

    if sqlstate == UNIQUE_VIOLATION or "UNIQUE constraint failed" in text:
        field: Optional[str] = None
        for pattern in _UNIQUE_FIELD_PATTERNS:
            match = pattern.search(text)
            if match:
                field = match.group(1)
                break
        return (
            status.HTTP_409_CONFLICT,
            f"A record with this {field or 'value'} already exists",
        )

    return status.HTTP_409_CONFLICT, "Database integrity error"


def setup_exception_handlers(app: FastAPI):
    @app.exception_handler(BaseAPIException)
    async def api_exception_handler(request: Request, exc: BaseAPIException):
        if exc.status_code == status.HTTP_404_NOT_FOUND:
            logger.info(f"Not found: {request.method} {request.url.path}")
        else:
            logger.warning(f"API Exception {exc.status_code}: {str(exc.detail)}")
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.detail, exc.status_code, exc.__class__.__name__),
            headers=exc.headers,
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        error_details = {
            status.HTTP_400_BAD_REQUEST: "Bad request",
            status.HTTP_401_UNAUTHORIZED: "Authentication required",
            status.HTTP_403_FORBIDDEN: "Insufficient permissions",
            status.HTTP_404_NOT_FOUND: "Resource not found",
            status.HTTP_405_METHOD_NOT_ALLOWED: "Method not allowed",
            status.HTTP_409_CONFLICT: "Conflict - Resource already exists",
            status.HTTP_500_INTERNAL_SERVER_ERROR: "Internal server error",
        }

        detail = exc.detail or error_details.get(exc.status_code, "An error occurred")

        if exc.status_code == status.HTTP_404_NOT_FOUND:
            logger.info(f"Not found: {detail}")
        else:
            logger.warning(f"HTTP Exception {exc.status_code}: {detail}")

        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(detail, exc.status_code, "HTTPException"),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        logger.info(f"Validation error on {request.method} {request.url.path}")
        content = _error_body(
            "Validation error", status.HTTP_400_BAD_REQUEST, "ValidationError"
        )
        content["errors"] = jsonable_encoder(exc.errors())
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=content)

    @app.exception_handler(SQLAlchemyError)
    async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError):
        if isinstance(exc, IntegrityError):
            status_code, detail = classify_integrity_error(exc)
            logger.warning(f"Integrity error mapped to {status_code}: {exc.orig}")
        elif isinstance(exc, NoResultFound):
            status_code, detail = status.HTTP_404_NOT_FOUND, "Record not found"
            logger.info(f"No result: {request.method} {request.url.path}")
        else:
            status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
            detail = "Database operation failed"
            logger.error(f"Database error: {str(exc)}", exc_info=True)

        content = _error_body(detail, status_code, "DatabaseError")
        if status_code >= 500 and not settings.is_production:
            content["stack"] = traceback.format_exception(
                type(exc), exc, exc.__traceback__
            )
        return JSONResponse(status_code=status_code, content=content)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unexpected error: {str(exc)}", exc_info=True)
        content = _error_body(
            "Internal server error",
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "InternalServerError",
        )
        if not settings.is_production:
            content["stack"] = traceback.format_exception(
                type(exc), exc, exc.__traceback__
            )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content
        )

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
        logger.warning(f"Rate limit exceeded: {str(exc)}")

        detail_message = "Too many requests - please try again later"
        retry_after = getattr(exc, "retry_after", None)
        if isinstance(exc.detail, str) and exc.detail:
            detail_message = f"Too many requests - limit is {exc.detail}"

        content = _error_body(
            detail_message, status.HTTP_429_TOO_MANY_REQUESTS, "RateLimitExceeded"
        )
        headers = {}
        if retry_after:
            headers["Retry-After"] = str(retry_after)

        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content=content,
            headers=headers,
        )
