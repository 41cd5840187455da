# src/utils/exceptions.py
from fastapi import HTTPException, status
from typing import Any, Optional
import logging
from sqlalchemy.ext.asyncio import AsyncSession


class BaseAPIException(HTTPException):
    def __init__(
        self,
        status_code: int,
        detail: Any = None,
        headers: Optional[dict] = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=detail, headers=headers)


class NotFoundException(BaseAPIException):
    def __init__(self, detail: str = "Resource not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class ConflictException(BaseAPIException):
    def __init__(self, detail: str = "Resource already exists"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class UnauthorizedException(BaseAPIException):
    def __init__(self, detail: str = "Authentication required"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class ForbiddenException(BaseAPIException):
    def __init__(self, detail: str = "Insufficient permissions"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class BadRequestException(BaseAPIException):
    def __init__(self, detail: str = "Bad Request"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class PayloadTooLargeException(BaseAPIException):
    def __init__(self, detail: str = "File is too large"):
        super().__init__(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail=detail
        )


class ServiceUnavailableException(BaseAPIException):
    def __init__(self, detail: str = "Service is not configured"):
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail)


async def handle_db_exception(
    db: AsyncSession, logger: logging.Logger, operation: str, exception: Exception
):
    """Roll back, log, and re-raise so the central handlers map the error."""
    await db.rollback()
    if isinstance(exception, BaseAPIException):
        raise exception
    logger.error(f"Database error during {operation}: {str(exception)}", exc_info=True)
    raise exception
