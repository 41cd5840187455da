# src/schemas/base_schemas.py
from pydantic import BaseModel, ConfigDict
from typing import Generic, List, Optional, TypeVar
from datetime import datetime
from uuid import UUID

T = TypeVar("T")


class BaseSchema(BaseModel):
    """Base schema with common configuration"""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
        use_enum_values=True,
        arbitrary_types_allowed=True,
    )


class TimestampMixin(BaseSchema):
    """Mixin for timestamps"""

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class IDMixin(BaseSchema):
    """Mixin for ID field"""

    id: UUID


class ArchiveMixin(BaseSchema):
    is_archived: bool = False
    archived_at: Optional[datetime] = None


class ResponseBase(BaseSchema):
    """Base response schema"""

    success: bool = True
    message: Optional[str] = None


class PaginationMeta(BaseSchema):
    total: int
    page: int
    limit: int
    total_pages: int
    has_more: bool


class DataResponse(ResponseBase, Generic[T]):
    """Envelope for a single payload: {success, message?, data}"""

    data: T


class PaginatedResponse(ResponseBase, Generic[T]):
    """Envelope for a page: {success, data, pagination}"""

    data: List[T]
    pagination: PaginationMeta


class ListResponse(ResponseBase, Generic[T]):
    """Envelope for capped, unpaginated results such as search."""

    data: List[T]
    count: int


class CountResponse(ResponseBase):
    count: int
