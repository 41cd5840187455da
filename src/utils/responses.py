# src/utils/responses.py
from typing import Any, Iterable, Optional, Type

from schemas.base_schemas import (
    DataResponse,
    ListResponse,
    PaginatedResponse,
    PaginationMeta,
)


def data_response(schema: Type, obj: Any, message: Optional[str] = None) -> DataResponse:
    """Serialize one ORM object into the {success, message, data} envelope."""
    return DataResponse[schema](data=schema.model_validate(obj), message=message)


def paginated_response(schema: Type, items: Iterable[Any], meta: dict) -> PaginatedResponse:
    return PaginatedResponse[schema](
        data=[schema.model_validate(item) for item in items],
        pagination=PaginationMeta(**meta),
    )


def list_response(schema: Type, items: Iterable[Any]) -> ListResponse:
    data = [schema.model_validate(item) for item in items]
    return ListResponse[schema](data=data, count=len(data))
