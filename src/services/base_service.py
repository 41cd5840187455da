# src/services/base_service.py
from typing import Any, Dict, List, Optional, Sequence, Tuple, Type, TypeVar
from uuid import UUID

from sqlalchemy import and_, delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from utils.exceptions import handle_db_exception
from utils.logger import setup_logger
from utils.query import page_window, pagination_meta

ModelType = TypeVar("ModelType")


class BaseService:
    """Unscoped persistence helpers shared by every service."""

    def __init__(self, model: Type[ModelType], logger_name: Optional[str] = None):
        self.model = model
        self.logger = setup_logger(logger_name or f"SERVICE_{model.__name__.upper()}")

    @property
    def entity_name(self) -> str:
        return self.model.__name__

    def _filter_conditions(self, filters: Optional[Dict[str, Any]]) -> list:
        conditions = []
        for field, value in (filters or {}).items():
            if value is not None and hasattr(self.model, field):
                conditions.append(getattr(self.model, field) == value)
        return conditions

    async def get(self, db: AsyncSession, id: UUID) -> Optional[ModelType]:
        """Get a single item by ID"""
        result = await db.execute(select(self.model).where(self.model.id == id))
        return result.scalar_one_or_none()

    async def paginate(
        self,
        db: AsyncSession,
        conditions: Sequence,
        order_by: Sequence,
        page: int = 1,
        limit: int = 50,
    ) -> Tuple[List[ModelType], dict]:
        """Run one page of a filtered query plus its total count."""
        offset, limit = page_window(page, limit)
        where = and_(*conditions) if conditions else None

        count_query = select(func.count()).select_from(self.model)
        query = select(self.model)
        if where is not None:
            count_query = count_query.where(where)
            query = query.where(where)

        total = (await db.execute(count_query)).scalar_one()
        result = await db.execute(
            query.order_by(*order_by).offset(offset).limit(limit)
        )
        return list(result.scalars().all()), pagination_meta(total, page, limit)

    async def get_multi(
        self,
        db: AsyncSession,
        page: int = 1,
        limit: int = 50,
        filters: Optional[Dict[str, Any]] = None,
    ) -> Tuple[List[ModelType], dict]:
        """Equality-filtered listing, newest first."""
        return await self.paginate(
            db,
            self._filter_conditions(filters),
            [self.model.created_at.desc()],
            page,
            limit,
        )

    async def create_from_dict(self, db: AsyncSession, data: Dict[str, Any]) -> ModelType:
        try:
            db_obj = self.model(**data)
            db.add(db_obj)
            await db.flush()
            await db.commit()
            await db.refresh(db_obj)
            self.logger.info(f"Created {self.entity_name} with ID: {db_obj.id}")
            return db_obj
        except SQLAlchemyError as e:
            await handle_db_exception(db, self.logger, f"create {self.entity_name}", e)

    async def delete(self, db: AsyncSession, id: UUID) -> bool:
        """Hard delete; reserved for records that are not archivable."""
        try:
            result = await db.execute(delete(self.model).where(self.model.id == id))
            await db.commit()
            deleted = result.rowcount > 0
            if deleted:
                self.logger.info(f"Deleted {self.entity_name} with ID: {id}")
            return deleted
        except SQLAlchemyError as e:
            await handle_db_exception(db, self.logger, f"delete {self.entity_name}", e)

    async def count(
        self, db: AsyncSession, filters: Optional[Dict[str, Any]] = None
    ) -> int:
        """Count items with optional filters"""
        query = select(func.count()).select_from(self.model)
        conditions = self._filter_conditions(filters)
        if conditions:
            query = query.where(and_(*conditions))
        return (await db.execute(query)).scalar_one()
