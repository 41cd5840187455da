# src/services/scoped_record_service.py
"""
Record service parameterized by an ownership strategy.

Reads, updates and archives are all single statements whose WHERE clause
carries the caller's scope. A record outside that scope is therefore
indistinguishable from a record that does not exist: both yield 404.
"""
from typing import Any, Dict, List, Optional, Sequence, Tuple, Type
from uuid import UUID

from sqlalchemy import false, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from core.policy import Actor
from services.base_service import BaseService, ModelType
from utils.datetime_utils import utcnow
from utils.exceptions import BadRequestException, NotFoundException, handle_db_exception
from utils.query import SEARCH_RESULT_CAP, any_field_matches

# Never accepted in an update payload
IMMUTABLE_FIELDS = frozenset(
    {
        "id",
        "patient_id",
        "created_by",
        "created_by_role",
        "created_by_name",
        "uploaded_by",
        "uploaded_by_role",
        "requested_by",
        "created_at",
        "is_archived",
        "archived_at",
    }
)


class OwnershipStrategy:
    """Decides which rows an actor may read, update and archive.

    Each hook returns an extra WHERE clause, or None for "no restriction".
    """

    name = "base"

    def __init__(self, owner_field: str = "created_by", patient_field: str = "patient_id"):
        self.owner_field = owner_field
        self.patient_field = patient_field

    def owner_column(self, model):
        return getattr(model, self.owner_field)

    def patient_column(self, model):
        return getattr(model, self.patient_field)

    def _own_patient_only(self, model, actor: Actor) -> ColumnElement:
        if actor.patient_id is None:
            return false()
        return self.patient_column(model) == actor.patient_id

    def read_clause(self, model, actor: Actor) -> Optional[ColumnElement]:
        raise NotImplementedError

    def write_clause(self, model, actor: Actor) -> Optional[ColumnElement]:
        raise NotImplementedError

    def archive_clause(self, model, actor: Actor) -> Optional[ColumnElement]:
        if actor.is_admin:
            return None
        return self.owner_column(model) == actor.id

    def can_view_archived(self, record, actor: Actor) -> bool:
        return actor.is_admin or getattr(record, self.owner_field) == actor.id


class SingleOwnerStrategy(OwnershipStrategy):
    """Only the creator sees or touches a record; admins read everything."""

    name = "single_owner"

    def read_clause(self, model, actor: Actor) -> Optional[ColumnElement]:
        if actor.is_admin:
            return None
        return self.owner_column(model) == actor.id

    def write_clause(self, model, actor: Actor) -> Optional[ColumnElement]:
        return self.owner_column(model) == actor.id


class CohortSharedStrategy(OwnershipStrategy):
    """All staff read; only the creator edits. Patients read their own records."""

    name = "cohort_shared"

    def read_clause(self, model, actor: Actor) -> Optional[ColumnElement]:
        if actor.is_patient:
            return self._own_patient_only(model, actor)
        return None

    def write_clause(self, model, actor: Actor) -> Optional[ColumnElement]:
        return self.owner_column(model) == actor.id


class PatientScopedStrategy(OwnershipStrategy):
    """Any staff member admitted by policy may read and write; patients are
    confined to records of their own patient."""

    name = "patient_scoped"

    def read_clause(self, model, actor: Actor) -> Optional[ColumnElement]:
        if actor.is_patient:
            return self._own_patient_only(model, actor)
        return None

    def write_clause(self, model, actor: Actor) -> Optional[ColumnElement]:
        if actor.is_patient:
            return self._own_patient_only(model, actor)
        return None

    def archive_clause(self, model, actor: Actor) -> Optional[ColumnElement]:
        return self.write_clause(model, actor)


class ScopedRecordService(BaseService):
    """CRUD + search + archive over one archivable model."""

    #: Columns scanned by search(), in order
    search_fields: Sequence[str] = ()
    #: Whether search() distinguishes "Knee" from "knee"
    case_sensitive_search: bool = False
    #: Column used for newest-first ordering
    order_field: str = "created_at"

    def __init__(
        self,
        model: Type[ModelType],
        strategy: OwnershipStrategy,
        logger_name: Optional[str] = None,
    ):
        super().__init__(model, logger_name)
        self.strategy = strategy

    # Hooks

    def stamp_owner(self, data: Dict[str, Any], actor: Actor) -> Dict[str, Any]:
        """Fill ownership columns from the actor; callers cannot supply them."""
        data[self.strategy.owner_field] = actor.id
        return data

    def _order_by(self) -> list:
        return [getattr(self.model, self.order_field).desc(), self.model.created_at.desc()]

    def _scope(self, actor: Actor, clause_name: str = "read_clause") -> List[ColumnElement]:
        clause = getattr(self.strategy, clause_name)(self.model, actor)
        return [] if clause is None else [clause]

    def visibility_conditions(self, actor: Actor) -> List[ColumnElement]:
        """Extra read filters on top of the ownership scope, e.g. hiding PRIVATE rows."""
        return []

    def _read_conditions(self, actor: Actor) -> List[ColumnElement]:
        return [*self._scope(actor), *self.visibility_conditions(actor)]

    def _active_conditions(self, actor: Actor) -> List[ColumnElement]:
        return [self.model.is_archived.is_(False), *self._read_conditions(actor)]

    # Operations

    async def create(
        self, db: AsyncSession, data: Dict[str, Any], actor: Actor
    ) -> ModelType:
        data = {k: v for k, v in data.items() if k not in ("is_archived", "archived_at")}
        return await self.create_from_dict(db, self.stamp_owner(data, actor))

    async def get_by_id(self, db: AsyncSession, id: UUID, actor: Actor) -> ModelType:
        """Fetch one visible record.

        Archived records are returned only to their owner or an admin.
        """
        query = select(self.model).where(self.model.id == id, *self._read_conditions(actor))
        record = (await db.execute(query)).scalar_one_or_none()
        if record is None:
            raise NotFoundException(f"{self.entity_name} not found")
        if record.is_archived and not self.strategy.can_view_archived(record, actor):
            raise NotFoundException(f"{self.entity_name} not found")
        return record

    async def list_visible(
        self,
        db: AsyncSession,
        actor: Actor,
        page: int = 1,
        limit: int = 50,
        extra_conditions: Sequence[ColumnElement] = (),
    ) -> Tuple[List[ModelType], dict]:
        return await self.paginate(
            db,
            [*self._active_conditions(actor), *extra_conditions],
            self._order_by(),
            page,
            limit,
        )

    async def list_by_parent(
        self,
        db: AsyncSession,
        parent_field: str,
        parent_id: UUID,
        actor: Actor,
        page: int = 1,
        limit: int = 50,
    ) -> Tuple[List[ModelType], dict]:
        parent_column = getattr(self.model, parent_field)
        return await self.list_visible(
            db, actor, page, limit, extra_conditions=[parent_column == parent_id]
        )

    async def update(
        self, db: AsyncSession, id: UUID, actor: Actor, patch: Dict[str, Any]
    ) -> ModelType:
        """Conditional UPDATE on id + owner scope; zero rows is a 404."""
        rejected = IMMUTABLE_FIELDS.intersection(patch)
        if rejected:
            self.logger.warning(
                f"Dropping immutable fields from {self.entity_name} update: {sorted(rejected)}"
            )
        values = {k: v for k, v in patch.items() if k not in IMMUTABLE_FIELDS}
        if not values:
            raise BadRequestException("No updatable fields provided")

        return await self._conditional_update(
            db, id, actor, "write_clause", values, "update"
        )

    async def archive(self, db: AsyncSession, id: UUID, actor: Actor) -> ModelType:
        """Soft delete. There is no reverse operation."""
        record = await self._conditional_update(
            db,
            id,
            actor,
            "archive_clause",
            {"is_archived": True, "archived_at": utcnow()},
            "archive",
        )
        return record

    async def _conditional_update(
        self,
        db: AsyncSession,
        id: UUID,
        actor: Actor,
        clause_name: str,
        values: Dict[str, Any],
        operation: str,
    ) -> ModelType:
        stmt = (
            update(self.model)
            .where(
                self.model.id == id,
                self.model.is_archived.is_(False),
                *self._scope(actor, clause_name),
            )
            .values(**values)
            .returning(self.model)
            .execution_options(synchronize_session="fetch")
        )
        try:
            result = await db.execute(stmt)
            record = result.scalar_one_or_none()
            if record is None:
                raise NotFoundException(f"{self.entity_name} not found")
            await db.commit()
            await db.refresh(record)
        except SQLAlchemyError as e:
            await handle_db_exception(db, self.logger, f"{operation} {self.entity_name}", e)

        self.logger.info(f"{operation.capitalize()}d {self.entity_name} {id} by {actor.id}")
        return record

    async def search(
        self,
        db: AsyncSession,
        query: str,
        actor: Actor,
        limit: int = SEARCH_RESULT_CAP,
        extra_conditions: Sequence[ColumnElement] = (),
    ) -> List[ModelType]:
        """Substring search across search_fields, newest first, at most 50 rows."""
        query = (query or "").strip()
        if not query:
            raise BadRequestException("Search query is required")

        dialect = db.get_bind().dialect.name
        columns = [getattr(self.model, name) for name in self.search_fields]
        statement = (
            select(self.model)
            .where(
                *self._active_conditions(actor),
                *extra_conditions,
                any_field_matches(columns, query, dialect, self.case_sensitive_search),
            )
            .order_by(*self._order_by())
            .limit(min(max(limit, 1), SEARCH_RESULT_CAP))
        )
        result = await db.execute(statement)
        return list(result.scalars().all())

    async def count_visible(self, db: AsyncSession, actor: Actor) -> int:
        query = select(func.count()).select_from(self.model).where(
            *self._active_conditions(actor)
        )
        return (await db.execute(query)).scalar_one()
