# src/services/audit_log_service.py
from collections import Counter
from datetime import timedelta
from typing import Any, Dict, List, Optional, Tuple, Union
from uuid import UUID

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.policy import Actor
from models.audit_log import AuditAction, AuditLog
from schemas.audit_log_schemas import AuditLogCreate, AuditLogFilters
from utils.datetime_utils import as_utc, utcnow
from utils.exceptions import BadRequestException, NotFoundException, handle_db_exception
from utils.logger import setup_logger
from .base_service import BaseService

logger = setup_logger("AUDIT_LOG_SERVICE")

EXPORT_ROW_LIMIT = 10000


def client_ip(request: Optional[Request]) -> Optional[str]:
    if request is None:
        return None
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


class AuditLogService(BaseService):
    def __init__(self):
        super().__init__(AuditLog, "AUDIT_LOG_SERVICE")

    async def create_log(
        self, db: AsyncSession, data: Union[AuditLogCreate, Dict[str, Any]]
    ) -> Optional[AuditLog]:
        """Append one entry. A failed write is logged and never propagates."""
        if isinstance(data, AuditLogCreate):
            data = data.model_dump()
        try:
            entry = AuditLog(**data)
            db.add(entry)
            await db.commit()
            return entry
        except Exception as e:
            await db.rollback()
            logger.error(f"Failed to write audit log: {e}", exc_info=True)
            return None

    async def log_event(
        self,
        db: AsyncSession,
        request: Optional[Request],
        actor: Optional[Actor],
        action: AuditAction,
        entity_type: str,
        entity_id: Optional[Any] = None,
        description: Optional[str] = None,
        changes: Optional[Dict[str, Any]] = None,
        success: bool = True,
        error_message: Optional[str] = None,
    ) -> Optional[AuditLog]:
        """Record an action together with the request that caused it."""
        return await self.create_log(
            db,
            {
                "user_id": actor.id if actor else None,
                "action": action,
                "entity_type": entity_type,
                "entity_id": str(entity_id) if entity_id is not None else None,
                "changes": jsonable_encoder(changes) if changes else None,
                "description": description,
                "ip_address": client_ip(request),
                "user_agent": request.headers.get("user-agent") if request else None,
                "request_method": request.method if request else None,
                "request_path": request.url.path if request else None,
                "success": success,
                "error_message": error_message,
            },
        )

    def _conditions(self, filters: AuditLogFilters) -> list:
        conditions = []
        if filters.user_id:
            conditions.append(AuditLog.user_id == filters.user_id)
        if filters.action:
            conditions.append(AuditLog.action == filters.action)
        if filters.entity_type:
            conditions.append(AuditLog.entity_type == filters.entity_type)
        if filters.entity_id:
            conditions.append(AuditLog.entity_id == filters.entity_id)
        if filters.success is not None:
            conditions.append(AuditLog.success.is_(filters.success))
        if filters.start_date:
            conditions.append(AuditLog.created_at >= filters.start_date)
        if filters.end_date:
            conditions.append(AuditLog.created_at <= filters.end_date)
        if filters.search:
            conditions.append(
                or_(
                    AuditLog.description.icontains(filters.search, autoescape=True),
                    AuditLog.entity_id.icontains(filters.search, autoescape=True),
                    AuditLog.entity_type.icontains(filters.search, autoescape=True),
                )
            )
        return conditions

    async def get_logs(
        self,
        db: AsyncSession,
        filters: AuditLogFilters,
        page: int = 1,
        limit: int = 50,
    ) -> Tuple[List[AuditLog], dict]:
        return await self.paginate(
            db, self._conditions(filters), [AuditLog.created_at.desc()], page, limit
        )

    async def get_log_by_id(self, db: AsyncSession, log_id: UUID) -> AuditLog:
        entry = await self.get(db, log_id)
        if entry is None:
            raise NotFoundException("Audit log not found")
        return entry

    async def get_logs_by_entity(
        self, db: AsyncSession, entity_type: str, entity_id: str
    ) -> List[AuditLog]:
        result = await db.execute(
            select(AuditLog)
            .where(AuditLog.entity_type == entity_type, AuditLog.entity_id == entity_id)
            .order_by(AuditLog.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_logs_by_user(
        self, db: AsyncSession, user_id: UUID, page: int = 1, limit: int = 50
    ) -> Tuple[List[AuditLog], dict]:
        return await self.paginate(
            db, [AuditLog.user_id == user_id], [AuditLog.created_at.desc()], page, limit
        )

    async def get_stats(
        self, db: AsyncSession, filters: Optional[AuditLogFilters] = None, days: int = 7
    ) -> Dict[str, Any]:
        conditions = self._conditions(filters or AuditLogFilters())

        total = (
            await db.execute(select(func.count()).select_from(AuditLog).where(*conditions))
        ).scalar_one()

        action_rows = await db.execute(
            select(AuditLog.action, func.count())
            .where(*conditions)
            .group_by(AuditLog.action)
        )
        entity_rows = await db.execute(
            select(AuditLog.entity_type, func.count())
            .where(*conditions)
            .group_by(AuditLog.entity_type)
        )
        succeeded = (
            await db.execute(
                select(func.count())
                .select_from(AuditLog)
                .where(*conditions, AuditLog.success.is_(True))
            )
        ).scalar_one()

        # Day buckets are computed here so the query stays dialect neutral
        since = utcnow() - timedelta(days=days)
        recent = await db.execute(
            select(AuditLog.created_at).where(*conditions, AuditLog.created_at >= since)
        )
        per_day = Counter(as_utc(ts).date().isoformat() for (ts,) in recent.all())
        today = utcnow().date()
        recent_activity = [
            {"date": day, "count": per_day.get(day, 0)}
            for day in (
                (today - timedelta(days=offset)).isoformat()
                for offset in range(days - 1, -1, -1)
            )
        ]

        return {
            "total_logs": total,
            "action_counts": {
                (a.value if isinstance(a, AuditAction) else str(a)): n
                for a, n in action_rows.all()
            },
            "entity_type_counts": {e: n for e, n in entity_rows.all()},
            "success_rate": round(succeeded / total * 100, 2) if total else 0.0,
            "recent_activity": recent_activity,
        }

    async def export_logs(
        self, db: AsyncSession, filters: AuditLogFilters
    ) -> List[AuditLog]:
        result = await db.execute(
            select(AuditLog)
            .where(*self._conditions(filters))
            .order_by(AuditLog.created_at.desc())
            .limit(EXPORT_ROW_LIMIT)
        )
        return list(result.scalars().all())

    async def get_entity_types(self, db: AsyncSession) -> List[str]:
        result = await db.execute(
            select(AuditLog.entity_type).distinct().order_by(AuditLog.entity_type)
        )
        return [row[0] for row in result.all()]

    async def delete_old_logs(self, db: AsyncSession, days: int) -> int:
        """Retention cleanup: remove entries older than `days` days."""
        minimum = settings.AUDIT_LOG_MIN_RETENTION_DAYS
        if days is None or days < minimum:
            raise BadRequestException(
                f"Days must be a number greater than or equal to {minimum}"
            )

        cutoff = utcnow() - timedelta(days=days)
        try:
            result = await db.execute(delete(AuditLog).where(AuditLog.created_at < cutoff))
            await db.commit()
        except SQLAlchemyError as e:
            await handle_db_exception(db, logger, "audit log cleanup", e)

        deleted = result.rowcount or 0
        logger.info(f"Deleted {deleted} audit logs older than {days} days")
        return deleted


audit_log_service = AuditLogService()
