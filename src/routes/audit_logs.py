# src/routes/audit_logs.py
from datetime import datetime
from fastapi import APIRouter, Depends, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any, List, Optional
from uuid import UUID
from core.dependencies import PolicyChecker
from core.policy import Action, Actor, Resource
from db.database import get_db
from models.audit_log import AuditAction
from schemas.audit_log_schemas import (
    AuditLogFilters,
    AuditLogResponse,
    AuditLogStats,
    CleanupResult,
)
from schemas.base_schemas import DataResponse, ListResponse, PaginatedResponse
from services.audit_log_service import audit_log_service
from utils.datetime_utils import utcnow
from utils.responses import data_response, list_response, paginated_response
from utils.logger import setup_logger

router = APIRouter(prefix="/audit-logs", tags=["audit-logs"])
logger = setup_logger("AUDIT_LOG_ROUTES")


def audit_filters(
    user_id: Optional[UUID] = Query(None),
    action: Optional[AuditAction] = Query(None),
    entity_type: Optional[str] = Query(None),
    entity_id: Optional[str] = Query(None),
    success: Optional[bool] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    search: Optional[str] = Query(None),
) -> AuditLogFilters:
    return AuditLogFilters(
        user_id=user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        success=success,
        start_date=start_date,
        end_date=end_date,
        search=search,
    )


@router.get(
    "",
    response_model=PaginatedResponse[AuditLogResponse],
    summary="List audit logs",
)
async def list_audit_logs(
    filters: AuditLogFilters = Depends(audit_filters),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.AUDIT_LOG, Action.LIST)),
) -> Any:
    logs, meta = await audit_log_service.get_logs(db, filters, page, limit)
    return paginated_response(AuditLogResponse, logs, meta)


@router.get(
    "/stats",
    response_model=DataResponse[AuditLogStats],
    summary="Audit statistics",
)
async def audit_stats(
    filters: AuditLogFilters = Depends(audit_filters),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.AUDIT_LOG, Action.STATS)),
) -> Any:
    stats = await audit_log_service.get_stats(db, filters)
    return DataResponse[AuditLogStats](data=AuditLogStats(**stats))


@router.get(
    "/export",
    summary="Export audit logs",
    description="All logs matching the filters as a downloadable JSON file",
)
async def export_audit_logs(
    request: Request,
    filters: AuditLogFilters = Depends(audit_filters),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.AUDIT_LOG, Action.EXPORT)),
) -> Any:
    logs = await audit_log_service.export_logs(db, filters)
    exported_at = utcnow()
    body = {
        "exportedAt": exported_at.isoformat(),
        "count": len(logs),
        "filters": filters.model_dump(exclude_none=True),
        "logs": [AuditLogResponse.model_validate(log) for log in logs],
    }
    await audit_log_service.log_event(
        db,
        request,
        actor,
        AuditAction.EXPORT,
        "AUDIT_LOG",
        description=f"Exported {len(logs)} audit logs",
    )
    filename = f"audit-logs-{exported_at.strftime('%Y%m%d-%H%M%S')}.json"
    return JSONResponse(
        content=jsonable_encoder(body),
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/actions", response_model=ListResponse[str], summary="Audit action names")
async def list_actions(
    actor: Actor = Depends(PolicyChecker(Resource.AUDIT_LOG, Action.LIST)),
) -> Any:
    actions: List[str] = [a.value for a in AuditAction]
    return ListResponse[str](data=actions, count=len(actions))


@router.get("/entity-types", response_model=ListResponse[str], summary="Logged entity types")
async def list_entity_types(
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.AUDIT_LOG, Action.LIST)),
) -> Any:
    entity_types = await audit_log_service.get_entity_types(db)
    return ListResponse[str](data=entity_types, count=len(entity_types))


@router.delete(
    "/cleanup",
    response_model=DataResponse[CleanupResult],
    summary="Delete old audit logs",
    description="Remove entries older than `days` days (minimum 30)",
)
async def cleanup_audit_logs(
    request: Request,
    days: int = Query(90),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.AUDIT_LOG, Action.CLEANUP)),
) -> Any:
    deleted = await audit_log_service.delete_old_logs(db, days)
    await audit_log_service.log_event(
        db,
        request,
        actor,
        AuditAction.DELETE,
        "AUDIT_LOG",
        description=f"Retention cleanup removed {deleted} logs older than {days} days",
    )
    return DataResponse[CleanupResult](
        data=CleanupResult(deleted_count=deleted, days=days),
        message=f"Deleted {deleted} audit logs",
    )


@router.get(
    "/entity/{entity_type}/{entity_id}",
    response_model=ListResponse[AuditLogResponse],
    summary="History of one record",
)
async def entity_history(
    entity_type: str,
    entity_id: str,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.AUDIT_LOG, Action.READ)),
) -> Any:
    logs = await audit_log_service.get_logs_by_entity(db, entity_type, entity_id)
    return list_response(AuditLogResponse, logs)


@router.get(
    "/user/{user_id}",
    response_model=PaginatedResponse[AuditLogResponse],
    summary="Actions by one user",
)
async def user_activity(
    user_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.AUDIT_LOG, Action.READ)),
) -> Any:
    logs, meta = await audit_log_service.get_logs_by_user(db, user_id, page, limit)
    return paginated_response(AuditLogResponse, logs, meta)


@router.get(
    "/{log_id}",
    response_model=DataResponse[AuditLogResponse],
    summary="Get audit log",
)
async def get_audit_log(
    log_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.AUDIT_LOG, Action.READ)),
) -> Any:
    log = await audit_log_service.get_log_by_id(db, log_id)
    return data_response(AuditLogResponse, log)
