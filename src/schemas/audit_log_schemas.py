# src/schemas/audit_log_schemas.py
from typing import Any, Dict, List, Optional
from datetime import datetime
from uuid import UUID
from models.audit_log import AuditAction
from .base_schemas import BaseSchema, IDMixin


class AuditLogCreate(BaseSchema):
    user_id: Optional[UUID] = None
    action: AuditAction
    entity_type: str
    entity_id: Optional[str] = None
    changes: Optional[Dict[str, Any]] = None
    description: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    request_method: Optional[str] = None
    request_path: Optional[str] = None
    success: bool = True
    error_message: Optional[str] = None


class AuditLogResponse(IDMixin):
    user_id: Optional[UUID] = None
    action: AuditAction
    entity_type: str
    entity_id: Optional[str] = None
    changes: Optional[Dict[str, Any]] = None
    description: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    request_method: Optional[str] = None
    request_path: Optional[str] = None
    success: bool
    error_message: Optional[str] = None
    created_at: datetime


class AuditLogFilters(BaseSchema):
    user_id: Optional[UUID] = None
    action: Optional[AuditAction] = None
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    success: Optional[bool] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    search: Optional[str] = None


class DailyActivity(BaseSchema):
    date: str
    count: int


class AuditLogStats(BaseSchema):
    total_logs: int
    action_counts: Dict[str, int]
    entity_type_counts: Dict[str, int]
    success_rate: float
    recent_activity: List[DailyActivity]


class CleanupResult(BaseSchema):
    deleted_count: int
    days: int
