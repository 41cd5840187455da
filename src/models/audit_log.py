# src/models/audit_log.py
import uuid
from sqlalchemy import (
    Column,
    String,
    DateTime,
    Text,
    JSON,
    Enum,
    Boolean,
    Index,
    Uuid,
)
from enum import Enum as PyEnum
from db.database import Base
from utils.datetime_utils import utcnow


class AuditAction(str, PyEnum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    VIEW = "VIEW"
    HIDE = "HIDE"
    ARCHIVE = "ARCHIVE"
    DELETE = "DELETE"
    EXPORT = "EXPORT"
    SHARE = "SHARE"
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"


class AuditLog(Base):
    """Append-only; rows leave only through retention cleanup."""

    __tablename__ = "audit_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    # No FK: logs must outlive the accounts they mention
    user_id = Column(Uuid, nullable=True)

    action = Column(Enum(AuditAction), nullable=False)
    entity_type = Column(String(50), nullable=False)  # e.g. "PATIENT", "PRIVATE_NOTE"
    entity_id = Column(String(64), nullable=True)

    changes = Column(JSON, nullable=True)
    description = Column(Text, nullable=True)

    # Request context
    ip_address = Column(String(45), nullable=True)  # Supports IPv6
    user_agent = Column(Text, nullable=True)
    request_method = Column(String(10), nullable=True)
    request_path = Column(String(500), nullable=True)

    success = Column(Boolean, default=True, nullable=False)
    error_message = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_audit_logs_entity", "entity_type", "entity_id"),
        Index("ix_audit_logs_created_at", "created_at"),
        Index("ix_audit_logs_user_id", "user_id"),
        Index("ix_audit_logs_action", "action"),
    )
