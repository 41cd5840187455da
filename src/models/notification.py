# src/models/notification.py
import uuid
from sqlalchemy import (
    Column,
    String,
    ForeignKey,
    Text,
    DateTime,
    Enum,
    Boolean,
    Index,
    Uuid,
)
from enum import Enum as PyEnum
from db.database import Base
from models.user import UserRole
from utils.datetime_utils import utcnow


class NotificationType(str, PyEnum):
    DOCUMENT_REQUEST = "DOCUMENT_REQUEST"
    DOCUMENT_UPLOADED = "DOCUMENT_UPLOADED"
    FOLLOW_UP_REMINDER = "FOLLOW_UP_REMINDER"
    GENERAL = "GENERAL"


class NotificationPriority(str, PyEnum):
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    recipient_id = Column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    recipient_role = Column(Enum(UserRole), nullable=False)

    type = Column(Enum(NotificationType), default=NotificationType.GENERAL, nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)

    entity_type = Column(String(50), nullable=True)
    entity_id = Column(Uuid, nullable=True)
    priority = Column(
        Enum(NotificationPriority), default=NotificationPriority.NORMAL, nullable=False
    )

    is_read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_notifications_recipient_read", "recipient_id", "is_read"),
    )
