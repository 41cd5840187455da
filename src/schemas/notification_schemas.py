# src/schemas/notification_schemas.py
from typing import Optional
from datetime import datetime
from uuid import UUID
from models.notification import NotificationType, NotificationPriority
from .base_schemas import BaseSchema, IDMixin


class NotificationResponse(IDMixin):
    recipient_id: UUID
    type: NotificationType
    title: str
    message: str
    entity_type: Optional[str] = None
    entity_id: Optional[UUID] = None
    priority: NotificationPriority
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime
