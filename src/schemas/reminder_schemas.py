# src/schemas/reminder_schemas.py
from pydantic import Field
from typing import List, Optional
from datetime import datetime
from uuid import UUID
from models.reminder import ReminderChannel, ReminderStatus
from models.user import UserRole
from .base_schemas import BaseSchema, TimestampMixin, IDMixin


class ReminderCreate(BaseSchema):
    entity_type: str = Field(..., max_length=50)
    entity_id: UUID
    follow_up_id: Optional[UUID] = None
    recipient_id: UUID
    recipient_phone: Optional[str] = Field(None, max_length=20)
    title: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1)
    scheduled_for: datetime
    channel: ReminderChannel = ReminderChannel.WHATSAPP
    is_recurring: bool = False
    recurring_pattern: Optional[str] = None


class FollowUpRemindersCreate(BaseSchema):
    follow_up_id: UUID
    days_before: List[float] = Field(..., min_length=1)
    channels: List[ReminderChannel] = Field(
        default_factory=lambda: [ReminderChannel.WHATSAPP]
    )


class ReminderUpdate(BaseSchema):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    message: Optional[str] = Field(None, min_length=1)
    scheduled_for: Optional[datetime] = None
    channel: Optional[ReminderChannel] = None
    recipient_phone: Optional[str] = Field(None, max_length=20)


class ReminderResponse(IDMixin, TimestampMixin):
    entity_type: str
    entity_id: UUID
    follow_up_id: Optional[UUID] = None
    recipient_id: UUID
    recipient_role: UserRole
    recipient_name: Optional[str] = None
    recipient_phone: Optional[str] = None
    title: str
    message: str
    scheduled_for: datetime
    channel: ReminderChannel
    status: ReminderStatus
    is_recurring: bool
    recurring_pattern: Optional[str] = None
    days_before: Optional[float] = None
    attempts: int
    last_attempt_at: Optional[datetime] = None
    sent_at: Optional[datetime] = None
    error_message: Optional[str] = None
    created_by: UUID


class ReminderResult(BaseSchema):
    reminder_id: UUID
    channel: ReminderChannel
    success: bool
    error: Optional[str] = None


class BatchProcessResult(BaseSchema):
    total: int
    sent: int
    failed: int
    results: List[ReminderResult]
