# src/schemas/follow_up_schemas.py
from pydantic import Field, field_validator
from typing import List, Optional
from datetime import datetime
from uuid import UUID
from models.follow_up import FollowUpStatus
from models.reminder import ReminderChannel
from models.surgery import Visibility
from .base_schemas import BaseSchema, TimestampMixin, IDMixin, ArchiveMixin


class FollowUpBase(BaseSchema):
    follow_up_date: datetime
    scheduled_time: Optional[str] = Field(None, pattern=r"^\d{2}:\d{2}$")
    description: Optional[str] = None
    observations: Optional[str] = None
    visibility: Visibility = Visibility.PUBLIC


class FollowUpCreate(FollowUpBase):
    surgery_id: UUID
    doctor_id: Optional[UUID] = None
    # Days before the follow-up to remind the patient; fractions allowed
    reminder_days: List[float] = Field(default_factory=list)
    reminder_channels: List[ReminderChannel] = Field(
        default_factory=lambda: [ReminderChannel.WHATSAPP]
    )

    @field_validator("reminder_days")
    @classmethod
    def positive_days(cls, v: List[float]) -> List[float]:
        if any(d <= 0 for d in v):
            raise ValueError("Reminder days must be positive")
        return v


class FollowUpUpdate(BaseSchema):
    follow_up_date: Optional[datetime] = None
    scheduled_time: Optional[str] = Field(None, pattern=r"^\d{2}:\d{2}$")
    description: Optional[str] = None
    observations: Optional[str] = None
    visibility: Optional[Visibility] = None


class FollowUpStatusUpdate(BaseSchema):
    status: FollowUpStatus
    observations: Optional[str] = None


class FollowUpResponse(IDMixin, FollowUpBase, ArchiveMixin, TimestampMixin):
    surgery_id: UUID
    patient_id: UUID
    doctor_id: UUID
    status: FollowUpStatus
    created_by: UUID
