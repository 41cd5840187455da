# src/models/reminder.py
import uuid
from sqlalchemy import (
    Column,
    String,
    ForeignKey,
    Text,
    DateTime,
    Enum,
    Boolean,
    Integer,
    Float,
    Index,
    Uuid,
)
from enum import Enum as PyEnum
from db.database import Base
from models.user import UserRole
from utils.datetime_utils import utcnow


class ReminderChannel(str, PyEnum):
    EMAIL = "EMAIL"
    WHATSAPP = "WHATSAPP"
    IN_APP = "IN_APP"


class ReminderStatus(str, PyEnum):
    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class Reminder(Base):
    __tablename__ = "reminders"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    # Polymorphic target, e.g. ("FOLLOW_UP", <id>)
    entity_type = Column(String(50), nullable=False)
    entity_id = Column(Uuid, nullable=False)
    follow_up_id = Column(
        Uuid, ForeignKey("follow_ups.id", ondelete="CASCADE"), nullable=True
    )

    recipient_id = Column(Uuid, ForeignKey("users.id"), nullable=False)
    recipient_role = Column(Enum(UserRole), nullable=False)
    recipient_name = Column(String(150), nullable=True)
    recipient_phone = Column(String(20), nullable=True)

    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    scheduled_for = Column(DateTime(timezone=True), nullable=False)
    channel = Column(
        Enum(ReminderChannel), default=ReminderChannel.WHATSAPP, nullable=False
    )
    status = Column(
        Enum(ReminderStatus), default=ReminderStatus.PENDING, nullable=False
    )

    is_recurring = Column(Boolean, default=False, nullable=False)
    recurring_pattern = Column(String(50), nullable=True)
    days_before = Column(Float, nullable=True)

    # Delivery tracking
    attempts = Column(Integer, default=0, nullable=False)
    last_attempt_at = Column(DateTime(timezone=True), nullable=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    error_message = Column(Text, nullable=True)

    created_by = Column(Uuid, ForeignKey("users.id"), nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)

    __table_args__ = (
        Index("ix_reminders_status_scheduled", "status", "scheduled_for"),
        Index("ix_reminders_recipient_id", "recipient_id"),
        Index("ix_reminders_follow_up_id", "follow_up_id"),
    )
