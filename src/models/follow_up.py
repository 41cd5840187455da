# src/models/follow_up.py
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
from models.surgery import Visibility
from utils.datetime_utils import utcnow


class FollowUpStatus(str, PyEnum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    MISSED = "MISSED"
    CANCELLED = "CANCELLED"


class FollowUp(Base):
    __tablename__ = "follow_ups"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    surgery_id = Column(
        Uuid, ForeignKey("surgeries.id", ondelete="CASCADE"), nullable=False
    )
    # Copied from the surgery so patient-scoped reads need no join
    patient_id = Column(Uuid, ForeignKey("patients.id"), nullable=False)
    doctor_id = Column(Uuid, ForeignKey("users.id"), nullable=False)

    follow_up_date = Column(DateTime(timezone=True), nullable=False)
    scheduled_time = Column(String(10), nullable=True)  # "HH:MM"
    description = Column(Text, nullable=True)
    observations = Column(Text, nullable=True)
    status = Column(
        Enum(FollowUpStatus), default=FollowUpStatus.PENDING, nullable=False
    )
    visibility = Column(Enum(Visibility), default=Visibility.PUBLIC, nullable=False)

    created_by = Column(Uuid, ForeignKey("users.id"), nullable=False)

    is_archived = Column(Boolean, default=False, nullable=False)
    archived_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)

    __table_args__ = (
        Index("ix_follow_ups_surgery_id", "surgery_id"),
        Index("ix_follow_ups_patient_id", "patient_id"),
        Index("ix_follow_ups_doctor_status", "doctor_id", "status"),
    )
