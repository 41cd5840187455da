# src/models/private_note.py
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
    JSON,
    Index,
    Uuid,
)
from db.database import Base
from models.user import UserRole
from utils.datetime_utils import utcnow


class PrivateNote(Base):
    """Clinician-only notes; never exposed to patients."""

    __tablename__ = "private_notes"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    patient_id = Column(
        Uuid, ForeignKey("patients.id", ondelete="CASCADE"), nullable=False
    )
    follow_up_id = Column(
        Uuid, ForeignKey("follow_ups.id", ondelete="SET NULL"), nullable=True
    )
    surgery_id = Column(
        Uuid, ForeignKey("surgeries.id", ondelete="SET NULL"), nullable=True
    )

    title = Column(String(255), nullable=True)
    content = Column(Text, nullable=False)

    # Creator snapshot; immutable after insert
    created_by = Column(Uuid, ForeignKey("users.id"), nullable=False)
    created_by_role = Column(Enum(UserRole), nullable=False)
    created_by_name = Column(String(150), nullable=False)

    # Voice notes
    audio_url = Column(String(500), nullable=True)
    audio_duration = Column(Integer, nullable=True)  # seconds
    has_transcription = Column(Boolean, default=False, nullable=False)
    transcription_text = Column(Text, nullable=True)

    attachments = Column(JSON, default=list)

    is_archived = Column(Boolean, default=False, nullable=False)
    archived_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)

    __table_args__ = (
        Index("ix_private_notes_patient_id", "patient_id"),
        Index("ix_private_notes_created_by", "created_by"),
        Index("ix_private_notes_follow_up_id", "follow_up_id"),
        Index("ix_private_notes_surgery_id", "surgery_id"),
    )
