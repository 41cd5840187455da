# src/models/media.py
import uuid
from sqlalchemy import (
    Column,
    String,
    ForeignKey,
    Text,
    DateTime,
    Enum,
    Boolean,
    BigInteger,
    Index,
    Uuid,
)
from enum import Enum as PyEnum
from db.database import Base
from models.surgery import Visibility
from models.user import UserRole
from utils.datetime_utils import utcnow


class FileType(str, PyEnum):
    IMAGE = "IMAGE"
    VIDEO = "VIDEO"
    AUDIO = "AUDIO"
    DOCUMENT = "DOCUMENT"


class Media(Base):
    __tablename__ = "media"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    patient_id = Column(Uuid, ForeignKey("patients.id"), nullable=True)
    follow_up_id = Column(
        Uuid, ForeignKey("follow_ups.id", ondelete="SET NULL"), nullable=True
    )

    uploaded_by = Column(Uuid, ForeignKey("users.id"), nullable=False)
    uploaded_by_role = Column(Enum(UserRole), nullable=False)

    # File details
    file_name = Column(String(255), nullable=False)  # original client name
    stored_name = Column(String(255), nullable=False, unique=True)
    file_url = Column(String(500), nullable=False)
    file_type = Column(Enum(FileType), nullable=False)
    mime_type = Column(String(100), nullable=False)
    file_size = Column(BigInteger, nullable=False)

    description = Column(Text, nullable=True)
    visibility = Column(Enum(Visibility), default=Visibility.PUBLIC, nullable=False)

    has_transcription = Column(Boolean, default=False, nullable=False)
    transcription_text = Column(Text, nullable=True)

    is_archived = Column(Boolean, default=False, nullable=False)
    archived_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)

    __table_args__ = (
        Index("ix_media_patient_id", "patient_id"),
        Index("ix_media_follow_up_id", "follow_up_id"),
        Index("ix_media_uploaded_by", "uploaded_by"),
    )
