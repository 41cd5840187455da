# src/models/document_request.py
import uuid
from sqlalchemy import (
    Column,
    String,
    ForeignKey,
    Text,
    DateTime,
    Enum,
    Index,
    Uuid,
)
from enum import Enum as PyEnum
from db.database import Base
from utils.datetime_utils import utcnow


class DocumentRequestStatus(str, PyEnum):
    PENDING = "PENDING"
    UPLOADED = "UPLOADED"
    CANCELLED = "CANCELLED"


class DocumentRequest(Base):
    __tablename__ = "document_requests"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    patient_id = Column(
        Uuid, ForeignKey("patients.id", ondelete="CASCADE"), nullable=False
    )
    surgeon_id = Column(Uuid, ForeignKey("users.id"), nullable=True)
    follow_up_id = Column(
        Uuid, ForeignKey("follow_ups.id", ondelete="SET NULL"), nullable=True
    )

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(50), nullable=True)  # e.g. "lab_report", "x_ray"

    status = Column(
        Enum(DocumentRequestStatus),
        default=DocumentRequestStatus.PENDING,
        nullable=False,
    )
    uploaded_media_id = Column(
        Uuid, ForeignKey("media.id", ondelete="SET NULL"), nullable=True
    )

    requested_by = Column(Uuid, ForeignKey("users.id"), nullable=False)
    requested_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    uploaded_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)

    __table_args__ = (
        Index("ix_document_requests_patient_status", "patient_id", "status"),
        Index("ix_document_requests_requested_by", "requested_by"),
    )
