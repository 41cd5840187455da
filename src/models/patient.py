# src/models/patient.py
import uuid
from sqlalchemy import Column, String, ForeignKey, Text, DateTime, Boolean, Index, Uuid
from db.database import Base
from utils.datetime_utils import utcnow


class Patient(Base):
    __tablename__ = "patients"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False, unique=True)

    # PAT-YYYY-NNNN
    patient_number = Column(String(20), nullable=False, unique=True)
    cnic = Column(String(20), nullable=False, unique=True)

    # Personal information
    full_name = Column(String(150), nullable=False)
    father_name = Column(String(150), nullable=True)
    email = Column(String(100), nullable=False)

    # Contact information
    contact_number = Column(String(20), nullable=False)
    whatsapp_number = Column(String(20), nullable=True)
    address = Column(Text, nullable=True)

    assigned_doctor_id = Column(Uuid, ForeignKey("users.id"), nullable=True)

    # Audit fields
    created_by = Column(Uuid, ForeignKey("users.id"), nullable=False)

    # Archive
    is_archived = Column(Boolean, default=False, nullable=False)
    archived_at = Column(DateTime(timezone=True), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)

    __table_args__ = (
        Index("ix_patients_created_by", "created_by"),
        Index("ix_patients_is_archived", "is_archived"),
    )
