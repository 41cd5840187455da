# src/models/surgery.py
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
from utils.datetime_utils import utcnow


class DoctorRole(str, PyEnum):
    PERFORMED = "PERFORMED"
    ASSISTED = "ASSISTED"
    SUPERVISED = "SUPERVISED"
    OBSERVED = "OBSERVED"


class Visibility(str, PyEnum):
    PRIVATE = "PRIVATE"
    PUBLIC = "PUBLIC"


class Surgery(Base):
    __tablename__ = "surgeries"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    patient_id = Column(
        Uuid, ForeignKey("patients.id", ondelete="CASCADE"), nullable=False
    )
    doctor_id = Column(Uuid, ForeignKey("users.id"), nullable=False)

    # Clinical details
    diagnosis = Column(Text, nullable=False)
    brief_history = Column(Text, nullable=True)
    pre_op_findings = Column(Text, nullable=True)
    procedure_name = Column(String(255), nullable=False)
    procedure_details = Column(Text, nullable=True)
    doctor_role = Column(Enum(DoctorRole), default=DoctorRole.PERFORMED, nullable=False)
    surgery_date = Column(DateTime(timezone=True), nullable=False)
    visibility = Column(Enum(Visibility), default=Visibility.PRIVATE, nullable=False)

    created_by = Column(Uuid, ForeignKey("users.id"), nullable=False)

    is_archived = Column(Boolean, default=False, nullable=False)
    archived_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)

    __table_args__ = (
        Index("ix_surgeries_patient_id", "patient_id"),
        Index("ix_surgeries_doctor_id", "doctor_id"),
        Index("ix_surgeries_surgery_date", "surgery_date"),
    )
