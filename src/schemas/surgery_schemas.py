# src/schemas/surgery_schemas.py
from pydantic import Field
from typing import Optional
from datetime import datetime
from uuid import UUID
from models.surgery import DoctorRole, Visibility
from .base_schemas import BaseSchema, TimestampMixin, IDMixin, ArchiveMixin


class SurgeryBase(BaseSchema):
    diagnosis: str = Field(..., min_length=1)
    brief_history: Optional[str] = None
    pre_op_findings: Optional[str] = None
    procedure_name: str = Field(..., min_length=1, max_length=255)
    procedure_details: Optional[str] = None
    doctor_role: DoctorRole = DoctorRole.PERFORMED
    surgery_date: datetime
    visibility: Visibility = Visibility.PRIVATE


class SurgeryCreate(SurgeryBase):
    patient_id: UUID
    # Defaults to the caller when omitted
    doctor_id: Optional[UUID] = None


class SurgeryUpdate(BaseSchema):
    diagnosis: Optional[str] = Field(None, min_length=1)
    brief_history: Optional[str] = None
    pre_op_findings: Optional[str] = None
    procedure_name: Optional[str] = Field(None, min_length=1, max_length=255)
    procedure_details: Optional[str] = None
    doctor_role: Optional[DoctorRole] = None
    surgery_date: Optional[datetime] = None
    visibility: Optional[Visibility] = None


class SurgeryResponse(IDMixin, SurgeryBase, ArchiveMixin, TimestampMixin):
    patient_id: UUID
    doctor_id: UUID
    created_by: UUID
