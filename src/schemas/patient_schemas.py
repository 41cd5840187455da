# src/schemas/patient_schemas.py
import re
from pydantic import EmailStr, Field, field_validator
from typing import Optional
from uuid import UUID
from .base_schemas import BaseSchema, TimestampMixin, IDMixin, ArchiveMixin

CNIC_PATTERN = re.compile(r"^\d{5}-?\d{7}-?\d$")


class PatientBase(BaseSchema):
    """Base patient schema"""

    full_name: str = Field(..., min_length=1, max_length=150)
    father_name: Optional[str] = Field(None, max_length=150)
    cnic: str
    contact_number: str = Field(..., min_length=7, max_length=20)
    whatsapp_number: Optional[str] = Field(None, max_length=20)
    address: Optional[str] = None

    @field_validator("cnic")
    @classmethod
    def validate_cnic(cls, v: str) -> str:
        if not CNIC_PATTERN.match(v):
            raise ValueError("CNIC must be 13 digits, optionally as XXXXX-XXXXXXX-X")
        return v


class PatientCreate(PatientBase):
    """Schema for creating a patient and their login account"""

    email: EmailStr
    assigned_doctor_id: Optional[UUID] = None


class PatientUpdate(BaseSchema):
    """Schema for updating a patient"""

    full_name: Optional[str] = Field(None, min_length=1, max_length=150)
    father_name: Optional[str] = None
    contact_number: Optional[str] = Field(None, min_length=7, max_length=20)
    whatsapp_number: Optional[str] = None
    address: Optional[str] = None
    assigned_doctor_id: Optional[UUID] = None


class PatientResponse(IDMixin, PatientBase, ArchiveMixin, TimestampMixin):
    user_id: UUID
    patient_number: str
    email: str
    assigned_doctor_id: Optional[UUID] = None
    created_by: UUID
