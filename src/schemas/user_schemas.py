# src/schemas/user_schemas.py
from pydantic import EmailStr, Field, field_validator
from typing import Optional
from datetime import datetime
from uuid import UUID
from models.user import UserRole
from .base_schemas import BaseSchema, IDMixin, TimestampMixin


class UserBase(BaseSchema):
    email: EmailStr
    full_name: str = Field(..., min_length=1, max_length=150)
    phone: Optional[str] = Field(None, max_length=20)
    role: UserRole


class UserCreate(UserBase):
    """Staff accounts only; patient logins are created with the patient record."""

    password: str = Field(..., min_length=8)

    @field_validator("role")
    @classmethod
    def reject_patient_role(cls, v):
        if v == UserRole.PATIENT:
            raise ValueError("Patient accounts are created through /patients")
        return v


class UserResponse(IDMixin, UserBase, TimestampMixin):
    is_active: bool
    last_login_at: Optional[datetime] = None


class ActorResponse(BaseSchema):
    id: UUID
    email: str
    full_name: str
    role: UserRole
    patient_id: Optional[UUID] = None


class UserUpdate(BaseSchema):
    """Admin edit of an account. Passwords change only through change-password."""

    email: Optional[EmailStr] = None
    full_name: Optional[str] = Field(None, min_length=1, max_length=150)
    phone: Optional[str] = Field(None, max_length=20)
    role: Optional[UserRole] = None

    @field_validator("role")
    @classmethod
    def reject_patient_role(cls, v):
        if v == UserRole.PATIENT:
            raise ValueError("Accounts cannot be turned into patient logins")
        return v


class ProfileUpdate(BaseSchema):
    email: Optional[EmailStr] = None
    full_name: Optional[str] = Field(None, min_length=1, max_length=150)
    phone: Optional[str] = Field(None, max_length=20)


class PasswordChange(BaseSchema):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8)


class ProfileResponse(UserResponse):
    patient_id: Optional[UUID] = None
    patient_number: Optional[str] = None
