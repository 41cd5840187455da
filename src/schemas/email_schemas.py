# src/schemas/email_schemas.py
from pydantic import BaseModel, EmailStr, field_validator
from typing import Dict, Any, List, Optional
from enum import Enum


class EmailType(str, Enum):
    WELCOME_PATIENT = "welcome_patient"
    FOLLOW_UP_REMINDER = "follow_up_reminder"
    DOCUMENT_REQUEST = "document_request"


class EmailRequest(BaseModel):
    """Base email request schema"""

    to: List[EmailStr]
    subject: str
    template_name: str
    template_data: Dict[str, Any]
    reply_to: Optional[EmailStr] = None

    @field_validator("to")
    @classmethod
    def validate_recipients(cls, v):
        if not v:
            raise ValueError("At least one recipient is required")
        return v


class EmailResponse(BaseModel):
    """Email response schema"""

    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None
    recipients: List[str]
