# src/schemas/whatsapp_schemas.py
from pydantic import BaseModel, Field
from typing import Optional
from uuid import UUID


class WhatsAppSendResult(BaseModel):
    success: bool
    message_id: Optional[str] = None
    to: Optional[str] = None
    error: Optional[str] = None


class WhatsAppConfigStatus(BaseModel):
    configured: bool
    phone_number_id: Optional[str] = None
    api_version: str


class TestMessageRequest(BaseModel):
    phone_number: str = Field(..., min_length=7, max_length=20)
    message: Optional[str] = None
    template_name: Optional[str] = None
    language_code: str = "en"


class PatientMessageRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=4096)


class FollowUpRemindRequest(BaseModel):
    custom_message: Optional[str] = None


class DocumentRequestMessage(BaseModel):
    patient_id: UUID
    document_title: str = Field(..., min_length=1)
    description: Optional[str] = None

