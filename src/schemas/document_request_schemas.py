# src/schemas/document_request_schemas.py
from pydantic import Field
from typing import Optional
from datetime import datetime
from uuid import UUID
from models.document_request import DocumentRequestStatus
from .base_schemas import BaseSchema, TimestampMixin, IDMixin


class DocumentRequestCreate(BaseSchema):
    patient_id: UUID
    follow_up_id: Optional[UUID] = None
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=50)


class DocumentRequestResponse(IDMixin, TimestampMixin):
    patient_id: UUID
    surgeon_id: Optional[UUID] = None
    follow_up_id: Optional[UUID] = None
    title: str
    description: Optional[str] = None
    category: Optional[str] = None
    status: DocumentRequestStatus
    uploaded_media_id: Optional[UUID] = None
    requested_by: UUID
    requested_at: datetime
    uploaded_at: Optional[datetime] = None
