# src/schemas/private_note_schemas.py
from pydantic import Field
from typing import Any, Dict, List, Optional
from uuid import UUID
from models.user import UserRole
from .base_schemas import BaseSchema, TimestampMixin, IDMixin, ArchiveMixin


class PrivateNoteBase(BaseSchema):
    title: Optional[str] = Field(None, max_length=255)
    content: str = Field(..., min_length=1)
    audio_url: Optional[str] = Field(None, max_length=500)
    audio_duration: Optional[int] = Field(None, ge=0)
    attachments: List[Dict[str, Any]] = Field(default_factory=list)


class PrivateNoteCreate(PrivateNoteBase):
    patient_id: UUID
    follow_up_id: Optional[UUID] = None
    surgery_id: Optional[UUID] = None


class PrivateNoteUpdate(BaseSchema):
    title: Optional[str] = Field(None, max_length=255)
    content: Optional[str] = Field(None, min_length=1)
    audio_url: Optional[str] = Field(None, max_length=500)
    audio_duration: Optional[int] = Field(None, ge=0)
    attachments: Optional[List[Dict[str, Any]]] = None


class TranscriptionRequest(BaseSchema):
    transcription_text: Optional[str] = None


class PrivateNoteResponse(IDMixin, PrivateNoteBase, ArchiveMixin, TimestampMixin):
    patient_id: UUID
    follow_up_id: Optional[UUID] = None
    surgery_id: Optional[UUID] = None
    created_by: UUID
    created_by_role: UserRole
    created_by_name: str
    has_transcription: bool = False
    transcription_text: Optional[str] = None
    attachments: Optional[List[Dict[str, Any]]] = None
