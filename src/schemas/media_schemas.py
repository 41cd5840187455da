# src/schemas/media_schemas.py
from typing import Optional
from uuid import UUID
from models.media import FileType
from models.surgery import Visibility
from models.user import UserRole
from .base_schemas import BaseSchema, TimestampMixin, IDMixin, ArchiveMixin


class MediaUpdate(BaseSchema):
    description: Optional[str] = None
    visibility: Optional[Visibility] = None


class MediaResponse(IDMixin, ArchiveMixin, TimestampMixin):
    patient_id: Optional[UUID] = None
    follow_up_id: Optional[UUID] = None
    uploaded_by: UUID
    uploaded_by_role: UserRole
    file_name: str
    file_url: str
    file_type: FileType
    mime_type: str
    file_size: int
    description: Optional[str] = None
    visibility: Visibility
    has_transcription: bool = False
    transcription_text: Optional[str] = None


class MediaStats(BaseSchema):
    total: int
    total_size: int
    by_type: dict
