# src/services/media_service.py
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from fastapi import UploadFile
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.policy import Actor
from models.media import Media
from models.surgery import Visibility
from services.document_request_service import document_request_service
from services.patient_service import patient_service
from utils.exceptions import BadRequestException
from utils.logger import setup_logger
from utils.upload import remove_stored_file, save_upload
from .scoped_record_service import CohortSharedStrategy, ScopedRecordService

logger = setup_logger("MEDIA_SERVICE")


class MediaService(ScopedRecordService):
    search_fields = ("file_name", "description", "transcription_text")
    case_sensitive_search = False

    def __init__(self):
        super().__init__(
            Media, CohortSharedStrategy(owner_field="uploaded_by"), "MEDIA_SERVICE"
        )

    def stamp_owner(self, data: Dict[str, Any], actor: Actor) -> Dict[str, Any]:
        data.update(uploaded_by=actor.id, uploaded_by_role=actor.role)
        return data

    def visibility_conditions(self, actor: Actor) -> list:
        """Patients see published files plus whatever they uploaded themselves."""
        if not actor.is_patient:
            return []
        return [or_(Media.visibility == Visibility.PUBLIC, Media.uploaded_by == actor.id)]

    async def _resolve_patient(
        self, db: AsyncSession, patient_id: Optional[UUID], actor: Actor
    ) -> Optional[UUID]:
        if actor.is_patient:
            if actor.patient_id is None:
                raise BadRequestException("No patient record is linked to this account")
            if patient_id is not None and patient_id != actor.patient_id:
                raise BadRequestException("Patients can only upload files for themselves")
            return actor.patient_id
        if patient_id is not None:
            await patient_service.get_active(db, patient_id)
        return patient_id

    async def upload(
        self,
        db: AsyncSession,
        file: UploadFile,
        actor: Actor,
        patient_id: Optional[UUID] = None,
        follow_up_id: Optional[UUID] = None,
        description: Optional[str] = None,
        visibility: Visibility = Visibility.PUBLIC,
        document_request_id: Optional[UUID] = None,
    ) -> Media:
        patient_id = await self._resolve_patient(db, patient_id, actor)

        document_request = None
        if document_request_id is not None:
            document_request = await document_request_service.get_pending(
                db, document_request_id, patient_id
            )
            follow_up_id = follow_up_id or document_request.follow_up_id

        stored_name, file_url, size, file_type = await save_upload(file)
        try:
            media = await self.create(
                db,
                {
                    "patient_id": patient_id,
                    "follow_up_id": follow_up_id,
                    "file_name": file.filename or stored_name,
                    "stored_name": stored_name,
                    "file_url": file_url,
                    "file_type": file_type,
                    "mime_type": file.content_type,
                    "file_size": size,
                    "description": description,
                    "visibility": visibility,
                },
                actor,
            )
        except Exception:
            remove_stored_file(stored_name)
            raise

        if document_request is not None:
            await document_request_service.mark_as_uploaded(
                db, document_request.id, media.id
            )
            await document_request_service.notify_uploaded(db, document_request, actor)
        return media

    async def list_by_follow_up(
        self, db: AsyncSession, follow_up_id: UUID, actor: Actor, page: int = 1, limit: int = 50
    ) -> Tuple[List[Media], dict]:
        return await self.list_visible(
            db,
            actor,
            page,
            limit,
            extra_conditions=[Media.follow_up_id == follow_up_id],
        )

    async def list_by_patient(
        self, db: AsyncSession, patient_id: UUID, actor: Actor, page: int = 1, limit: int = 50
    ) -> Tuple[List[Media], dict]:
        return await self.list_visible(
            db,
            actor,
            page,
            limit,
            extra_conditions=[Media.patient_id == patient_id],
        )

    async def list_all(
        self, db: AsyncSession, actor: Actor, page: int = 1, limit: int = 50
    ) -> Tuple[List[Media], dict]:
        return await self.list_visible(db, actor, page, limit)

    async def add_transcription(
        self, db: AsyncSession, media_id: UUID, actor: Actor, text: str
    ) -> Media:
        text = (text or "").strip()
        if not text:
            raise BadRequestException("Transcription text is required")
        return await self.update(
            db, media_id, actor, {"has_transcription": True, "transcription_text": text}
        )

    async def get_stats(self, db: AsyncSession) -> Dict[str, Any]:
        active = Media.is_archived.is_(False)
        totals = await db.execute(
            select(func.count(), func.coalesce(func.sum(Media.file_size), 0)).where(active)
        )
        total, total_size = totals.one()
        by_type = await db.execute(
            select(Media.file_type, func.count()).where(active).group_by(Media.file_type)
        )
        return {
            "total": total,
            "total_size": int(total_size),
            "by_type": {
                getattr(file_type, "value", file_type): count
                for file_type, count in by_type.all()
            },
        }


media_service = MediaService()
