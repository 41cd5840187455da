# src/services/private_note_service.py
from typing import Any, Dict, List, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.policy import Actor
from models.private_note import PrivateNote
from schemas.private_note_schemas import PrivateNoteCreate
from services.patient_service import patient_service
from utils.exceptions import BadRequestException
from .scoped_record_service import (
    CohortSharedStrategy,
    OwnershipStrategy,
    ScopedRecordService,
    SingleOwnerStrategy,
)

STRATEGIES = {
    CohortSharedStrategy.name: CohortSharedStrategy,
    SingleOwnerStrategy.name: SingleOwnerStrategy,
}


def strategy_for_scope(scope: str) -> OwnershipStrategy:
    try:
        return STRATEGIES[scope]()
    except KeyError:
        raise ValueError(f"Unknown private note scope: {scope}")


class PrivateNoteService(ScopedRecordService):
    """Clinician notes. Which colleagues can read them depends on the
    configured scope; editing is always limited to the author."""

    search_fields = ("title", "content", "transcription_text")
    # Clinical abbreviations differ by case ("MS" vs "ms")
    case_sensitive_search = True

    def __init__(self, strategy: OwnershipStrategy = None):
        super().__init__(
            PrivateNote,
            strategy or strategy_for_scope(settings.PRIVATE_NOTE_SCOPE),
            "PRIVATE_NOTE_SERVICE",
        )

    def stamp_owner(self, data: Dict[str, Any], actor: Actor) -> Dict[str, Any]:
        data.update(
            created_by=actor.id,
            created_by_role=actor.role,
            created_by_name=actor.name,
        )
        return data

    async def create_note(
        self, db: AsyncSession, note_in: PrivateNoteCreate, actor: Actor
    ) -> PrivateNote:
        await patient_service.get_active(db, note_in.patient_id)
        return await self.create(db, note_in.model_dump(), actor)

    async def list_mine(
        self, db: AsyncSession, actor: Actor, page: int = 1, limit: int = 50
    ) -> Tuple[List[PrivateNote], dict]:
        return await self.list_visible(
            db, actor, page, limit, extra_conditions=[PrivateNote.created_by == actor.id]
        )

    async def list_by_patient(
        self, db: AsyncSession, patient_id: UUID, actor: Actor, page: int = 1, limit: int = 50
    ) -> Tuple[List[PrivateNote], dict]:
        return await self.list_by_parent(db, "patient_id", patient_id, actor, page, limit)

    async def list_by_follow_up(
        self, db: AsyncSession, follow_up_id: UUID, actor: Actor, page: int = 1, limit: int = 50
    ) -> Tuple[List[PrivateNote], dict]:
        return await self.list_by_parent(db, "follow_up_id", follow_up_id, actor, page, limit)

    async def list_by_surgery(
        self, db: AsyncSession, surgery_id: UUID, actor: Actor, page: int = 1, limit: int = 50
    ) -> Tuple[List[PrivateNote], dict]:
        return await self.list_by_parent(db, "surgery_id", surgery_id, actor, page, limit)

    async def add_transcription(
        self, db: AsyncSession, note_id: UUID, actor: Actor, text: str
    ) -> PrivateNote:
        text = (text or "").strip()
        if not text:
            raise BadRequestException("Transcription text is required")
        return await self.update(
            db, note_id, actor, {"has_transcription": True, "transcription_text": text}
        )


private_note_service = PrivateNoteService()
