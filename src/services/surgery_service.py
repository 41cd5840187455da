# src/services/surgery_service.py
from typing import List, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from core.policy import Actor
from models.surgery import Surgery
from schemas.surgery_schemas import SurgeryCreate
from services.patient_service import patient_service
from utils.exceptions import BadRequestException
from .scoped_record_service import CohortSharedStrategy, ScopedRecordService


class SurgeryService(ScopedRecordService):
    """Every clinician reads all surgeries; only the recording clinician edits."""

    search_fields = ("diagnosis", "procedure_name")
    case_sensitive_search = False
    order_field = "surgery_date"

    def __init__(self):
        super().__init__(Surgery, CohortSharedStrategy(), "SURGERY_SERVICE")

    async def create_surgery(
        self, db: AsyncSession, surgery_in: SurgeryCreate, actor: Actor
    ) -> Surgery:
        await patient_service.get_active(db, surgery_in.patient_id)
        data = surgery_in.model_dump()
        data["doctor_id"] = surgery_in.doctor_id or actor.id
        return await self.create(db, data, actor)

    async def list_by_patient(
        self, db: AsyncSession, patient_id: UUID, actor: Actor, page: int = 1, limit: int = 50
    ) -> Tuple[List[Surgery], dict]:
        return await self.list_by_parent(db, "patient_id", patient_id, actor, page, limit)

    async def list_by_doctor(
        self, db: AsyncSession, doctor_id: UUID, actor: Actor, page: int = 1, limit: int = 50
    ) -> Tuple[List[Surgery], dict]:
        return await self.list_by_parent(db, "doctor_id", doctor_id, actor, page, limit)

    async def get_active(self, db: AsyncSession, surgery_id: UUID) -> Surgery:
        surgery = await self.get(db, surgery_id)
        if surgery is None or surgery.is_archived:
            raise BadRequestException("Surgery not found or archived")
        return surgery


surgery_service = SurgeryService()
