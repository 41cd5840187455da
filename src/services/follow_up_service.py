# src/services/follow_up_service.py
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from core.policy import Actor
from models.follow_up import FollowUp, FollowUpStatus
from models.surgery import Visibility
from schemas.follow_up_schemas import FollowUpCreate
from services.reminder_service import reminder_service
from services.surgery_service import surgery_service
from utils.logger import setup_logger
from .scoped_record_service import CohortSharedStrategy, ScopedRecordService

logger = setup_logger("FOLLOW_UP_SERVICE")

DEFAULT_PAGE_SIZE = 20


class FollowUpService(ScopedRecordService):
    order_field = "follow_up_date"

    def __init__(self):
        super().__init__(FollowUp, CohortSharedStrategy(), "FOLLOW_UP_SERVICE")

    def visibility_conditions(self, actor: Actor) -> list:
        if actor.is_patient:
            return [FollowUp.visibility == Visibility.PUBLIC]
        return []

    async def create_follow_up(
        self, db: AsyncSession, follow_up_in: FollowUpCreate, actor: Actor
    ) -> FollowUp:
        surgery = await surgery_service.get_active(db, follow_up_in.surgery_id)
        data = follow_up_in.model_dump(exclude={"reminder_days", "reminder_channels"})
        data.update(
            patient_id=surgery.patient_id,
            doctor_id=follow_up_in.doctor_id or actor.id,
            status=FollowUpStatus.PENDING,
        )
        follow_up = await self.create(db, data, actor)

        if follow_up_in.reminder_days:
            # Reminders are a convenience; the follow-up stands without them
            try:
                await reminder_service.create_follow_up_reminders(
                    db,
                    follow_up,
                    follow_up_in.reminder_days,
                    follow_up_in.reminder_channels,
                    actor,
                )
            except Exception as e:
                logger.error(f"Could not schedule reminders for follow-up {follow_up.id}: {e}")
        return follow_up

    async def list_by_surgery(
        self,
        db: AsyncSession,
        surgery_id: UUID,
        actor: Actor,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> Tuple[List[FollowUp], dict]:
        return await self.list_by_parent(db, "surgery_id", surgery_id, actor, page, limit)

    async def list_by_patient(
        self,
        db: AsyncSession,
        patient_id: UUID,
        actor: Actor,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> Tuple[List[FollowUp], dict]:
        return await self.list_by_parent(db, "patient_id", patient_id, actor, page, limit)

    async def list_for_doctor(
        self,
        db: AsyncSession,
        actor: Actor,
        status: Optional[FollowUpStatus] = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> Tuple[List[FollowUp], dict]:
        extra = [FollowUp.doctor_id == actor.id]
        if status:
            extra.append(FollowUp.status == status)
        return await self.list_visible(db, actor, page, limit, extra_conditions=extra)

    async def set_status(
        self,
        db: AsyncSession,
        follow_up_id: UUID,
        actor: Actor,
        status: FollowUpStatus,
        observations: Optional[str] = None,
    ) -> FollowUp:
        patch = {"status": status}
        if observations is not None:
            patch["observations"] = observations
        return await self.update(db, follow_up_id, actor, patch)


follow_up_service = FollowUpService()
