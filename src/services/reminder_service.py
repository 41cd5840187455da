# src/services/reminder_service.py
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.policy import Actor
from models.follow_up import FollowUp
from models.notification import NotificationType
from models.patient import Patient
from models.reminder import Reminder, ReminderChannel, ReminderStatus
from models.user import User
from schemas.reminder_schemas import ReminderCreate
from services.email_service import email_service
from services.notification_service import notification_service
from services.whatsapp_service import whatsapp_service
from utils.datetime_utils import as_utc, utcnow
from utils.exceptions import BadRequestException, NotFoundException, handle_db_exception
from utils.logger import setup_logger
from .base_service import BaseService

logger = setup_logger("REMINDER_SERVICE")

FOLLOW_UP_ENTITY = "FOLLOW_UP"
BATCH_SIZE = 100


def describe_offset(days: float) -> str:
    """1 -> "1 day", 0.25 -> "6 hours", 0.01 -> "14 minutes"."""
    if days >= 1 and float(days).is_integer():
        n = int(days)
        return f"{n} day" if n == 1 else f"{n} days"
    hours = days * 24
    if hours >= 1 and float(hours).is_integer():
        n = int(hours)
        return f"{n} hour" if n == 1 else f"{n} hours"
    minutes = max(int(round(days * 24 * 60)), 1)
    return f"{minutes} minute" if minutes == 1 else f"{minutes} minutes"


class ReminderService(BaseService):
    def __init__(self):
        super().__init__(Reminder, "REMINDER_SERVICE")

    # Scope: patients see reminders addressed to them; staff see everything.
    def _read_scope(self, actor: Actor) -> list:
        if actor.is_patient:
            return [Reminder.recipient_id == actor.id]
        return []

    # Creator or admin may change a reminder
    def _write_scope(self, actor: Actor) -> list:
        if actor.is_admin:
            return []
        return [Reminder.created_by == actor.id]

    async def _recipient(self, db: AsyncSession, user_id: UUID) -> User:
        user = await db.get(User, user_id)
        if user is None:
            raise BadRequestException("Recipient not found")
        return user

    async def create_reminder(
        self, db: AsyncSession, data: ReminderCreate, actor: Actor
    ) -> Reminder:
        recipient = await self._recipient(db, data.recipient_id)
        payload = data.model_dump()
        payload.update(
            recipient_role=recipient.role,
            recipient_name=recipient.full_name,
            created_by=actor.id,
        )
        return await self.create_from_dict(db, payload)

    async def create_follow_up_reminders(
        self,
        db: AsyncSession,
        follow_up: FollowUp,
        days_before: Sequence[float],
        channels: Sequence[ReminderChannel],
        actor: Actor,
    ) -> List[Reminder]:
        """One reminder per (offset, channel), addressed to the patient."""
        patient = await db.get(Patient, follow_up.patient_id)
        if patient is None:
            raise BadRequestException("Patient not found")
        recipient = await self._recipient(db, patient.user_id)
        doctor = await db.get(User, follow_up.doctor_id)

        message = whatsapp_service.build_follow_up_reminder(
            patient.full_name,
            doctor.full_name if doctor else None,
            as_utc(follow_up.follow_up_date),
            follow_up.scheduled_time,
            follow_up.description,
        )
        now = utcnow()
        reminders = []
        for days in days_before:
            scheduled_for = as_utc(follow_up.follow_up_date) - timedelta(days=days)
            if scheduled_for <= now:
                logger.info(
                    f"Skipping reminder {days}d before follow-up {follow_up.id}: already past"
                )
                continue
            for channel in channels:
                reminders.append(
                    Reminder(
                        entity_type=FOLLOW_UP_ENTITY,
                        entity_id=follow_up.id,
                        follow_up_id=follow_up.id,
                        recipient_id=recipient.id,
                        recipient_role=recipient.role,
                        recipient_name=patient.full_name,
                        recipient_phone=patient.whatsapp_number or patient.contact_number,
                        title=f"Follow-up Reminder - {describe_offset(days)} before",
                        message=message,
                        scheduled_for=scheduled_for,
                        channel=channel,
                        days_before=days,
                        created_by=actor.id,
                    )
                )
        if not reminders:
            return []
        try:
            db.add_all(reminders)
            await db.commit()
        except SQLAlchemyError as e:
            await handle_db_exception(db, logger, "create follow-up reminders", e)
        logger.info(f"Created {len(reminders)} reminders for follow-up {follow_up.id}")
        return reminders

    async def get_reminder(self, db: AsyncSession, reminder_id: UUID, actor: Actor) -> Reminder:
        result = await db.execute(
            select(Reminder).where(Reminder.id == reminder_id, *self._read_scope(actor))
        )
        reminder = result.scalar_one_or_none()
        if reminder is None:
            raise NotFoundException("Reminder not found")
        return reminder

    async def list_by_follow_up(
        self, db: AsyncSession, follow_up_id: UUID, actor: Actor
    ) -> List[Reminder]:
        result = await db.execute(
            select(Reminder)
            .where(Reminder.follow_up_id == follow_up_id, *self._read_scope(actor))
            .order_by(Reminder.scheduled_for.asc())
        )
        return list(result.scalars().all())

    async def list_for_actor(
        self,
        db: AsyncSession,
        actor: Actor,
        status: Optional[ReminderStatus] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[Reminder], dict]:
        conditions = [
            or_(Reminder.recipient_id == actor.id, Reminder.created_by == actor.id)
        ]
        if status:
            conditions.append(Reminder.status == status)
        return await self.paginate(
            db, conditions, [Reminder.scheduled_for.desc()], page, limit
        )

    async def _conditional_update(
        self, db: AsyncSession, reminder_id: UUID, actor: Actor, values: Dict[str, Any]
    ) -> Reminder:
        result = await db.execute(
            update(Reminder)
            .where(
                Reminder.id == reminder_id,
                Reminder.status == ReminderStatus.PENDING,
                *self._write_scope(actor),
            )
            .values(**values)
            .returning(Reminder)
            .execution_options(synchronize_session="fetch")
        )
        reminder = result.scalar_one_or_none()
        if reminder is None:
            raise NotFoundException("Pending reminder not found")
        await db.commit()
        return reminder

    async def update_reminder(
        self, db: AsyncSession, reminder_id: UUID, actor: Actor, patch: Dict[str, Any]
    ) -> Reminder:
        if not patch:
            raise BadRequestException("No updatable fields provided")
        return await self._conditional_update(db, reminder_id, actor, patch)

    async def cancel(self, db: AsyncSession, reminder_id: UUID, actor: Actor) -> Reminder:
        reminder = await self._conditional_update(
            db, reminder_id, actor, {"status": ReminderStatus.CANCELLED}
        )
        logger.info(f"Cancelled reminder {reminder_id}")
        return reminder

    async def delete_reminder(self, db: AsyncSession, reminder_id: UUID, actor: Actor) -> None:
        result = await db.execute(
            delete(Reminder).where(Reminder.id == reminder_id, *self._write_scope(actor))
        )
        if not result.rowcount:
            raise NotFoundException("Reminder not found")
        await db.commit()
        logger.info(f"Deleted reminder {reminder_id}")

    async def delete_for_follow_up(
        self, db: AsyncSession, follow_up_id: UUID, actor: Actor
    ) -> int:
        """Drop the follow-up's reminders that have not gone out yet."""
        result = await db.execute(
            delete(Reminder).where(
                Reminder.follow_up_id == follow_up_id,
                Reminder.status == ReminderStatus.PENDING,
                *self._write_scope(actor),
            )
        )
        await db.commit()
        return result.rowcount or 0

    async def mark_sent(self, db: AsyncSession, reminder: Reminder) -> Reminder:
        now = utcnow()
        reminder.status = ReminderStatus.SENT
        reminder.sent_at = now
        reminder.last_attempt_at = now
        reminder.attempts = (reminder.attempts or 0) + 1
        reminder.error_message = None
        await db.commit()
        return reminder

    async def mark_failed(self, db: AsyncSession, reminder: Reminder, reason: str) -> Reminder:
        reminder.status = ReminderStatus.FAILED
        reminder.last_attempt_at = utcnow()
        reminder.attempts = (reminder.attempts or 0) + 1
        reminder.error_message = reason
        await db.commit()
        return reminder

    async def resolve_phone(self, db: AsyncSession, reminder: Reminder) -> Optional[str]:
        if reminder.recipient_phone:
            return reminder.recipient_phone
        result = await db.execute(
            select(Patient.whatsapp_number, Patient.contact_number).where(
                Patient.user_id == reminder.recipient_id
            )
        )
        row = result.first()
        if row is None:
            return None
        return row.whatsapp_number or row.contact_number or None

    async def _dispatch(self, db: AsyncSession, reminder: Reminder) -> Optional[str]:
        """Deliver one reminder. Returns an error string, or None on success."""
        channel = ReminderChannel(reminder.channel)

        if channel == ReminderChannel.WHATSAPP:
            if not whatsapp_service.is_configured():
                return "WhatsApp service is not configured"
            phone = await self.resolve_phone(db, reminder)
            if not phone:
                return "No phone number available"
            result = await whatsapp_service.send_text_message(
                phone, f"*{reminder.title}*\n\n{reminder.message}"
            )
            return None if result.success else (result.error or "WhatsApp send failed")

        if channel == ReminderChannel.EMAIL:
            recipient = await db.get(User, reminder.recipient_id)
            if recipient is None or not recipient.email:
                return "No email address available"
            response = await email_service.send_follow_up_reminder_email(
                recipient.email,
                reminder.recipient_name or recipient.full_name,
                reminder.title,
                reminder.message,
            )
            return None if response.success else (response.error or "Email send failed")

        await notification_service.notify(
            db,
            recipient_id=reminder.recipient_id,
            recipient_role=reminder.recipient_role,
            title=reminder.title,
            message=reminder.message,
            type=NotificationType.FOLLOW_UP_REMINDER,
            entity_type=reminder.entity_type,
            entity_id=reminder.entity_id,
        )
        return None

    async def process_pending_reminders(
        self,
        db: AsyncSession,
        channel: Optional[ReminderChannel] = None,
        now: Optional[datetime] = None,
        limit: int = BATCH_SIZE,
    ) -> Dict[str, Any]:
        """Send every due PENDING reminder, one at a time.

        A failure marks only that reminder FAILED; the batch always completes.
        """
        now = now or utcnow()
        query = select(Reminder).where(
            Reminder.status == ReminderStatus.PENDING, Reminder.scheduled_for <= now
        )
        if channel:
            query = query.where(Reminder.channel == channel)
        result = await db.execute(query.order_by(Reminder.scheduled_for.asc()).limit(limit))
        due = list(result.scalars().all())

        results = []
        for reminder in due:
            try:
                error = await self._dispatch(db, reminder)
            except Exception as e:
                logger.error(f"Reminder {reminder.id} raised during dispatch: {e}", exc_info=True)
                await db.rollback()
                await db.refresh(reminder)
                error = str(e) or e.__class__.__name__

            if error is None:
                await self.mark_sent(db, reminder)
            else:
                logger.warning(f"Reminder {reminder.id} failed: {error}")
                await self.mark_failed(db, reminder, error)

            results.append(
                {
                    "reminder_id": reminder.id,
                    "channel": reminder.channel,
                    "success": error is None,
                    "error": error,
                }
            )

        sent = sum(1 for r in results if r["success"])
        logger.info(f"Processed {len(results)} reminders: {sent} sent, {len(results) - sent} failed")
        return {
            "total": len(results),
            "sent": sent,
            "failed": len(results) - sent,
            "results": results,
        }

    async def count_pending(self, db: AsyncSession) -> int:
        return await self.count(db, {"status": ReminderStatus.PENDING})


reminder_service = ReminderService()
