# src/services/notification_service.py
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.policy import Actor
from models.notification import Notification, NotificationPriority, NotificationType
from models.user import UserRole
from utils.datetime_utils import utcnow
from utils.exceptions import NotFoundException
from utils.logger import setup_logger
from .base_service import BaseService

logger = setup_logger("NOTIFICATION_SERVICE")


class NotificationService(BaseService):
    """In-app notifications; the only delivery channel that needs no credentials."""

    def __init__(self):
        super().__init__(Notification, "NOTIFICATION_SERVICE")

    async def notify(
        self,
        db: AsyncSession,
        recipient_id: UUID,
        recipient_role: UserRole,
        title: str,
        message: str,
        type: NotificationType = NotificationType.GENERAL,
        entity_type: Optional[str] = None,
        entity_id: Optional[UUID] = None,
        priority: NotificationPriority = NotificationPriority.NORMAL,
    ) -> Notification:
        return await self.create_from_dict(
            db,
            {
                "recipient_id": recipient_id,
                "recipient_role": recipient_role,
                "title": title,
                "message": message,
                "type": type,
                "entity_type": entity_type,
                "entity_id": entity_id,
                "priority": priority,
            },
        )

    async def list_for_actor(
        self,
        db: AsyncSession,
        actor: Actor,
        unread_only: bool = False,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[Notification], dict]:
        conditions = [Notification.recipient_id == actor.id]
        if unread_only:
            conditions.append(Notification.is_read.is_(False))
        return await self.paginate(
            db, conditions, [Notification.created_at.desc()], page, limit
        )

    async def unread_count(self, db: AsyncSession, actor: Actor) -> int:
        result = await db.execute(
            select(func.count())
            .select_from(Notification)
            .where(Notification.recipient_id == actor.id, Notification.is_read.is_(False))
        )
        return result.scalar_one()

    async def mark_read(self, db: AsyncSession, notification_id: UUID, actor: Actor) -> Notification:
        """Scoped to the recipient; anyone else gets 404."""
        result = await db.execute(
            update(Notification)
            .where(Notification.id == notification_id, Notification.recipient_id == actor.id)
            .values(is_read=True, read_at=utcnow())
            .returning(Notification)
            .execution_options(synchronize_session="fetch")
        )
        notification = result.scalar_one_or_none()
        if notification is None:
            raise NotFoundException("Notification not found")
        await db.commit()
        return notification


notification_service = NotificationService()
