# src/routes/notifications.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any
from uuid import UUID
from core.dependencies import PolicyChecker
from core.policy import Action, Actor, Resource
from db.database import get_db
from schemas.base_schemas import CountResponse, DataResponse, PaginatedResponse
from schemas.notification_schemas import NotificationResponse
from services.notification_service import notification_service
from utils.responses import data_response, paginated_response

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=PaginatedResponse[NotificationResponse])
async def list_notifications(
    unread_only: bool = Query(False),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.NOTIFICATION, Action.LIST)),
) -> Any:
    items, meta = await notification_service.list_for_actor(
        db, actor, unread_only, page, limit
    )
    return paginated_response(NotificationResponse, items, meta)


@router.get("/unread-count", response_model=CountResponse)
async def unread_count(
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.NOTIFICATION, Action.LIST)),
) -> Any:
    return CountResponse(count=await notification_service.unread_count(db, actor))


@router.patch("/{notification_id}/read", response_model=DataResponse[NotificationResponse])
async def mark_read(
    notification_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.NOTIFICATION, Action.UPDATE)),
) -> Any:
    notification = await notification_service.mark_read(db, notification_id, actor)
    return data_response(NotificationResponse, notification)
