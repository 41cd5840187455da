# src/routes/reminders.py
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any, Optional
from uuid import UUID
from core.dependencies import PolicyChecker
from core.policy import Action, Actor, Resource
from db.database import get_db
from models.audit_log import AuditAction
from models.reminder import ReminderChannel, ReminderStatus
from schemas.base_schemas import (
    CountResponse,
    DataResponse,
    ListResponse,
    PaginatedResponse,
    ResponseBase,
)
from schemas.reminder_schemas import (
    BatchProcessResult,
    FollowUpRemindersCreate,
    ReminderCreate,
    ReminderResponse,
    ReminderUpdate,
)
from services.audit_log_service import audit_log_service
from services.follow_up_service import follow_up_service
from services.reminder_service import reminder_service
from utils.responses import data_response, list_response, paginated_response
from utils.logger import setup_logger

router = APIRouter(prefix="/reminders", tags=["reminders"])
logger = setup_logger("REMINDER_ROUTES")

ENTITY = "REMINDER"


@router.post(
    "",
    response_model=DataResponse[ReminderResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create reminder",
)
async def create_reminder(
    request: Request,
    reminder_in: ReminderCreate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.REMINDER, Action.CREATE)),
) -> Any:
    reminder = await reminder_service.create_reminder(db, reminder_in, actor)
    response = data_response(ReminderResponse, reminder, "Reminder scheduled")
    await audit_log_service.log_event(
        db, request, actor, AuditAction.CREATE, ENTITY, reminder.id
    )
    return response


@router.post(
    "/follow-up",
    response_model=ListResponse[ReminderResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Schedule follow-up reminders",
    description="One reminder per day offset per channel; offsets already in the past are skipped",
)
async def create_follow_up_reminders(
    request: Request,
    body: FollowUpRemindersCreate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.REMINDER, Action.CREATE)),
) -> Any:
    follow_up = await follow_up_service.get_by_id(db, body.follow_up_id, actor)
    reminders = await reminder_service.create_follow_up_reminders(
        db, follow_up, body.days_before, body.channels, actor
    )
    response = list_response(ReminderResponse, reminders)
    await audit_log_service.log_event(
        db,
        request,
        actor,
        AuditAction.CREATE,
        ENTITY,
        follow_up.id,
        description=f"Scheduled {len(reminders)} reminders for follow-up",
    )
    return response


@router.get(
    "/mine",
    response_model=PaginatedResponse[ReminderResponse],
    summary="My reminders",
    description="Reminders addressed to or created by the caller",
)
async def list_my_reminders(
    status_filter: Optional[ReminderStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.REMINDER, Action.LIST)),
) -> Any:
    items, meta = await reminder_service.list_for_actor(db, actor, status_filter, page, limit)
    return paginated_response(ReminderResponse, items, meta)


@router.get(
    "/pending-count",
    response_model=CountResponse,
    summary="Pending reminder count",
)
async def pending_count(
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.REMINDER, Action.PROCESS)),
) -> Any:
    return CountResponse(count=await reminder_service.count_pending(db))


@router.post(
    "/process",
    response_model=DataResponse[BatchProcessResult],
    summary="Process due reminders",
    description="Send every PENDING reminder whose time has come. Individual failures do not stop the batch",
)
async def process_reminders(
    request: Request,
    channel: Optional[ReminderChannel] = Query(None),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.REMINDER, Action.PROCESS)),
) -> Any:
    result = await reminder_service.process_pending_reminders(db, channel=channel)
    await audit_log_service.log_event(
        db,
        request,
        actor,
        AuditAction.UPDATE,
        ENTITY,
        description=f"Processed {result['total']} reminders: {result['sent']} sent, {result['failed']} failed",
    )
    return DataResponse[BatchProcessResult](
        data=BatchProcessResult(**result), message="Reminders processed"
    )


@router.get(
    "/follow-up/{follow_up_id}",
    response_model=ListResponse[ReminderResponse],
    summary="List a follow-up's reminders",
)
async def list_follow_up_reminders(
    follow_up_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.REMINDER, Action.LIST)),
) -> Any:
    reminders = await reminder_service.list_by_follow_up(db, follow_up_id, actor)
    return list_response(ReminderResponse, reminders)


@router.delete(
    "/follow-up/{follow_up_id}",
    response_model=CountResponse,
    summary="Delete a follow-up's pending reminders",
)
async def delete_follow_up_reminders(
    request: Request,
    follow_up_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.REMINDER, Action.DELETE)),
) -> Any:
    deleted = await reminder_service.delete_for_follow_up(db, follow_up_id, actor)
    await audit_log_service.log_event(
        db,
        request,
        actor,
        AuditAction.DELETE,
        ENTITY,
        follow_up_id,
        description=f"Deleted {deleted} pending reminders",
    )
    return CountResponse(count=deleted, message=f"Deleted {deleted} reminders")


@router.get(
    "/{reminder_id}",
    response_model=DataResponse[ReminderResponse],
    summary="Get reminder",
)
async def get_reminder(
    reminder_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.REMINDER, Action.READ)),
) -> Any:
    reminder = await reminder_service.get_reminder(db, reminder_id, actor)
    return data_response(ReminderResponse, reminder)


@router.put(
    "/{reminder_id}",
    response_model=DataResponse[ReminderResponse],
    summary="Update pending reminder",
)
async def update_reminder(
    request: Request,
    reminder_id: UUID,
    reminder_in: ReminderUpdate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.REMINDER, Action.UPDATE)),
) -> Any:
    patch = reminder_in.model_dump(exclude_unset=True)
    reminder = await reminder_service.update_reminder(db, reminder_id, actor, patch)
    response = data_response(ReminderResponse, reminder, "Reminder updated")
    await audit_log_service.log_event(
        db, request, actor, AuditAction.UPDATE, ENTITY, reminder.id, changes=patch
    )
    return response


@router.patch(
    "/{reminder_id}/cancel",
    response_model=DataResponse[ReminderResponse],
    summary="Cancel reminder",
)
async def cancel_reminder(
    request: Request,
    reminder_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.REMINDER, Action.UPDATE)),
) -> Any:
    reminder = await reminder_service.cancel(db, reminder_id, actor)
    response = data_response(ReminderResponse, reminder, "Reminder cancelled")
    await audit_log_service.log_event(
        db, request, actor, AuditAction.UPDATE, ENTITY, reminder.id, description="Cancelled"
    )
    return response


@router.delete(
    "/{reminder_id}",
    response_model=ResponseBase,
    summary="Delete reminder",
)
async def delete_reminder(
    request: Request,
    reminder_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.REMINDER, Action.DELETE)),
) -> Any:
    await reminder_service.delete_reminder(db, reminder_id, actor)
    await audit_log_service.log_event(
        db, request, actor, AuditAction.DELETE, ENTITY, reminder_id
    )
    return ResponseBase(message="Reminder deleted")
