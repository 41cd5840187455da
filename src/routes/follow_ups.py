# src/routes/follow_ups.py
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any, Optional
from uuid import UUID
from core.dependencies import PolicyChecker
from core.policy import Action, Actor, Resource
from db.database import get_db
from models.audit_log import AuditAction
from models.follow_up import FollowUpStatus
from schemas.base_schemas import DataResponse, PaginatedResponse
from schemas.follow_up_schemas import (
    FollowUpCreate,
    FollowUpResponse,
    FollowUpStatusUpdate,
    FollowUpUpdate,
)
from services.audit_log_service import audit_log_service
from services.follow_up_service import DEFAULT_PAGE_SIZE, follow_up_service
from utils.responses import data_response, paginated_response
from utils.logger import setup_logger

router = APIRouter(prefix="/follow-ups", tags=["follow-ups"])
logger = setup_logger("FOLLOW_UP_ROUTES")

ENTITY = "FOLLOW_UP"


@router.post(
    "",
    response_model=DataResponse[FollowUpResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Schedule follow-up",
    description="Schedule a follow-up for a surgery, optionally with patient reminders",
)
async def create_follow_up(
    request: Request,
    follow_up_in: FollowUpCreate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.FOLLOW_UP, Action.CREATE)),
) -> Any:
    follow_up = await follow_up_service.create_follow_up(db, follow_up_in, actor)
    response = data_response(FollowUpResponse, follow_up, "Follow-up scheduled successfully")
    await audit_log_service.log_event(
        db, request, actor, AuditAction.CREATE, ENTITY, follow_up.id
    )
    return response


@router.get(
    "/mine",
    response_model=PaginatedResponse[FollowUpResponse],
    summary="My follow-ups",
    description="Follow-ups where the caller is the attending doctor",
)
async def list_my_follow_ups(
    status_filter: Optional[FollowUpStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.FOLLOW_UP, Action.LIST)),
) -> Any:
    follow_ups, meta = await follow_up_service.list_for_doctor(
        db, actor, status_filter, page, limit
    )
    return paginated_response(FollowUpResponse, follow_ups, meta)


@router.get(
    "/surgery/{surgery_id}",
    response_model=PaginatedResponse[FollowUpResponse],
    summary="List follow-ups for a surgery",
)
async def list_surgery_follow_ups(
    surgery_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.FOLLOW_UP, Action.LIST)),
) -> Any:
    follow_ups, meta = await follow_up_service.list_by_surgery(
        db, surgery_id, actor, page, limit
    )
    return paginated_response(FollowUpResponse, follow_ups, meta)


@router.get(
    "/patient/{patient_id}",
    response_model=PaginatedResponse[FollowUpResponse],
    summary="List follow-ups for a patient",
)
async def list_patient_follow_ups(
    patient_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.FOLLOW_UP, Action.LIST)),
) -> Any:
    follow_ups, meta = await follow_up_service.list_by_patient(
        db, patient_id, actor, page, limit
    )
    return paginated_response(FollowUpResponse, follow_ups, meta)


@router.get(
    "/{follow_up_id}",
    response_model=DataResponse[FollowUpResponse],
    summary="Get follow-up",
)
async def get_follow_up(
    follow_up_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.FOLLOW_UP, Action.READ)),
) -> Any:
    follow_up = await follow_up_service.get_by_id(db, follow_up_id, actor)
    return data_response(FollowUpResponse, follow_up)


@router.put(
    "/{follow_up_id}",
    response_model=DataResponse[FollowUpResponse],
    summary="Update follow-up",
)
async def update_follow_up(
    request: Request,
    follow_up_id: UUID,
    follow_up_in: FollowUpUpdate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.FOLLOW_UP, Action.UPDATE)),
) -> Any:
    patch = follow_up_in.model_dump(exclude_unset=True)
    follow_up = await follow_up_service.update(db, follow_up_id, actor, patch)
    response = data_response(FollowUpResponse, follow_up, "Follow-up updated successfully")
    await audit_log_service.log_event(
        db, request, actor, AuditAction.UPDATE, ENTITY, follow_up.id, changes=patch
    )
    return response


@router.patch(
    "/{follow_up_id}/status",
    response_model=DataResponse[FollowUpResponse],
    summary="Set follow-up status",
)
async def set_follow_up_status(
    request: Request,
    follow_up_id: UUID,
    status_in: FollowUpStatusUpdate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.FOLLOW_UP, Action.UPDATE)),
) -> Any:
    follow_up = await follow_up_service.set_status(
        db, follow_up_id, actor, status_in.status, status_in.observations
    )
    response = data_response(FollowUpResponse, follow_up, "Follow-up status updated")
    await audit_log_service.log_event(
        db,
        request,
        actor,
        AuditAction.UPDATE,
        ENTITY,
        follow_up.id,
        changes={"status": status_in.status},
    )
    return response


@router.delete(
    "/{follow_up_id}",
    response_model=DataResponse[FollowUpResponse],
    summary="Archive follow-up",
)
async def archive_follow_up(
    request: Request,
    follow_up_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.FOLLOW_UP, Action.ARCHIVE)),
) -> Any:
    follow_up = await follow_up_service.archive(db, follow_up_id, actor)
    response = data_response(FollowUpResponse, follow_up, "Follow-up archived successfully")
    await audit_log_service.log_event(
        db, request, actor, AuditAction.ARCHIVE, ENTITY, follow_up.id
    )
    return response
