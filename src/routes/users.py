# src/routes/users.py
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any, Optional
from uuid import UUID
from core.dependencies import PolicyChecker
from core.policy import Action, Actor, Resource
from db.database import get_db
from models.audit_log import AuditAction
from models.user import UserRole
from schemas.base_schemas import DataResponse, PaginatedResponse
from schemas.user_schemas import UserCreate, UserResponse, UserUpdate
from services.audit_log_service import audit_log_service
from services.user_service import user_service
from utils.responses import data_response, paginated_response
from utils.logger import setup_logger

router = APIRouter(prefix="/users", tags=["users"])
logger = setup_logger("USER_ROUTES")


@router.post(
    "",
    response_model=DataResponse[UserResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create staff user",
)
async def create_user(
    request: Request,
    user_in: UserCreate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.USER, Action.CREATE)),
) -> Any:
    user = await user_service.create_user(db, user_in)
    response = data_response(UserResponse, user, "User created successfully")
    await audit_log_service.log_event(
        db,
        request,
        actor,
        AuditAction.CREATE,
        "USER",
        user.id,
        description=f"Created {UserRole(user.role).value} account {user.email}",
    )
    return response


@router.get(
    "",
    response_model=PaginatedResponse[UserResponse],
    summary="List users",
)
async def list_users(
    role: Optional[UserRole] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.USER, Action.LIST)),
) -> Any:
    users, meta = await user_service.list_users(db, role, page, limit)
    return paginated_response(UserResponse, users, meta)


@router.patch(
    "/{user_id}/deactivate",
    response_model=DataResponse[UserResponse],
    summary="Deactivate user",
    description="Deactivated users can no longer log in; existing tokens stop working",
)
async def deactivate_user(
    request: Request,
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.USER, Action.UPDATE)),
) -> Any:
    user = await user_service.deactivate(db, user_id)
    response = data_response(UserResponse, user, "User deactivated")
    await audit_log_service.log_event(
        db, request, actor, AuditAction.UPDATE, "USER", user.id, description="Deactivated"
    )
    return response


@router.get(
    "/{user_id}",
    response_model=DataResponse[UserResponse],
    summary="Get user",
)
async def get_user(
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.USER, Action.READ)),
) -> Any:
    user = await user_service.get_user(db, user_id)
    return data_response(UserResponse, user)


@router.put(
    "/{user_id}",
    response_model=DataResponse[UserResponse],
    summary="Update user",
)
async def update_user(
    request: Request,
    user_id: UUID,
    user_in: UserUpdate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.USER, Action.UPDATE)),
) -> Any:
    patch = user_in.model_dump(exclude_unset=True)
    user = await user_service.update_user(db, user_id, patch)
    response = data_response(UserResponse, user, "User updated successfully")
    await audit_log_service.log_event(
        db,
        request,
        actor,
        AuditAction.UPDATE,
        "USER",
        user.id,
        changes={k: str(v) for k, v in patch.items()},
    )
    return response


@router.patch(
    "/{user_id}/toggle-status",
    response_model=DataResponse[UserResponse],
    summary="Activate or deactivate user",
)
async def toggle_user_status(
    request: Request,
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.USER, Action.UPDATE)),
) -> Any:
    user = await user_service.toggle_status(db, user_id, actor)
    state = "activated" if user.is_active else "deactivated"
    response = data_response(UserResponse, user, f"User {state}")
    await audit_log_service.log_event(
        db, request, actor, AuditAction.UPDATE, "USER", user.id, description=state.capitalize()
    )
    return response
