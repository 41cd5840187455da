# src/routes/auth.py
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any
from core.config import settings
from core.dependencies import get_bearer_token, get_current_actor
from core.policy import Actor
from db.database import get_db
from models.audit_log import AuditAction
from schemas.auth_schemas import LoginRequest, TokenResponse
from schemas.base_schemas import DataResponse, ResponseBase
from schemas.user_schemas import ActorResponse, PasswordChange
from services.audit_log_service import audit_log_service
from services.auth_service import auth_service
from services.user_service import user_service
from utils.rate_limiter import limiter
from utils.logger import setup_logger

logger = setup_logger("AUTH_ROUTER")

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post(
    "/login",
    response_model=DataResponse[TokenResponse],
    summary="User login",
    description="Authenticate with email and password and receive a bearer token",
)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def login(
    request: Request, login_data: LoginRequest, db: AsyncSession = Depends(get_db)
) -> Any:
    """User login endpoint"""
    result = await auth_service.login(db, login_data)
    user = result["user"]
    await audit_log_service.log_event(
        db,
        request,
        None,
        AuditAction.LOGIN,
        "USER",
        user["id"],
        description=f"{user['email']} logged in",
    )
    return DataResponse[TokenResponse](
        data=TokenResponse(**result), message="Login successful"
    )


@router.post(
    "/logout",
    response_model=ResponseBase,
    status_code=status.HTTP_200_OK,
    summary="Logout",
    description="Revoke the presented bearer token",
)
async def logout(
    request: Request,
    token: str = Depends(get_bearer_token),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
) -> Any:
    await auth_service.logout(db, token, actor)
    await audit_log_service.log_event(
        db, request, actor, AuditAction.LOGOUT, "USER", actor.id
    )
    return ResponseBase(message="Logged out successfully")


@router.get(
    "/me",
    response_model=DataResponse[ActorResponse],
    summary="Current user",
)
async def me(actor: Actor = Depends(get_current_actor)) -> Any:
    return DataResponse[ActorResponse](
        data=ActorResponse(
            id=actor.id,
            email=actor.email,
            full_name=actor.name,
            role=actor.role,
            patient_id=actor.patient_id,
        )
    )


@router.post(
    "/change-password",
    response_model=ResponseBase,
    summary="Change password",
    description="Replace the caller's password after confirming the current one",
)
async def change_password(
    request: Request,
    password_data: PasswordChange,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
) -> Any:
    await user_service.change_password(db, actor.id, password_data)
    await audit_log_service.log_event(
        db,
        request,
        actor,
        AuditAction.UPDATE,
        "USER",
        actor.id,
        description="Password changed",
    )
    return ResponseBase(message="Password changed successfully")
