# src/routes/profile.py
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any
from core.dependencies import get_current_actor
from core.policy import Actor
from db.database import get_db
from models.audit_log import AuditAction
from models.user import User
from schemas.base_schemas import DataResponse, ResponseBase
from schemas.user_schemas import PasswordChange, ProfileResponse, ProfileUpdate
from services.audit_log_service import audit_log_service
from services.user_service import user_service

router = APIRouter(prefix="/profile", tags=["profile"])


async def build_profile(db: AsyncSession, user: User) -> ProfileResponse:
    profile = ProfileResponse.model_validate(user)
    patient = await user_service.get_linked_patient(db, user)
    if patient is not None:
        profile.patient_id = patient.id
        profile.patient_number = patient.patient_number
    return profile


@router.get("", response_model=DataResponse[ProfileResponse], summary="Own profile")
async def get_profile(
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
) -> Any:
    user = await user_service.get_user(db, actor.id)
    return DataResponse[ProfileResponse](data=await build_profile(db, user))


@router.put("", response_model=DataResponse[ProfileResponse], summary="Update own profile")
async def update_profile(
    request: Request,
    profile_in: ProfileUpdate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
) -> Any:
    patch = profile_in.model_dump(exclude_unset=True)
    user = await user_service.update_user(db, actor.id, patch)
    response = DataResponse[ProfileResponse](
        data=await build_profile(db, user), message="Profile updated successfully"
    )
    await audit_log_service.log_event(
        db,
        request,
        actor,
        AuditAction.UPDATE,
        "USER",
        actor.id,
        description="Profile updated",
        changes={k: str(v) for k, v in patch.items()},
    )
    return response


@router.post("/change-password", response_model=ResponseBase, summary="Change own password")
async def change_password(
    request: Request,
    password_data: PasswordChange,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
) -> Any:
    await user_service.change_password(db, actor.id, password_data)
    await audit_log_service.log_event(
        db, request, actor, AuditAction.UPDATE, "USER", actor.id, description="Password changed"
    )
    return ResponseBase(message="Password changed successfully")
