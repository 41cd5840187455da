# src/routes/surgeries.py
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any
from uuid import UUID
from core.dependencies import PolicyChecker
from core.policy import Action, Actor, Resource
from db.database import get_db
from models.audit_log import AuditAction
from schemas.base_schemas import DataResponse, ListResponse, PaginatedResponse
from schemas.surgery_schemas import SurgeryCreate, SurgeryResponse, SurgeryUpdate
from services.audit_log_service import audit_log_service
from services.surgery_service import surgery_service
from utils.responses import data_response, list_response, paginated_response
from utils.logger import setup_logger

router = APIRouter(prefix="/surgeries", tags=["surgeries"])
logger = setup_logger("SURGERY_ROUTES")

ENTITY = "SURGERY"


@router.post(
    "",
    response_model=DataResponse[SurgeryResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Record surgery",
)
async def create_surgery(
    request: Request,
    surgery_in: SurgeryCreate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.SURGERY, Action.CREATE)),
) -> Any:
    surgery = await surgery_service.create_surgery(db, surgery_in, actor)
    response = data_response(SurgeryResponse, surgery, "Surgery recorded successfully")
    await audit_log_service.log_event(
        db,
        request,
        actor,
        AuditAction.CREATE,
        ENTITY,
        surgery.id,
        description=f"Recorded {surgery.procedure_name}",
    )
    return response


@router.get(
    "/search",
    response_model=ListResponse[SurgeryResponse],
    summary="Search surgeries",
    description="Case-insensitive match on diagnosis or procedure name",
)
async def search_surgeries(
    q: str = Query(..., description="Search term"),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.SURGERY, Action.SEARCH)),
) -> Any:
    surgeries = await surgery_service.search(db, q, actor)
    return list_response(SurgeryResponse, surgeries)


@router.get(
    "/patient/{patient_id}",
    response_model=PaginatedResponse[SurgeryResponse],
    summary="List a patient's surgeries",
)
async def list_patient_surgeries(
    patient_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.SURGERY, Action.LIST)),
) -> Any:
    surgeries, meta = await surgery_service.list_by_patient(db, patient_id, actor, page, limit)
    return paginated_response(SurgeryResponse, surgeries, meta)


@router.get(
    "/doctor/{doctor_id}",
    response_model=PaginatedResponse[SurgeryResponse],
    summary="List a doctor's surgeries",
)
async def list_doctor_surgeries(
    doctor_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.SURGERY, Action.LIST)),
) -> Any:
    surgeries, meta = await surgery_service.list_by_doctor(db, doctor_id, actor, page, limit)
    return paginated_response(SurgeryResponse, surgeries, meta)


@router.get(
    "/{surgery_id}",
    response_model=DataResponse[SurgeryResponse],
    summary="Get surgery",
)
async def get_surgery(
    surgery_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.SURGERY, Action.READ)),
) -> Any:
    surgery = await surgery_service.get_by_id(db, surgery_id, actor)
    return data_response(SurgeryResponse, surgery)


@router.put(
    "/{surgery_id}",
    response_model=DataResponse[SurgeryResponse],
    summary="Update surgery",
    description="Only the clinician who recorded the surgery may edit it",
)
async def update_surgery(
    request: Request,
    surgery_id: UUID,
    surgery_in: SurgeryUpdate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.SURGERY, Action.UPDATE)),
) -> Any:
    patch = surgery_in.model_dump(exclude_unset=True)
    surgery = await surgery_service.update(db, surgery_id, actor, patch)
    response = data_response(SurgeryResponse, surgery, "Surgery updated successfully")
    await audit_log_service.log_event(
        db, request, actor, AuditAction.UPDATE, ENTITY, surgery.id, changes=patch
    )
    return response


@router.delete(
    "/{surgery_id}",
    response_model=DataResponse[SurgeryResponse],
    summary="Archive surgery",
)
async def archive_surgery(
    request: Request,
    surgery_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.SURGERY, Action.ARCHIVE)),
) -> Any:
    surgery = await surgery_service.archive(db, surgery_id, actor)
    response = data_response(SurgeryResponse, surgery, "Surgery archived successfully")
    await audit_log_service.log_event(
        db, request, actor, AuditAction.ARCHIVE, ENTITY, surgery.id
    )
    return response
