# src/routes/patients.py
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any
from uuid import UUID
from core.dependencies import PolicyChecker
from core.policy import Action, Actor, Resource
from db.database import get_db
from models.audit_log import AuditAction
from schemas.base_schemas import DataResponse, ListResponse, PaginatedResponse
from schemas.patient_schemas import PatientCreate, PatientResponse, PatientUpdate
from services.audit_log_service import audit_log_service
from services.patient_service import patient_service
from utils.responses import data_response, list_response, paginated_response
from utils.logger import setup_logger

router = APIRouter(prefix="/patients", tags=["patients"])
logger = setup_logger("PATIENT_ROUTES")

ENTITY = "PATIENT"


@router.post(
    "",
    response_model=DataResponse[PatientResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create patient",
    description="Create a patient record together with its login account",
)
async def create_patient(
    request: Request,
    patient_in: PatientCreate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.PATIENT, Action.CREATE)),
) -> Any:
    """Create patient endpoint"""
    patient, temporary_password = await patient_service.create_patient(db, patient_in, actor)
    await patient_service.send_welcome(patient, temporary_password)
    response = data_response(PatientResponse, patient, "Patient created successfully")
    await audit_log_service.log_event(
        db,
        request,
        actor,
        AuditAction.CREATE,
        ENTITY,
        patient.id,
        description=f"Registered patient {patient.patient_number}",
    )
    return response


@router.get(
    "",
    response_model=PaginatedResponse[PatientResponse],
    summary="List patients",
)
async def list_patients(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.PATIENT, Action.LIST)),
) -> Any:
    patients, meta = await patient_service.list_patients(db, actor, page, limit)
    return paginated_response(PatientResponse, patients, meta)


@router.get(
    "/search",
    response_model=ListResponse[PatientResponse],
    summary="Search patients",
    description="Case-insensitive match on name, CNIC, contact number or patient number",
)
async def search_patients(
    q: str = Query(..., description="Search term"),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.PATIENT, Action.SEARCH)),
) -> Any:
    patients = await patient_service.search(db, q, actor)
    return list_response(PatientResponse, patients)


@router.get(
    "/{patient_id}",
    response_model=DataResponse[PatientResponse],
    summary="Get patient",
)
async def get_patient(
    patient_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.PATIENT, Action.READ)),
) -> Any:
    patient = await patient_service.get_by_id(db, patient_id, actor)
    return data_response(PatientResponse, patient)


@router.put(
    "/{patient_id}",
    response_model=DataResponse[PatientResponse],
    summary="Update patient",
)
async def update_patient(
    request: Request,
    patient_id: UUID,
    patient_in: PatientUpdate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.PATIENT, Action.UPDATE)),
) -> Any:
    patch = patient_in.model_dump(exclude_unset=True)
    patient = await patient_service.update(db, patient_id, actor, patch)
    response = data_response(PatientResponse, patient, "Patient updated successfully")
    await audit_log_service.log_event(
        db, request, actor, AuditAction.UPDATE, ENTITY, patient.id, changes=patch
    )
    return response


@router.delete(
    "/{patient_id}",
    response_model=DataResponse[PatientResponse],
    summary="Archive patient",
)
async def archive_patient(
    request: Request,
    patient_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.PATIENT, Action.ARCHIVE)),
) -> Any:
    patient = await patient_service.archive(db, patient_id, actor)
    response = data_response(PatientResponse, patient, "Patient archived successfully")
    await audit_log_service.log_event(
        db, request, actor, AuditAction.ARCHIVE, ENTITY, patient.id
    )
    return response
