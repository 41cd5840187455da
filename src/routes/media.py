# src/routes/media.py
from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any, Optional
from uuid import UUID
from core.dependencies import PolicyChecker
from core.policy import Action, Actor, Resource
from db.database import get_db
from models.audit_log import AuditAction
from models.surgery import Visibility
from schemas.base_schemas import DataResponse, ListResponse, PaginatedResponse
from schemas.media_schemas import MediaResponse, MediaStats, MediaUpdate
from schemas.private_note_schemas import TranscriptionRequest
from services.audit_log_service import audit_log_service
from services.media_service import media_service
from utils.responses import data_response, list_response, paginated_response
from utils.logger import setup_logger

router = APIRouter(prefix="/media", tags=["media"])
logger = setup_logger("MEDIA_ROUTES")

ENTITY = "MEDIA"


@router.post(
    "/upload",
    response_model=DataResponse[MediaResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Upload file",
    description="Upload an image, video, audio recording or document",
)
async def upload_media(
    request: Request,
    file: UploadFile = File(...),
    patient_id: Optional[UUID] = Form(None),
    follow_up_id: Optional[UUID] = Form(None),
    description: Optional[str] = Form(None),
    visibility: Visibility = Form(Visibility.PUBLIC),
    document_request_id: Optional[UUID] = Form(None),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.MEDIA, Action.CREATE)),
) -> Any:
    media = await media_service.upload(
        db,
        file,
        actor,
        patient_id=patient_id,
        follow_up_id=follow_up_id,
        description=description,
        visibility=visibility,
        document_request_id=document_request_id,
    )
    response = data_response(MediaResponse, media, "File uploaded successfully")
    await audit_log_service.log_event(
        db,
        request,
        actor,
        AuditAction.CREATE,
        ENTITY,
        media.id,
        description=f"Uploaded {media.file_name} ({media.file_size} bytes)",
    )
    return response


@router.get(
    "",
    response_model=PaginatedResponse[MediaResponse],
    summary="List all media",
)
async def list_all_media(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.MEDIA, Action.LIST_ALL)),
) -> Any:
    items, meta = await media_service.list_all(db, actor, page, limit)
    return paginated_response(MediaResponse, items, meta)


@router.get(
    "/stats",
    response_model=DataResponse[MediaStats],
    summary="Media statistics",
)
async def media_stats(
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.MEDIA, Action.STATS)),
) -> Any:
    stats = await media_service.get_stats(db)
    return DataResponse[MediaStats](data=MediaStats(**stats))


@router.get(
    "/search",
    response_model=ListResponse[MediaResponse],
    summary="Search media",
)
async def search_media(
    q: str = Query(..., description="Search term"),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.MEDIA, Action.SEARCH)),
) -> Any:
    items = await media_service.search(db, q, actor)
    return list_response(MediaResponse, items)


@router.get(
    "/follow-up/{follow_up_id}",
    response_model=PaginatedResponse[MediaResponse],
    summary="List a follow-up's media",
)
async def list_follow_up_media(
    follow_up_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.MEDIA, Action.LIST)),
) -> Any:
    items, meta = await media_service.list_by_follow_up(db, follow_up_id, actor, page, limit)
    return paginated_response(MediaResponse, items, meta)


@router.get(
    "/patient/{patient_id}",
    response_model=PaginatedResponse[MediaResponse],
    summary="List a patient's media",
)
async def list_patient_media(
    patient_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.MEDIA, Action.LIST)),
) -> Any:
    items, meta = await media_service.list_by_patient(db, patient_id, actor, page, limit)
    return paginated_response(MediaResponse, items, meta)


@router.get(
    "/{media_id}",
    response_model=DataResponse[MediaResponse],
    summary="Get media",
)
async def get_media(
    media_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.MEDIA, Action.READ)),
) -> Any:
    media = await media_service.get_by_id(db, media_id, actor)
    return data_response(MediaResponse, media)


@router.put(
    "/{media_id}",
    response_model=DataResponse[MediaResponse],
    summary="Update media details",
)
async def update_media(
    request: Request,
    media_id: UUID,
    media_in: MediaUpdate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.MEDIA, Action.UPDATE)),
) -> Any:
    patch = media_in.model_dump(exclude_unset=True)
    media = await media_service.update(db, media_id, actor, patch)
    response = data_response(MediaResponse, media, "Media updated successfully")
    await audit_log_service.log_event(
        db, request, actor, AuditAction.UPDATE, ENTITY, media.id, changes=patch
    )
    return response


@router.post(
    "/{media_id}/transcription",
    response_model=DataResponse[MediaResponse],
    summary="Attach transcription",
)
async def add_transcription(
    request: Request,
    media_id: UUID,
    body: TranscriptionRequest,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.MEDIA, Action.UPDATE)),
) -> Any:
    media = await media_service.add_transcription(db, media_id, actor, body.transcription_text)
    response = data_response(MediaResponse, media, "Transcription saved")
    await audit_log_service.log_event(
        db, request, actor, AuditAction.UPDATE, ENTITY, media.id, description="Transcription added"
    )
    return response


@router.delete(
    "/{media_id}",
    response_model=DataResponse[MediaResponse],
    summary="Archive media",
)
async def archive_media(
    request: Request,
    media_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.MEDIA, Action.ARCHIVE)),
) -> Any:
    media = await media_service.archive(db, media_id, actor)
    response = data_response(MediaResponse, media, "Media archived successfully")
    await audit_log_service.log_event(
        db, request, actor, AuditAction.ARCHIVE, ENTITY, media.id
    )
    return response
