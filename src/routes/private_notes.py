# src/routes/private_notes.py
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any
from uuid import UUID
from core.dependencies import PolicyChecker
from core.policy import Action, Actor, Resource
from db.database import get_db
from models.audit_log import AuditAction
from schemas.base_schemas import CountResponse, DataResponse, ListResponse, PaginatedResponse
from schemas.private_note_schemas import (
    PrivateNoteCreate,
    PrivateNoteResponse,
    PrivateNoteUpdate,
    TranscriptionRequest,
)
from services.audit_log_service import audit_log_service
from services.private_note_service import private_note_service
from utils.responses import data_response, list_response, paginated_response
from utils.logger import setup_logger

router = APIRouter(prefix="/private-notes", tags=["private-notes"])
logger = setup_logger("PRIVATE_NOTE_ROUTES")

ENTITY = "PRIVATE_NOTE"


@router.post(
    "",
    response_model=DataResponse[PrivateNoteResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create private note",
)
async def create_note(
    request: Request,
    note_in: PrivateNoteCreate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.PRIVATE_NOTE, Action.CREATE)),
) -> Any:
    note = await private_note_service.create_note(db, note_in, actor)
    response = data_response(PrivateNoteResponse, note, "Note created successfully")
    await audit_log_service.log_event(
        db, request, actor, AuditAction.CREATE, ENTITY, note.id
    )
    return response


@router.get(
    "/search",
    response_model=ListResponse[PrivateNoteResponse],
    summary="Search private notes",
    description="Case-sensitive match on title, content or transcription; at most 50 results",
)
async def search_notes(
    q: str = Query(..., description="Search term"),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.PRIVATE_NOTE, Action.SEARCH)),
) -> Any:
    notes = await private_note_service.search(db, q, actor)
    return list_response(PrivateNoteResponse, notes)


@router.get(
    "/mine",
    response_model=PaginatedResponse[PrivateNoteResponse],
    summary="My private notes",
)
async def list_my_notes(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.PRIVATE_NOTE, Action.LIST)),
) -> Any:
    notes, meta = await private_note_service.list_mine(db, actor, page, limit)
    return paginated_response(PrivateNoteResponse, notes, meta)


@router.get(
    "/count",
    response_model=CountResponse,
    summary="Count visible private notes",
)
async def count_notes(
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.PRIVATE_NOTE, Action.LIST)),
) -> Any:
    return CountResponse(count=await private_note_service.count_visible(db, actor))


@router.get(
    "/patient/{patient_id}",
    response_model=PaginatedResponse[PrivateNoteResponse],
    summary="List a patient's private notes",
)
async def list_patient_notes(
    patient_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.PRIVATE_NOTE, Action.LIST)),
) -> Any:
    notes, meta = await private_note_service.list_by_patient(db, patient_id, actor, page, limit)
    return paginated_response(PrivateNoteResponse, notes, meta)


@router.get(
    "/follow-up/{follow_up_id}",
    response_model=PaginatedResponse[PrivateNoteResponse],
    summary="List a follow-up's private notes",
)
async def list_follow_up_notes(
    follow_up_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.PRIVATE_NOTE, Action.LIST)),
) -> Any:
    notes, meta = await private_note_service.list_by_follow_up(
        db, follow_up_id, actor, page, limit
    )
    return paginated_response(PrivateNoteResponse, notes, meta)


@router.get(
    "/surgery/{surgery_id}",
    response_model=PaginatedResponse[PrivateNoteResponse],
    summary="List a surgery's private notes",
)
async def list_surgery_notes(
    surgery_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.PRIVATE_NOTE, Action.LIST)),
) -> Any:
    notes, meta = await private_note_service.list_by_surgery(db, surgery_id, actor, page, limit)
    return paginated_response(PrivateNoteResponse, notes, meta)


@router.get(
    "/{note_id}",
    response_model=DataResponse[PrivateNoteResponse],
    summary="Get private note",
)
async def get_note(
    note_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.PRIVATE_NOTE, Action.READ)),
) -> Any:
    note = await private_note_service.get_by_id(db, note_id, actor)
    return data_response(PrivateNoteResponse, note)


@router.put(
    "/{note_id}",
    response_model=DataResponse[PrivateNoteResponse],
    summary="Update private note",
)
async def update_note(
    request: Request,
    note_id: UUID,
    note_in: PrivateNoteUpdate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.PRIVATE_NOTE, Action.UPDATE)),
) -> Any:
    patch = note_in.model_dump(exclude_unset=True)
    note = await private_note_service.update(db, note_id, actor, patch)
    response = data_response(PrivateNoteResponse, note, "Note updated successfully")
    await audit_log_service.log_event(
        db, request, actor, AuditAction.UPDATE, ENTITY, note.id, changes=patch
    )
    return response


@router.post(
    "/{note_id}/transcription",
    response_model=DataResponse[PrivateNoteResponse],
    summary="Attach transcription",
)
async def add_transcription(
    request: Request,
    note_id: UUID,
    body: TranscriptionRequest,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.PRIVATE_NOTE, Action.UPDATE)),
) -> Any:
    note = await private_note_service.add_transcription(
        db, note_id, actor, body.transcription_text
    )
    response = data_response(PrivateNoteResponse, note, "Transcription saved")
    await audit_log_service.log_event(
        db, request, actor, AuditAction.UPDATE, ENTITY, note.id, description="Transcription added"
    )
    return response


@router.delete(
    "/{note_id}",
    response_model=DataResponse[PrivateNoteResponse],
    summary="Archive private note",
)
async def archive_note(
    request: Request,
    note_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.PRIVATE_NOTE, Action.ARCHIVE)),
) -> Any:
    note = await private_note_service.archive(db, note_id, actor)
    response = data_response(PrivateNoteResponse, note, "Note archived successfully")
    await audit_log_service.log_event(
        db, request, actor, AuditAction.ARCHIVE, ENTITY, note.id
    )
    return response
