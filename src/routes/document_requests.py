# src/routes/document_requests.py
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any
from uuid import UUID
from core.dependencies import PolicyChecker
from core.policy import Action, Actor, Resource
from db.database import get_db
from models.audit_log import AuditAction
from schemas.base_schemas import DataResponse, PaginatedResponse, ResponseBase
from schemas.document_request_schemas import (
    DocumentRequestCreate,
    DocumentRequestResponse,
)
from services.audit_log_service import audit_log_service
from services.document_request_service import (
    DEFAULT_PAGE_SIZE,
    ENTITY_TYPE,
    document_request_service,
)
from utils.responses import data_response, paginated_response
from utils.logger import setup_logger

router = APIRouter(prefix="/document-requests", tags=["document-requests"])
logger = setup_logger("DOCUMENT_REQUEST_ROUTES")


@router.post(
    "",
    response_model=DataResponse[DocumentRequestResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Request a document",
    description="Ask a patient to upload a document; the patient is notified in-app and by WhatsApp",
)
async def create_document_request(
    request: Request,
    request_in: DocumentRequestCreate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.DOCUMENT_REQUEST, Action.CREATE)),
) -> Any:
    document_request = await document_request_service.create_request(db, request_in, actor)
    await document_request_service.notify_patient(db, document_request, actor)
    response = data_response(
        DocumentRequestResponse, document_request, "Document request created"
    )
    await audit_log_service.log_event(
        db,
        request,
        actor,
        AuditAction.CREATE,
        ENTITY_TYPE,
        document_request.id,
        description=f"Requested '{document_request.title}'",
    )
    return response


@router.get(
    "/mine",
    response_model=PaginatedResponse[DocumentRequestResponse],
    summary="My document requests",
    description="Requests addressed to the calling patient",
)
async def list_my_requests(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.DOCUMENT_REQUEST, Action.LIST)),
) -> Any:
    items, meta = await document_request_service.list_mine(db, actor, page, limit)
    return paginated_response(DocumentRequestResponse, items, meta)


@router.get(
    "/surgeon",
    response_model=PaginatedResponse[DocumentRequestResponse],
    summary="Requests I issued",
)
async def list_issued_requests(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.DOCUMENT_REQUEST, Action.LIST)),
) -> Any:
    items, meta = await document_request_service.list_by_requester(db, actor, page, limit)
    return paginated_response(DocumentRequestResponse, items, meta)


@router.get(
    "/patient/{patient_id}",
    response_model=PaginatedResponse[DocumentRequestResponse],
    summary="List a patient's document requests",
)
async def list_patient_requests(
    patient_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.DOCUMENT_REQUEST, Action.LIST)),
) -> Any:
    items, meta = await document_request_service.list_by_patient(
        db, patient_id, actor, page, limit
    )
    return paginated_response(DocumentRequestResponse, items, meta)


@router.patch(
    "/{request_id}/cancel",
    response_model=DataResponse[DocumentRequestResponse],
    summary="Cancel document request",
)
async def cancel_request(
    request: Request,
    request_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.DOCUMENT_REQUEST, Action.UPDATE)),
) -> Any:
    document_request = await document_request_service.cancel(db, request_id, actor)
    response = data_response(DocumentRequestResponse, document_request, "Request cancelled")
    await audit_log_service.log_event(
        db, request, actor, AuditAction.UPDATE, ENTITY_TYPE, request_id, description="Cancelled"
    )
    return response


@router.delete(
    "/{request_id}",
    response_model=ResponseBase,
    summary="Delete document request",
)
async def delete_request(
    request: Request,
    request_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.DOCUMENT_REQUEST, Action.DELETE)),
) -> Any:
    await document_request_service.delete_request(db, request_id, actor)
    await audit_log_service.log_event(
        db, request, actor, AuditAction.DELETE, ENTITY_TYPE, request_id
    )
    return ResponseBase(message="Document request deleted")
