# src/services/document_request_service.py
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import delete, false, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.policy import Actor
from models.document_request import DocumentRequest, DocumentRequestStatus
from models.notification import NotificationPriority, NotificationType
from models.patient import Patient
from models.user import User, UserRole
from schemas.document_request_schemas import DocumentRequestCreate
from services.email_service import email_service
from services.notification_service import notification_service
from services.patient_service import patient_service
from services.whatsapp_service import whatsapp_service
from utils.datetime_utils import utcnow
from utils.exceptions import BadRequestException, NotFoundException, handle_db_exception
from utils.logger import setup_logger
from .base_service import BaseService

logger = setup_logger("DOCUMENT_REQUEST_SERVICE")

ENTITY_TYPE = "DOCUMENT_REQUEST"
DEFAULT_PAGE_SIZE = 20


class DocumentRequestService(BaseService):
    def __init__(self):
        super().__init__(DocumentRequest, "DOCUMENT_REQUEST_SERVICE")

    def _order_by(self) -> list:
        return [DocumentRequest.requested_at.desc()]

    async def create_request(
        self, db: AsyncSession, request_in: DocumentRequestCreate, actor: Actor
    ) -> DocumentRequest:
        await patient_service.get_active(db, request_in.patient_id)
        data = request_in.model_dump()
        data.update(
            surgeon_id=actor.id if actor.role == UserRole.SURGEON else None,
            requested_by=actor.id,
            status=DocumentRequestStatus.PENDING,
        )
        return await self.create_from_dict(db, data)

    async def notify_patient(
        self, db: AsyncSession, document_request: DocumentRequest, actor: Actor
    ) -> None:
        """In-app, WhatsApp and email notices of a new request.

        Each channel is independent; none of them can fail the request.
        """
        patient = await db.get(Patient, document_request.patient_id)
        if patient is None:
            return

        try:
            await notification_service.notify(
                db,
                recipient_id=patient.user_id,
                recipient_role=UserRole.PATIENT,
                title="Document requested",
                message=f"{actor.name} requested: {document_request.title}",
                type=NotificationType.DOCUMENT_REQUEST,
                entity_type=ENTITY_TYPE,
                entity_id=document_request.id,
                priority=NotificationPriority.HIGH,
            )
        except Exception as e:
            logger.error(f"In-app notice for document request {document_request.id} failed: {e}")

        phone = patient.whatsapp_number or patient.contact_number
        if whatsapp_service.is_configured() and phone:
            try:
                await whatsapp_service.send_document_request_notification(
                    phone,
                    patient.full_name,
                    actor.name,
                    document_request.title,
                    document_request.description,
                )
            except Exception as e:
                logger.error(f"WhatsApp notice for document request {document_request.id} failed: {e}")

        if patient.email:
            try:
                await email_service.send_document_request_email(
                    patient.email,
                    patient.full_name,
                    actor.name,
                    document_request.title,
                    document_request.description,
                )
            except Exception as e:
                logger.error(f"Email notice for document request {document_request.id} failed: {e}")

    async def notify_uploaded(
        self, db: AsyncSession, document_request: DocumentRequest, actor: Actor
    ) -> None:
        requester = await db.get(User, document_request.requested_by)
        if requester is None:
            return
        try:
            await notification_service.notify(
                db,
                recipient_id=requester.id,
                recipient_role=requester.role,
                title="Document uploaded",
                message=f"{actor.name} uploaded: {document_request.title}",
                type=NotificationType.DOCUMENT_UPLOADED,
                entity_type=ENTITY_TYPE,
                entity_id=document_request.id,
            )
        except Exception as e:
            logger.error(f"Upload notice for document request {document_request.id} failed: {e}")

    async def list_mine(
        self, db: AsyncSession, actor: Actor, page: int = 1, limit: int = DEFAULT_PAGE_SIZE
    ) -> Tuple[List[DocumentRequest], dict]:
        if actor.patient_id is None:
            conditions = [false()]
        else:
            conditions = [DocumentRequest.patient_id == actor.patient_id]
        return await self.paginate(db, conditions, self._order_by(), page, limit)

    async def list_by_requester(
        self, db: AsyncSession, actor: Actor, page: int = 1, limit: int = DEFAULT_PAGE_SIZE
    ) -> Tuple[List[DocumentRequest], dict]:
        return await self.paginate(
            db, [DocumentRequest.requested_by == actor.id], self._order_by(), page, limit
        )

    async def list_by_patient(
        self,
        db: AsyncSession,
        patient_id: UUID,
        actor: Actor,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> Tuple[List[DocumentRequest], dict]:
        if actor.is_patient and patient_id != actor.patient_id:
            raise NotFoundException("Patient not found")
        conditions = [DocumentRequest.patient_id == patient_id]
        if actor.role == UserRole.SURGEON:
            conditions.append(DocumentRequest.requested_by == actor.id)
        return await self.paginate(db, conditions, self._order_by(), page, limit)

    async def get_pending(
        self, db: AsyncSession, request_id: UUID, patient_id: Optional[UUID]
    ) -> DocumentRequest:
        """A PENDING request for the given patient, or 400."""
        document_request = await self.get(db, request_id)
        if (
            document_request is None
            or document_request.status != DocumentRequestStatus.PENDING
            or (patient_id is not None and document_request.patient_id != patient_id)
        ):
            raise BadRequestException("Document request not found or no longer pending")
        return document_request

    async def _transition(
        self, db: AsyncSession, request_id: UUID, conditions: list, values: Dict[str, Any]
    ) -> DocumentRequest:
        try:
            result = await db.execute(
                update(DocumentRequest)
                .where(
                    DocumentRequest.id == request_id,
                    DocumentRequest.status == DocumentRequestStatus.PENDING,
                    *conditions,
                )
                .values(**values)
                .returning(DocumentRequest)
                .execution_options(synchronize_session="fetch")
            )
            document_request = result.scalar_one_or_none()
            if document_request is None:
                raise NotFoundException("Document request not found")
            await db.commit()
        except SQLAlchemyError as e:
            await handle_db_exception(db, logger, "update document request", e)
        return document_request

    async def cancel(self, db: AsyncSession, request_id: UUID, actor: Actor) -> DocumentRequest:
        conditions = []
        if actor.is_patient:
            if actor.patient_id is None:
                raise NotFoundException("Document request not found")
            conditions.append(DocumentRequest.patient_id == actor.patient_id)
        document_request = await self._transition(
            db, request_id, conditions, {"status": DocumentRequestStatus.CANCELLED}
        )
        logger.info(f"Cancelled document request {request_id} by {actor.id}")
        return document_request

    async def mark_as_uploaded(
        self, db: AsyncSession, request_id: UUID, media_id: UUID
    ) -> DocumentRequest:
        document_request = await self._transition(
            db,
            request_id,
            [],
            {
                "status": DocumentRequestStatus.UPLOADED,
                "uploaded_media_id": media_id,
                "uploaded_at": utcnow(),
            },
        )
        logger.info(f"Document request {request_id} fulfilled by media {media_id}")
        return document_request

    async def delete_request(self, db: AsyncSession, request_id: UUID, actor: Actor) -> None:
        """Requester-only hard delete; anyone else sees 404."""
        result = await db.execute(
            delete(DocumentRequest).where(
                DocumentRequest.id == request_id, DocumentRequest.requested_by == actor.id
            )
        )
        if not result.rowcount:
            raise NotFoundException("Document request not found")
        await db.commit()
        logger.info(f"Deleted document request {request_id}")


document_request_service = DocumentRequestService()
