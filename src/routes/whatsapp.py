# src/routes/whatsapp.py
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any, Optional
from uuid import UUID
from core.config import settings
from core.dependencies import PolicyChecker
from core.policy import Action, Actor, Resource
from db.database import get_db
from models.audit_log import AuditAction
from models.reminder import ReminderChannel, ReminderStatus
from models.user import User
from schemas.base_schemas import DataResponse, ResponseBase
from schemas.reminder_schemas import BatchProcessResult
from schemas.whatsapp_schemas import (
    DocumentRequestMessage,
    FollowUpRemindRequest,
    PatientMessageRequest,
    TestMessageRequest,
    WhatsAppConfigStatus,
    WhatsAppSendResult,
)
from services.audit_log_service import audit_log_service
from services.follow_up_service import follow_up_service
from services.patient_service import patient_service
from services.reminder_service import reminder_service
from services.whatsapp_service import WhatsAppNotConfiguredError, whatsapp_service
from utils.datetime_utils import as_utc
from utils.exceptions import (
    BadRequestException,
    ForbiddenException,
    ServiceUnavailableException,
)
from utils.logger import setup_logger

router = APIRouter(prefix="/whatsapp", tags=["whatsapp"])
logger = setup_logger("WHATSAPP_ROUTES")

NOT_CONFIGURED = "WhatsApp service is not configured"


def require_configured() -> None:
    if not whatsapp_service.is_configured():
        raise ServiceUnavailableException(NOT_CONFIGURED)


def send_response(result: WhatsAppSendResult, message: str) -> DataResponse[WhatsAppSendResult]:
    return DataResponse[WhatsAppSendResult](
        success=result.success,
        message=message if result.success else "WhatsApp message could not be sent",
        data=result,
    )


async def _send(coro) -> WhatsAppSendResult:
    try:
        return await coro
    except WhatsAppNotConfiguredError:
        raise ServiceUnavailableException(NOT_CONFIGURED)


@router.get(
    "/webhook",
    response_class=PlainTextResponse,
    summary="Webhook verification",
    description="Meta calls this once with hub.mode=subscribe and the shared verify token",
)
async def verify_webhook(
    mode: Optional[str] = Query(None, alias="hub.mode"),
    token: Optional[str] = Query(None, alias="hub.verify_token"),
    challenge: Optional[str] = Query(None, alias="hub.challenge"),
) -> Any:
    if mode == "subscribe" and token == settings.WHATSAPP_WEBHOOK_VERIFY_TOKEN:
        logger.info("WhatsApp webhook verified")
        return PlainTextResponse(challenge or "")
    logger.warning("WhatsApp webhook verification failed")
    raise ForbiddenException("Webhook verification failed")


@router.post("/webhook", response_model=ResponseBase, summary="Webhook events")
async def receive_webhook(request: Request) -> Any:
    """Delivery status callbacks. Always acknowledged so Meta does not retry."""
    try:
        payload = await request.json()
    except ValueError:
        logger.warning("WhatsApp webhook received a non-JSON body")
        return ResponseBase(message="ignored")

    for entry in payload.get("entry", []) if isinstance(payload, dict) else []:
        for change in entry.get("changes", []):
            value = change.get("value", {})
            for status_update in value.get("statuses", []):
                logger.info(
                    f"WhatsApp message {status_update.get('id')} to "
                    f"{status_update.get('recipient_id')}: {status_update.get('status')}"
                )
            for message in value.get("messages", []):
                logger.info(f"WhatsApp inbound message from {message.get('from')}")
    return ResponseBase(message="received")


@router.get(
    "/status",
    response_model=DataResponse[WhatsAppConfigStatus],
    summary="WhatsApp configuration status",
)
async def whatsapp_status(
    actor: Actor = Depends(PolicyChecker(Resource.WHATSAPP, Action.STATUS)),
) -> Any:
    return DataResponse[WhatsAppConfigStatus](data=whatsapp_service.get_config_status())


@router.post(
    "/test",
    response_model=DataResponse[WhatsAppSendResult],
    summary="Send test message",
)
async def send_test_message(
    request: Request,
    body: TestMessageRequest,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.WHATSAPP, Action.SEND_TEST)),
) -> Any:
    require_configured()
    if body.template_name:
        send = whatsapp_service.send_template_message(
            body.phone_number, body.template_name, body.language_code
        )
    else:
        text = body.message or f"Test message from {settings.PROJECT_NAME}"
        send = whatsapp_service.send_text_message(body.phone_number, text)
    result = await _send(send)
    await audit_log_service.log_event(
        db,
        request,
        actor,
        AuditAction.SHARE,
        "WHATSAPP",
        description="Test message",
        success=result.success,
        error_message=result.error,
    )
    return send_response(result, "Test message sent")


@router.post(
    "/follow-up/{follow_up_id}/remind",
    response_model=DataResponse[WhatsAppSendResult],
    summary="Send follow-up reminder now",
)
async def remind_follow_up(
    request: Request,
    follow_up_id: UUID,
    body: Optional[FollowUpRemindRequest] = None,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.WHATSAPP, Action.SEND)),
) -> Any:
    require_configured()
    follow_up = await follow_up_service.get_by_id(db, follow_up_id, actor)
    patient = await patient_service.get_by_id(db, follow_up.patient_id, actor)
    phone = patient.whatsapp_number or patient.contact_number
    if not phone:
        raise BadRequestException("Patient has no phone number")

    if body and body.custom_message:
        send = whatsapp_service.send_custom_message(
            phone, patient.full_name, body.custom_message, actor.name
        )
    else:
        doctor = await db.get(User, follow_up.doctor_id)
        send = whatsapp_service.send_follow_up_reminder(
            phone,
            patient.full_name,
            doctor.full_name if doctor else None,
            as_utc(follow_up.follow_up_date),
            follow_up.scheduled_time,
            follow_up.description,
        )
    result = await _send(send)
    await audit_log_service.log_event(
        db,
        request,
        actor,
        AuditAction.SHARE,
        "FOLLOW_UP",
        follow_up.id,
        description="WhatsApp reminder",
        success=result.success,
        error_message=result.error,
    )
    return send_response(result, "Reminder sent")


@router.post(
    "/patient/{patient_id}/message",
    response_model=DataResponse[WhatsAppSendResult],
    summary="Message a patient",
)
async def message_patient(
    request: Request,
    patient_id: UUID,
    body: PatientMessageRequest,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.WHATSAPP, Action.SEND)),
) -> Any:
    require_configured()
    patient = await patient_service.get_by_id(db, patient_id, actor)
    phone = patient.whatsapp_number or patient.contact_number
    if not phone:
        raise BadRequestException("Patient has no phone number")
    result = await _send(
        whatsapp_service.send_custom_message(phone, patient.full_name, body.message, actor.name)
    )
    await audit_log_service.log_event(
        db,
        request,
        actor,
        AuditAction.SHARE,
        "PATIENT",
        patient.id,
        description="WhatsApp message",
        success=result.success,
        error_message=result.error,
    )
    return send_response(result, "Message sent")


@router.post(
    "/document-request",
    response_model=DataResponse[WhatsAppSendResult],
    summary="Send document request message",
)
async def send_document_request(
    request: Request,
    body: DocumentRequestMessage,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.WHATSAPP, Action.SEND)),
) -> Any:
    require_configured()
    patient = await patient_service.get_by_id(db, body.patient_id, actor)
    phone = patient.whatsapp_number or patient.contact_number
    if not phone:
        raise BadRequestException("Patient has no phone number")
    result = await _send(
        whatsapp_service.send_document_request_notification(
            phone, patient.full_name, actor.name, body.document_title, body.description
        )
    )
    await audit_log_service.log_event(
        db,
        request,
        actor,
        AuditAction.SHARE,
        "PATIENT",
        patient.id,
        description=f"WhatsApp document request: {body.document_title}",
        success=result.success,
        error_message=result.error,
    )
    return send_response(result, "Document request sent")


@router.post(
    "/process-reminders",
    response_model=DataResponse[BatchProcessResult],
    summary="Send due WhatsApp reminders",
)
async def process_whatsapp_reminders(
    request: Request,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(PolicyChecker(Resource.WHATSAPP, Action.PROCESS)),
) -> Any:
    pending = await reminder_service.count(
        db, {"status": ReminderStatus.PENDING, "channel": ReminderChannel.WHATSAPP}
    )
    if pending and not whatsapp_service.is_configured():
        raise ServiceUnavailableException(NOT_CONFIGURED)

    result = await reminder_service.process_pending_reminders(
        db, channel=ReminderChannel.WHATSAPP
    )
    await audit_log_service.log_event(
        db,
        request,
        actor,
        AuditAction.UPDATE,
        "REMINDER",
        description=f"WhatsApp batch: {result['sent']} sent, {result['failed']} failed",
    )
    return DataResponse[BatchProcessResult](
        data=BatchProcessResult(**result), message="WhatsApp reminders processed"
    )
