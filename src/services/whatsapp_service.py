# src/services/whatsapp_service.py
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx

from core.config import settings
from schemas.whatsapp_schemas import WhatsAppConfigStatus, WhatsAppSendResult
from utils.logger import setup_logger

logger = setup_logger("WHATSAPP_SERVICE")


class WhatsAppNotConfiguredError(Exception):
    """Raised when a send is attempted without credentials."""


def format_phone_number(phone: str, country_code: Optional[str] = None) -> str:
    """Normalize to the digits-only, country-coded form the Graph API expects.

    "0300-1234567" -> "923001234567"; "3001234567" -> "923001234567".
    """
    code = country_code or settings.WHATSAPP_DEFAULT_COUNTRY_CODE
    digits = re.sub(r"\D", "", phone or "")
    if digits.startswith("00"):
        digits = digits[2:]
    if digits.startswith("0"):
        digits = code + digits[1:]
    if len(digits) == 10 and not digits.startswith(code):
        digits = code + digits
    return digits


class WhatsAppService:
    """Meta WhatsApp Cloud API adapter."""

    def is_configured(self) -> bool:
        return bool(settings.WHATSAPP_ACCESS_TOKEN and settings.WHATSAPP_PHONE_NUMBER_ID)

    def get_config_status(self) -> WhatsAppConfigStatus:
        phone_id = settings.WHATSAPP_PHONE_NUMBER_ID
        return WhatsAppConfigStatus(
            configured=self.is_configured(),
            phone_number_id=f"****{phone_id[-4:]}" if phone_id else None,
            api_version=settings.WHATSAPP_API_VERSION,
        )

    @property
    def messages_url(self) -> str:
        return (
            f"{settings.WHATSAPP_API_BASE_URL}/{settings.WHATSAPP_API_VERSION}"
            f"/{settings.WHATSAPP_PHONE_NUMBER_ID}/messages"
        )

    async def _post(self, payload: Dict[str, Any]) -> WhatsAppSendResult:
        if not self.is_configured():
            raise WhatsAppNotConfiguredError("WhatsApp service is not configured")

        headers = {
            "Authorization": f"Bearer {settings.WHATSAPP_ACCESS_TOKEN}",
            "Content-Type": "application/json",
        }
        to = payload.get("to")
        try:
            async with httpx.AsyncClient(timeout=settings.WHATSAPP_TIMEOUT_SECONDS) as client:
                response = await client.post(self.messages_url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"WhatsApp request to {to} failed: {e}")
            return WhatsAppSendResult(success=False, to=to, error=str(e))

        if response.status_code >= 400:
            try:
                error = response.json().get("error", {}).get("message")
            except ValueError:
                error = None
            error = error or f"HTTP {response.status_code}"
            logger.error(f"WhatsApp API rejected message to {to}: {error}")
            return WhatsAppSendResult(success=False, to=to, error=error)

        body = response.json()
        messages = body.get("messages") or [{}]
        message_id = messages[0].get("id")
        logger.info(f"WhatsApp message {message_id} sent to {to}")
        return WhatsAppSendResult(success=True, message_id=message_id, to=to)

    async def send_text_message(self, to: str, body: str) -> WhatsAppSendResult:
        return await self._post(
            {
                "messaging_product": "whatsapp",
                "recipient_type": "individual",
                "to": format_phone_number(to),
                "type": "text",
                "text": {"preview_url": False, "body": body},
            }
        )

    async def send_template_message(
        self,
        to: str,
        template_name: str,
        language_code: str = "en",
        components: Optional[List[Dict[str, Any]]] = None,
    ) -> WhatsAppSendResult:
        """Send a pre-approved template; required outside the 24h customer service window."""
        template: Dict[str, Any] = {"name": template_name, "language": {"code": language_code}}
        if components:
            template["components"] = components
        return await self._post(
            {
                "messaging_product": "whatsapp",
                "recipient_type": "individual",
                "to": format_phone_number(to),
                "type": "template",
                "template": template,
            }
        )

    # Message builders

    @staticmethod
    def build_follow_up_reminder(
        patient_name: str,
        doctor_name: Optional[str],
        follow_up_date: datetime,
        scheduled_time: Optional[str] = None,
        description: Optional[str] = None,
    ) -> str:
        lines = [
            "*Follow-up Reminder*",
            "",
            f"Dear {patient_name},",
            "",
            "This is a reminder for your upcoming follow-up appointment"
            + (f" with Dr. {doctor_name}." if doctor_name else "."),
            "",
            f"Date: {follow_up_date.strftime('%A, %d %B %Y')}",
        ]
        if scheduled_time:
            lines.append(f"Time: {scheduled_time}")
        if description:
            lines.extend(["", f"Details: {description}"])
        lines.extend(["", "Please contact us if you need to reschedule."])
        return "\n".join(lines)

    @staticmethod
    def build_document_request(
        patient_name: str,
        requester_name: str,
        document_title: str,
        description: Optional[str] = None,
    ) -> str:
        lines = [
            "*Document Request*",
            "",
            f"Dear {patient_name},",
            "",
            f"{requester_name} has requested the following document:",
            f"*{document_title}*",
        ]
        if description:
            lines.append(description)
        lines.extend(["", "Please upload it through your patient portal."])
        return "\n".join(lines)

    async def send_follow_up_reminder(
        self,
        to: str,
        patient_name: str,
        doctor_name: Optional[str],
        follow_up_date: datetime,
        scheduled_time: Optional[str] = None,
        description: Optional[str] = None,
    ) -> WhatsAppSendResult:
        body = self.build_follow_up_reminder(
            patient_name, doctor_name, follow_up_date, scheduled_time, description
        )
        return await self.send_text_message(to, body)

    async def send_document_request_notification(
        self,
        to: str,
        patient_name: str,
        requester_name: str,
        document_title: str,
        description: Optional[str] = None,
    ) -> WhatsAppSendResult:
        body = self.build_document_request(
            patient_name, requester_name, document_title, description
        )
        return await self.send_text_message(to, body)

    async def send_custom_message(
        self, to: str, patient_name: str, message: str, sender_name: Optional[str] = None
    ) -> WhatsAppSendResult:
        body = f"Dear {patient_name},\n\n{message}"
        if sender_name:
            body += f"\n\n- {sender_name}"
        return await self.send_text_message(to, body)


whatsapp_service = WhatsAppService()
