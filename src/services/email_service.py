# src/services/email_service.py
import asyncio
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import resend
from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape

from core.email_config import email_settings
from schemas.email_schemas import EmailRequest, EmailResponse, EmailType
from utils.logger import setup_logger

logger = setup_logger("EMAIL_SERVICE")


class EmailTemplateManager:
    """Manages email templates with Jinja2"""

    def __init__(self, template_dir: Optional[str] = None):
        default_dir = Path(__file__).resolve().parent.parent / "templates" / "email"
        self.template_dir = template_dir or email_settings.TEMPLATE_DIR or str(default_dir)

        if not Path(self.template_dir).is_dir():
            logger.warning(f"Template directory not found: {self.template_dir}")

        self.env = Environment(
            loader=FileSystemLoader(self.template_dir),
            autoescape=select_autoescape(["html", "xml"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def render_template(
        self, template_name: str, context: Dict[str, Any]
    ) -> Tuple[str, str]:
        """Render HTML and a plain-text fallback"""
        html_content = self.env.get_template(f"{template_name}.html").render(**context)

        try:
            text_content = self.env.get_template(f"{template_name}.txt").render(
                **context
            )
        except TemplateNotFound:
            text_content = re.sub(r"<[^>]+>", "", html_content)
            text_content = re.sub(r"\n\s*\n", "\n\n", text_content).strip()

        return html_content, text_content


class ResendEmailService:
    """Email adapter over the Resend API.

    Sends never raise: failures come back as EmailResponse(success=False)
    so callers can treat email as a side effect.
    """

    def __init__(self):
        self.template_manager = EmailTemplateManager()
        self.client = resend

        self.max_retries = 2
        self.retry_delay = 1  # seconds

        self.last_success: Optional[datetime] = None
        self.consecutive_failures = 0

        self.template_configs = {
            EmailType.WELCOME_PATIENT: {
                "template": "welcome_patient",
                "subject": f"Welcome to {email_settings.APP_NAME} - Your Patient Account",
            },
            EmailType.FOLLOW_UP_REMINDER: {
                "template": "follow_up_reminder",
                "subject": "Follow-up Reminder",
            },
            EmailType.DOCUMENT_REQUEST: {
                "template": "document_request",
                "subject": "Document Requested by Your Care Team",
            },
        }

    def is_configured(self) -> bool:
        return bool(email_settings.RESEND_API_KEY)

    def get_config_status(self) -> Dict[str, Any]:
        return {
            "configured": self.is_configured(),
            "sending_enabled": email_settings.SEND_EMAILS,
            "from_email": email_settings.FROM_EMAIL,
            "last_success": self.last_success.isoformat() if self.last_success else None,
            "consecutive_failures": self.consecutive_failures,
        }

    def _prepare_resend_params(
        self, email_request: EmailRequest, html_content: str, text_content: str
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "from": f"{email_settings.FROM_NAME} <{email_settings.FROM_EMAIL}>",
            "to": [str(address) for address in email_request.to],
            "subject": email_request.subject,
            "html": html_content,
            "text": text_content,
        }
        if email_request.reply_to:
            params["reply_to"] = str(email_request.reply_to)
        return params

    async def send_email(self, email_request: EmailRequest) -> EmailResponse:
        recipients = [str(address) for address in email_request.to]

        if not email_settings.SEND_EMAILS:
            logger.info(f"Email sending disabled. Would send to: {recipients}")
            return EmailResponse(
                success=True, message_id="simulated", recipients=recipients
            )

        if not self.is_configured():
            logger.warning(f"Email not configured; dropping mail to {recipients}")
            return EmailResponse(
                success=False,
                error="Email service is not configured",
                recipients=recipients,
            )

        try:
            html_content, text_content = self.template_manager.render_template(
                email_request.template_name, email_request.template_data
            )
        except TemplateNotFound as e:
            logger.error(f"Email template not found: {e}")
            return EmailResponse(
                success=False, error=f"Template not found: {e}", recipients=recipients
            )

        params = self._prepare_resend_params(email_request, html_content, text_content)
        resend.api_key = email_settings.RESEND_API_KEY

        last_error = None
        for attempt in range(self.max_retries):
            try:
                loop = asyncio.get_running_loop()
                result = await loop.run_in_executor(
                    None, lambda: self.client.Emails.send(params)
                )

                self.last_success = datetime.now(timezone.utc)
                self.consecutive_failures = 0
                if email_settings.LOG_EMAILS:
                    logger.info(f"Email sent successfully: {result['id']} to {recipients}")
                return EmailResponse(
                    success=True, message_id=result["id"], recipients=recipients
                )
            except Exception as e:
                last_error = str(e)
                self.consecutive_failures += 1
                logger.warning(
                    f"Email send failed (attempt {attempt + 1}/{self.max_retries}) "
                    f"to {recipients}: {last_error}"
                )
                if attempt < self.max_retries - 1:
                    await asyncio.sleep(self.retry_delay * (attempt + 1))

        return EmailResponse(success=False, error=last_error, recipients=recipients)

    async def send_templated_email(
        self, email_type: EmailType, to: List[str], template_data: Dict[str, Any]
    ) -> EmailResponse:
        config = self.template_configs[email_type]
        context = {
            "app_name": email_settings.APP_NAME,
            "support_email": email_settings.SUPPORT_EMAIL,
            "login_url": email_settings.LOGIN_URL,
            **template_data,
        }
        response = await self.send_email(
            EmailRequest(
                to=to,
                subject=template_data.get("subject") or config["subject"],
                template_name=config["template"],
                template_data=context,
            )
        )
        if not response.success:
            logger.error(f"Failed to send {email_type.value} email to {to}: {response.error}")
        return response

    async def send_welcome_email(
        self,
        email: str,
        patient_name: str,
        patient_number: str,
        temporary_password: str,
    ) -> EmailResponse:
        response = await self.send_templated_email(
            EmailType.WELCOME_PATIENT,
            to=[email],
            template_data={
                "patient_name": patient_name,
                "patient_number": patient_number,
                "email": email,
                "temporary_password": temporary_password,
            },
        )
        if not response.success:
            logger.warning(
                f"Welcome email could not be delivered to {email}; "
                f"patient {patient_number} needs credentials handed over manually"
            )
        return response

    async def send_follow_up_reminder_email(
        self,
        email: str,
        patient_name: str,
        title: str,
        message: str,
        follow_up_date: Optional[str] = None,
        scheduled_time: Optional[str] = None,
    ) -> EmailResponse:
        return await self.send_templated_email(
            EmailType.FOLLOW_UP_REMINDER,
            to=[email],
            template_data={
                "subject": title,
                "patient_name": patient_name,
                "title": title,
                "message": message,
                "follow_up_date": follow_up_date,
                "scheduled_time": scheduled_time,
            },
        )

    async def send_document_request_email(
        self,
        email: str,
        patient_name: str,
        requester_name: str,
        document_title: str,
        description: Optional[str] = None,
    ) -> EmailResponse:
        return await self.send_templated_email(
            EmailType.DOCUMENT_REQUEST,
            to=[email],
            template_data={
                "patient_name": patient_name,
                "requester_name": requester_name,
                "document_title": document_title,
                "description": description,
            },
        )


email_service = ResendEmailService()
