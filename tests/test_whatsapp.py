# tests/test_whatsapp.py
import pytest

from core.config import settings
from models.user import UserRole
from services.whatsapp_service import format_phone_number, whatsapp_service

from conftest import auth_headers


@pytest.mark.parametrize(
    "raw",
    ["0300-1234567", "3001234567", "+92 300 1234567", "00923001234567", "923001234567"],
)
def test_format_phone_number(raw):
    assert format_phone_number(raw) == "923001234567"


def test_follow_up_message_mentions_doctor_and_time():
    from datetime import datetime, timezone

    body = whatsapp_service.build_follow_up_reminder(
        "Ayesha Khan",
        "Imran Ali",
        datetime(2026, 3, 2, tzinfo=timezone.utc),
        scheduled_time="10:30",
    )
    assert "Dear Ayesha Khan," in body
    assert "with Dr. Imran Ali." in body
    assert "Date: Monday, 02 March 2026" in body
    assert "Time: 10:30" in body


async def test_send_without_credentials_is_refused():
    from services.whatsapp_service import WhatsAppNotConfiguredError

    assert whatsapp_service.is_configured() is False
    with pytest.raises(WhatsAppNotConfiguredError):
        await whatsapp_service.send_text_message("03001234567", "hello")


async def test_template_message_payload(monkeypatch):
    from schemas.whatsapp_schemas import WhatsAppSendResult

    sent = []

    async def fake_post(payload):
        sent.append(payload)
        return WhatsAppSendResult(success=True, message_id="wamid.1", to=payload["to"])

    monkeypatch.setattr(whatsapp_service, "_post", fake_post)

    result = await whatsapp_service.send_template_message("0300-1234567", "hello_world")

    assert result.success is True
    assert sent[0]["type"] == "template"
    assert sent[0]["to"] == "923001234567"
    assert sent[0]["template"] == {"name": "hello_world", "language": {"code": "en"}}


async def test_status_reports_unconfigured(client, make_user):
    admin = await make_user(UserRole.ADMIN)

    response = await client.get("/api/whatsapp/status", headers=auth_headers(admin))

    assert response.status_code == 200
    assert response.json()["data"]["configured"] is False


async def test_status_is_hidden_from_patients(client, make_user):
    patient = await make_user(UserRole.PATIENT)

    response = await client.get("/api/whatsapp/status", headers=auth_headers(patient))

    assert response.status_code == 403


async def test_patient_message_needs_configuration(client, make_user, make_patient):
    doctor = await make_user(UserRole.DOCTOR)
    patient = await make_patient(doctor)

    response = await client.post(
        f"/api/whatsapp/patient/{patient.id}/message",
        json={"message": "Please bring your X-rays"},
        headers=auth_headers(doctor),
    )

    assert response.status_code == 503
    assert response.json()["message"] == "WhatsApp service is not configured"


async def test_webhook_verification_echoes_challenge(client):
    response = await client.get(
        "/api/whatsapp/webhook",
        params={
            "hub.mode": "subscribe",
            "hub.verify_token": settings.WHATSAPP_WEBHOOK_VERIFY_TOKEN,
            "hub.challenge": "1158201444",
        },
    )
    assert response.status_code == 200
    assert response.text == "1158201444"


async def test_webhook_verification_rejects_wrong_token(client):
    response = await client.get(
        "/api/whatsapp/webhook",
        params={"hub.mode": "subscribe", "hub.verify_token": "nope", "hub.challenge": "1"},
    )
    assert response.status_code == 403


async def test_webhook_events_are_acknowledged(client):
    payload = {
        "entry": [
            {
                "changes": [
                    {
                        "value": {
                            "statuses": [
                                {"id": "wamid.1", "recipient_id": "923001234567", "status": "read"}
                            ]
                        }
                    }
                ]
            }
        ]
    }
    response = await client.post("/api/whatsapp/webhook", json=payload)
    assert response.status_code == 200
    assert response.json()["success"] is True
