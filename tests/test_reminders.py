# tests/test_reminders.py
from datetime import timedelta

import pytest
from sqlalchemy import select

from models.follow_up import FollowUp
from models.notification import Notification
from models.reminder import Reminder, ReminderChannel, ReminderStatus
from models.surgery import Surgery
from models.user import UserRole
from schemas.whatsapp_schemas import WhatsAppSendResult
from services.reminder_service import describe_offset, reminder_service
from services.whatsapp_service import whatsapp_service
from utils.datetime_utils import utcnow
from utils.exceptions import NotFoundException

from conftest import actor_for


@pytest.fixture
async def doctor(make_user):
    return await make_user(UserRole.DOCTOR)


@pytest.fixture
def sent_messages(monkeypatch):
    sent = []

    async def fake_send(to, body):
        sent.append((to, body))
        return WhatsAppSendResult(success=True, message_id=f"wamid.{len(sent)}", to=to)

    monkeypatch.setattr(whatsapp_service, "is_configured", lambda: True)
    monkeypatch.setattr(whatsapp_service, "send_text_message", fake_send)
    return sent


async def add_reminder(db, recipient, creator, **overrides) -> Reminder:
    data = {
        "entity_type": "FOLLOW_UP",
        "entity_id": recipient.id,
        "recipient_id": recipient.id,
        "recipient_role": recipient.role,
        "recipient_name": recipient.full_name,
        "title": "Follow-up Reminder",
        "message": "See you tomorrow",
        "scheduled_for": utcnow() - timedelta(minutes=5),
        "channel": ReminderChannel.WHATSAPP,
        "created_by": creator.id,
    }
    data.update(overrides)
    reminder = Reminder(**data)
    db.add(reminder)
    await db.commit()
    return reminder


async def add_follow_up(db, patient, doctor, when) -> FollowUp:
    surgery = Surgery(
        patient_id=patient.id,
        doctor_id=doctor.id,
        diagnosis="ACL rupture",
        procedure_name="ACL reconstruction",
        surgery_date=utcnow() - timedelta(days=30),
        created_by=doctor.id,
    )
    db.add(surgery)
    await db.flush()
    follow_up = FollowUp(
        surgery_id=surgery.id,
        patient_id=patient.id,
        doctor_id=doctor.id,
        follow_up_date=when,
        created_by=doctor.id,
    )
    db.add(follow_up)
    await db.commit()
    return follow_up


@pytest.mark.parametrize(
    "days, expected",
    [
        (1, "1 day"),
        (3, "3 days"),
        (0.25, "6 hours"),
        (0.5, "12 hours"),
        (0.01, "14 minutes"),
    ],
)
def test_describe_offset(days, expected):
    assert describe_offset(days) == expected


async def test_batch_continues_past_individual_failures(
    db, doctor, make_user, make_patient, sent_messages
):
    first = await make_patient(doctor)
    second = await make_patient(doctor)
    staff_recipient = await make_user(UserRole.MODERATOR, phone=None)

    from models.user import User

    ok_one = await add_reminder(db, await db.get(User, first.user_id), doctor)
    ok_two = await add_reminder(
        db, await db.get(User, second.user_id), doctor, recipient_phone="0321-7654321"
    )
    no_phone = await add_reminder(db, staff_recipient, doctor)

    result = await reminder_service.process_pending_reminders(db)

    assert result["total"] == 3
    assert result["sent"] == 2
    assert result["failed"] == 1
    failures = [r for r in result["results"] if not r["success"]]
    assert failures[0]["reminder_id"] == no_phone.id
    assert failures[0]["error"] == "No phone number available"

    assert {to for to, _ in sent_messages} == {"03001234567", "0321-7654321"}

    for reminder in (ok_one, ok_two):
        await db.refresh(reminder)
        assert reminder.status == ReminderStatus.SENT
        assert reminder.attempts == 1
        assert reminder.sent_at is not None
    await db.refresh(no_phone)
    assert no_phone.status == ReminderStatus.FAILED
    assert no_phone.attempts == 1
    assert no_phone.error_message == "No phone number available"


async def test_unconfigured_whatsapp_marks_reminder_failed(db, doctor, make_patient):
    patient = await make_patient(doctor)
    from models.user import User

    reminder = await add_reminder(db, await db.get(User, patient.user_id), doctor)

    result = await reminder_service.process_pending_reminders(db)

    assert result["failed"] == 1
    await db.refresh(reminder)
    assert reminder.status == ReminderStatus.FAILED
    assert reminder.error_message == "WhatsApp service is not configured"


async def test_future_and_cancelled_reminders_are_left_alone(db, doctor, make_user):
    recipient = await make_user(UserRole.PATIENT)
    future = await add_reminder(
        db, recipient, doctor, scheduled_for=utcnow() + timedelta(days=1)
    )
    cancelled = await add_reminder(db, recipient, doctor, status=ReminderStatus.CANCELLED)

    result = await reminder_service.process_pending_reminders(db)

    assert result["total"] == 0
    await db.refresh(future)
    await db.refresh(cancelled)
    assert future.status == ReminderStatus.PENDING
    assert cancelled.status == ReminderStatus.CANCELLED


async def test_in_app_reminder_creates_notification(db, doctor, make_user):
    recipient = await make_user(UserRole.PATIENT)
    await add_reminder(db, recipient, doctor, channel=ReminderChannel.IN_APP)

    result = await reminder_service.process_pending_reminders(
        db, channel=ReminderChannel.IN_APP
    )

    assert result["sent"] == 1
    notices = (
        await db.execute(select(Notification).where(Notification.recipient_id == recipient.id))
    ).scalars().all()
    assert [n.title for n in notices] == ["Follow-up Reminder"]


async def test_follow_up_reminders_skip_past_offsets(db, doctor, make_patient):
    patient = await make_patient(doctor)
    follow_up = await add_follow_up(db, patient, doctor, utcnow() + timedelta(days=2))

    reminders = await reminder_service.create_follow_up_reminders(
        db,
        follow_up,
        days_before=[1, 3],
        channels=[ReminderChannel.WHATSAPP, ReminderChannel.IN_APP],
        actor=actor_for(doctor),
    )

    assert len(reminders) == 2
    assert {r.channel for r in reminders} == {ReminderChannel.WHATSAPP, ReminderChannel.IN_APP}
    assert all(r.days_before == 1 for r in reminders)
    assert all(r.recipient_id == patient.user_id for r in reminders)
    assert reminders[0].title == "Follow-up Reminder - 1 day before"


async def test_only_pending_reminders_can_be_cancelled(db, doctor, make_user):
    recipient = await make_user(UserRole.PATIENT)
    reminder = await add_reminder(db, recipient, doctor, status=ReminderStatus.SENT)

    with pytest.raises(NotFoundException):
        await reminder_service.cancel(db, reminder.id, actor_for(doctor))


async def test_other_staff_cannot_cancel(db, doctor, make_user):
    recipient = await make_user(UserRole.PATIENT)
    colleague = await make_user(UserRole.DOCTOR)
    reminder = await add_reminder(db, recipient, doctor)

    with pytest.raises(NotFoundException):
        await reminder_service.cancel(db, reminder.id, actor_for(colleague))

    cancelled = await reminder_service.cancel(db, reminder.id, actor_for(doctor))
    assert cancelled.status == ReminderStatus.CANCELLED
