# tests/test_clinical_api.py
from datetime import timedelta

import pytest
from sqlalchemy import select

from models.reminder import Reminder
from models.user import User, UserRole
from utils.datetime_utils import utcnow

from conftest import auth_headers


@pytest.fixture
async def doctor(make_user):
    return await make_user(UserRole.DOCTOR)


@pytest.fixture
async def patient(doctor, make_patient):
    return await make_patient(doctor)


async def record_surgery(client, doctor, patient):
    response = await client.post(
        "/api/surgeries",
        json={
            "patient_id": str(patient.id),
            "diagnosis": "Displaced radius fracture",
            "procedure_name": "ORIF distal radius",
            "surgery_date": (utcnow() - timedelta(days=3)).isoformat(),
        },
        headers=auth_headers(doctor),
    )
    assert response.status_code == 201
    return response.json()["data"]


async def test_surgery_defaults_doctor_to_caller(client, doctor, patient):
    surgery = await record_surgery(client, doctor, patient)

    assert surgery["doctor_id"] == str(doctor.id)
    assert surgery["created_by"] == str(doctor.id)


async def test_surgery_for_unknown_patient_is_400(client, doctor):
    response = await client.post(
        "/api/surgeries",
        json={
            "patient_id": "00000000-0000-0000-0000-000000000000",
            "diagnosis": "x",
            "procedure_name": "y",
            "surgery_date": utcnow().isoformat(),
        },
        headers=auth_headers(doctor),
    )
    assert response.status_code == 400


async def test_follow_up_inherits_patient_and_schedules_reminders(
    client, db, doctor, patient
):
    surgery = await record_surgery(client, doctor, patient)

    response = await client.post(
        "/api/follow-ups",
        json={
            "surgery_id": surgery["id"],
            "follow_up_date": (utcnow() + timedelta(days=5)).isoformat(),
            "scheduled_time": "09:30",
            "reminder_days": [1, 2],
            "reminder_channels": ["IN_APP"],
        },
        headers=auth_headers(doctor),
    )

    assert response.status_code == 201
    follow_up = response.json()["data"]
    assert follow_up["patient_id"] == str(patient.id)
    assert follow_up["status"] == "PENDING"

    reminders = (await db.execute(select(Reminder))).scalars().all()
    assert sorted(r.days_before for r in reminders) == [1, 2]
    assert {r.recipient_id for r in reminders} == {patient.user_id}


async def test_follow_up_status_change(client, doctor, patient):
    surgery = await record_surgery(client, doctor, patient)
    created = await client.post(
        "/api/follow-ups",
        json={"surgery_id": surgery["id"], "follow_up_date": utcnow().isoformat()},
        headers=auth_headers(doctor),
    )
    follow_up_id = created.json()["data"]["id"]

    response = await client.patch(
        f"/api/follow-ups/{follow_up_id}/status",
        json={"status": "COMPLETED", "observations": "Union progressing"},
        headers=auth_headers(doctor),
    )

    assert response.status_code == 200
    assert response.json()["data"]["status"] == "COMPLETED"
    assert response.json()["data"]["observations"] == "Union progressing"

    mine = await client.get(
        "/api/follow-ups/mine", params={"status": "COMPLETED"}, headers=auth_headers(doctor)
    )
    assert [f["id"] for f in mine.json()["data"]] == [follow_up_id]


async def test_private_notes_never_reach_patients(client, db, doctor, patient):
    created = await client.post(
        "/api/private-notes",
        json={"patient_id": str(patient.id), "content": "Query compliance with splint"},
        headers=auth_headers(doctor),
    )
    assert created.status_code == 201
    note = created.json()["data"]
    assert note["created_by_role"] == "DOCTOR"

    account = await db.get(User, patient.user_id)
    response = await client.get(
        f"/api/private-notes/{note['id']}", headers=auth_headers(account)
    )
    assert response.status_code == 403


async def test_note_transcription_and_count(client, doctor, patient):
    created = await client.post(
        "/api/private-notes",
        json={"patient_id": str(patient.id), "content": "Dictated"},
        headers=auth_headers(doctor),
    )
    note_id = created.json()["data"]["id"]

    blank = await client.post(
        f"/api/private-notes/{note_id}/transcription",
        json={"transcription_text": "   "},
        headers=auth_headers(doctor),
    )
    assert blank.status_code == 400

    response = await client.post(
        f"/api/private-notes/{note_id}/transcription",
        json={"transcription_text": "Patient reports mild pain at night"},
        headers=auth_headers(doctor),
    )
    assert response.status_code == 200
    assert response.json()["data"]["has_transcription"] is True

    count = await client.get("/api/private-notes/count", headers=auth_headers(doctor))
    assert count.json()["count"] == 1


async def test_private_follow_ups_hidden_from_patient(client, db, doctor, patient):
    surgery = await record_surgery(client, doctor, patient)
    ids = {}
    for visibility in ("PUBLIC", "PRIVATE"):
        created = await client.post(
            "/api/follow-ups",
            json={
                "surgery_id": surgery["id"],
                "follow_up_date": utcnow().isoformat(),
                "visibility": visibility,
            },
            headers=auth_headers(doctor),
        )
        ids[visibility] = created.json()["data"]["id"]
    account = await db.get(User, patient.user_id)

    listed = await client.get(
        f"/api/follow-ups/patient/{patient.id}", headers=auth_headers(account)
    )
    assert [f["visibility"] for f in listed.json()["data"]] == ["PUBLIC"]

    hidden = await client.get(
        f"/api/follow-ups/{ids['PRIVATE']}", headers=auth_headers(account)
    )
    assert hidden.status_code == 404

    staff = await client.get(
        f"/api/follow-ups/patient/{patient.id}", headers=auth_headers(doctor)
    )
    assert staff.json()["pagination"]["total"] == 2
