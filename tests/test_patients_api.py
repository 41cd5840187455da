# tests/test_patients_api.py
import re
import uuid

import pytest

from models.user import User, UserRole
from utils.datetime_utils import utcnow

from conftest import auth_headers


def patient_payload(**overrides):
    data = {
        "full_name": "Ayesha Khan",
        "cnic": "35202-1234567-1",
        "contact_number": "03001234567",
        "email": "ayesha.khan@example.com",
    }
    data.update(overrides)
    return data


@pytest.fixture
async def doctor(make_user):
    return await make_user(UserRole.DOCTOR)


async def test_create_patient_assigns_number_and_account(client, db, doctor):
    response = await client.post(
        "/api/patients", json=patient_payload(), headers=auth_headers(doctor)
    )

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    patient = body["data"]
    assert re.fullmatch(rf"PAT-{utcnow().year}-\d{{4}}", patient["patient_number"])
    assert patient["created_by"] == str(doctor.id)
    # WhatsApp falls back to the contact number
    assert patient["whatsapp_number"] == "03001234567"

    account = await db.get(User, uuid.UUID(patient["user_id"]))
    assert account.role == UserRole.PATIENT
    assert account.email == "ayesha.khan@example.com"


async def test_patient_numbers_are_sequential(client, doctor):
    first = await client.post(
        "/api/patients", json=patient_payload(), headers=auth_headers(doctor)
    )
    second = await client.post(
        "/api/patients",
        json=patient_payload(cnic="35202-7654321-1", email="second@example.com"),
        headers=auth_headers(doctor),
    )

    first_seq = int(first.json()["data"]["patient_number"].rsplit("-", 1)[1])
    second_seq = int(second.json()["data"]["patient_number"].rsplit("-", 1)[1])
    assert second_seq == first_seq + 1


async def test_duplicate_cnic_is_conflict(client, doctor):
    await client.post("/api/patients", json=patient_payload(), headers=auth_headers(doctor))

    response = await client.post(
        "/api/patients",
        json=patient_payload(email="other@example.com"),
        headers=auth_headers(doctor),
    )

    assert response.status_code == 409


async def test_invalid_cnic_is_400(client, doctor):
    response = await client.post(
        "/api/patients", json=patient_payload(cnic="12345"), headers=auth_headers(doctor)
    )
    assert response.status_code == 400


async def test_patient_cannot_read_another_patient(client, db, doctor, make_patient):
    mine = await make_patient(doctor)
    theirs = await make_patient(doctor)
    account = await db.get(User, mine.user_id)

    own = await client.get(f"/api/patients/{mine.id}", headers=auth_headers(account))
    other = await client.get(f"/api/patients/{theirs.id}", headers=auth_headers(account))

    assert own.status_code == 200
    assert other.status_code == 404


async def test_doctor_lists_only_registered_patients(client, make_user, make_patient):
    first = await make_user(UserRole.DOCTOR)
    second = await make_user(UserRole.DOCTOR)
    moderator = await make_user(UserRole.MODERATOR)
    await make_patient(first)
    await make_patient(first)
    await make_patient(second)

    mine = await client.get("/api/patients", headers=auth_headers(first))
    everyone = await client.get("/api/patients", headers=auth_headers(moderator))

    assert mine.json()["pagination"]["total"] == 2
    assert everyone.json()["pagination"]["total"] == 3


async def test_archive_is_admin_only_and_final(client, make_user, make_patient, doctor):
    admin = await make_user(UserRole.ADMIN)
    patient = await make_patient(doctor)

    denied = await client.delete(f"/api/patients/{patient.id}", headers=auth_headers(doctor))
    assert denied.status_code == 403

    archived = await client.delete(f"/api/patients/{patient.id}", headers=auth_headers(admin))
    assert archived.status_code == 200
    assert archived.json()["data"]["is_archived"] is True

    again = await client.delete(f"/api/patients/{patient.id}", headers=auth_headers(admin))
    assert again.status_code == 404


async def test_update_changes_contact_details(client, doctor, make_patient):
    patient = await make_patient(doctor)

    response = await client.put(
        f"/api/patients/{patient.id}",
        json={"contact_number": "03331234567", "address": "Lahore"},
        headers=auth_headers(doctor),
    )

    assert response.status_code == 200
    assert response.json()["data"]["contact_number"] == "03331234567"
    assert response.json()["data"]["address"] == "Lahore"
