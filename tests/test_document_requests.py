# tests/test_document_requests.py
import pytest

from models.user import User, UserRole

from conftest import auth_headers


@pytest.fixture
async def surgeon(make_user):
    return await make_user(UserRole.SURGEON)


@pytest.fixture
async def patient(surgeon, make_patient):
    return await make_patient(surgeon)


@pytest.fixture
async def patient_headers(db, patient):
    return auth_headers(await db.get(User, patient.user_id))


async def request_document(client, surgeon, patient, title="Latest X-ray"):
    response = await client.post(
        "/api/document-requests",
        json={"patient_id": str(patient.id), "title": title, "category": "x_ray"},
        headers=auth_headers(surgeon),
    )
    assert response.status_code == 201
    return response.json()["data"]


async def test_request_notifies_patient(client, surgeon, patient, patient_headers):
    created = await request_document(client, surgeon, patient)
    assert created["status"] == "PENDING"
    assert created["surgeon_id"] == str(surgeon.id)
    assert created["requested_by"] == str(surgeon.id)

    notices = await client.get("/api/notifications", headers=patient_headers)
    data = notices.json()["data"]
    assert [n["title"] for n in data] == ["Document requested"]
    assert data[0]["priority"] == "HIGH"

    unread = await client.get("/api/notifications/unread-count", headers=patient_headers)
    assert unread.json()["count"] == 1


async def test_patient_sees_own_requests(
    client, surgeon, patient, patient_headers, make_patient
):
    await request_document(client, surgeon, patient)
    other = await make_patient(surgeon)
    await request_document(client, surgeon, other, title="Blood report")

    response = await client.get("/api/document-requests/mine", headers=patient_headers)

    assert [r["title"] for r in response.json()["data"]] == ["Latest X-ray"]

    foreign = await client.get(
        f"/api/document-requests/patient/{other.id}", headers=patient_headers
    )
    assert foreign.status_code == 404


async def test_upload_fulfils_request(client, surgeon, patient, patient_headers):
    created = await request_document(client, surgeon, patient)

    upload = await client.post(
        "/api/media/upload",
        files={"file": ("xray.png", b"\x89PNG\r\n\x1a\n", "image/png")},
        data={"document_request_id": created["id"]},
        headers=patient_headers,
    )
    assert upload.status_code == 201
    media_id = upload.json()["data"]["id"]

    issued = await client.get("/api/document-requests/surgeon", headers=auth_headers(surgeon))
    fulfilled = issued.json()["data"][0]
    assert fulfilled["status"] == "UPLOADED"
    assert fulfilled["uploaded_media_id"] == media_id
    assert fulfilled["uploaded_at"] is not None

    notices = await client.get("/api/notifications", headers=auth_headers(surgeon))
    assert [n["title"] for n in notices.json()["data"]] == ["Document uploaded"]

    again = await client.post(
        "/api/media/upload",
        files={"file": ("xray.png", b"\x89PNG\r\n\x1a\n", "image/png")},
        data={"document_request_id": created["id"]},
        headers=patient_headers,
    )
    assert again.status_code == 400


async def test_patient_cancels_pending_request(client, surgeon, patient, patient_headers):
    created = await request_document(client, surgeon, patient)

    cancelled = await client.patch(
        f"/api/document-requests/{created['id']}/cancel", headers=patient_headers
    )
    assert cancelled.status_code == 200
    assert cancelled.json()["data"]["status"] == "CANCELLED"

    twice = await client.patch(
        f"/api/document-requests/{created['id']}/cancel", headers=patient_headers
    )
    assert twice.status_code == 404


async def test_only_requester_deletes(client, surgeon, patient, make_user):
    created = await request_document(client, surgeon, patient)
    colleague = await make_user(UserRole.SURGEON)

    foreign = await client.delete(
        f"/api/document-requests/{created['id']}", headers=auth_headers(colleague)
    )
    assert foreign.status_code == 404

    own = await client.delete(
        f"/api/document-requests/{created['id']}", headers=auth_headers(surgeon)
    )
    assert own.status_code == 200


async def test_doctors_cannot_request_documents(client, make_user, patient):
    doctor = await make_user(UserRole.DOCTOR)

    response = await client.post(
        "/api/document-requests",
        json={"patient_id": str(patient.id), "title": "Scan"},
        headers=auth_headers(doctor),
    )

    assert response.status_code == 403
