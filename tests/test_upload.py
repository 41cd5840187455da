# tests/test_upload.py
import os
import re

import pytest

from core.config import settings
from models.media import FileType
from models.user import User, UserRole
from utils.exceptions import BadRequestException
from utils.upload import classify_mime_type, generate_stored_name

from conftest import auth_headers


@pytest.mark.parametrize(
    "mime_type, expected",
    [
        ("image/jpeg", FileType.IMAGE),
        ("image/PNG; charset=binary", FileType.IMAGE),
        ("application/pdf", FileType.DOCUMENT),
        ("text/plain", FileType.DOCUMENT),
        ("audio/x-m4a", FileType.AUDIO),
        ("video/quicktime", FileType.VIDEO),
    ],
)
def test_classify_mime_type(mime_type, expected):
    assert classify_mime_type(mime_type) == expected


@pytest.mark.parametrize("mime_type", ["application/x-msdownload", "", None])
def test_unknown_mime_type_is_rejected(mime_type):
    with pytest.raises(BadRequestException):
        classify_mime_type(mime_type)


def test_stored_name_keeps_stem_and_extension():
    name = generate_stored_name("My Scan (1).PDF")
    assert re.fullmatch(r"My-Scan-1-\d{13}-[0-9a-f]{12}\.pdf", name)
    assert generate_stored_name("My Scan (1).PDF") != name


def test_stored_name_without_usable_stem():
    assert re.fullmatch(r"file-\d{13}-[0-9a-f]{12}", generate_stored_name(""))


@pytest.fixture
async def doctor(make_user):
    return await make_user(UserRole.DOCTOR)


def text_file(name="notes.txt", body=b"Post-op day 3: afebrile"):
    return {"file": (name, body, "text/plain")}


async def test_upload_stores_file(client, doctor, make_patient):
    patient = await make_patient(doctor)

    response = await client.post(
        "/api/media/upload",
        files=text_file(),
        data={"patient_id": str(patient.id), "description": "Ward round"},
        headers=auth_headers(doctor),
    )

    assert response.status_code == 201
    media = response.json()["data"]
    assert media["file_type"] == "DOCUMENT"
    assert media["file_size"] == len(b"Post-op day 3: afebrile")
    assert media["uploaded_by"] == str(doctor.id)
    assert media["uploaded_by_role"] == "DOCTOR"
    assert media["file_url"].startswith(settings.UPLOAD_URL_PATH + "/notes-")
    stored_name = media["file_url"].rsplit("/", 1)[1]
    assert os.path.exists(os.path.join(settings.UPLOAD_DIR, stored_name))


async def test_disallowed_type_is_rejected(client, doctor):
    response = await client.post(
        "/api/media/upload",
        files={"file": ("setup.exe", b"MZ\x90\x00", "application/x-msdownload")},
        headers=auth_headers(doctor),
    )
    assert response.status_code == 400


async def test_oversized_file_is_rejected(client, doctor, monkeypatch):
    monkeypatch.setattr(settings, "MAX_UPLOAD_SIZE_MB", 0)
    before = set(os.listdir(settings.UPLOAD_DIR))

    response = await client.post(
        "/api/media/upload", files=text_file(), headers=auth_headers(doctor)
    )

    assert response.status_code == 413
    assert set(os.listdir(settings.UPLOAD_DIR)) == before


async def test_patient_uploads_only_for_themselves(client, db, doctor, make_patient):
    mine = await make_patient(doctor)
    theirs = await make_patient(doctor)
    account = await db.get(User, mine.user_id)

    refused = await client.post(
        "/api/media/upload",
        files=text_file(),
        data={"patient_id": str(theirs.id)},
        headers=auth_headers(account),
    )
    assert refused.status_code == 400

    accepted = await client.post(
        "/api/media/upload", files=text_file(), headers=auth_headers(account)
    )
    assert accepted.status_code == 201
    assert accepted.json()["data"]["patient_id"] == str(mine.id)


async def test_private_media_hidden_from_patient(client, db, doctor, make_patient):
    patient = await make_patient(doctor)
    account = await db.get(User, patient.user_id)
    for visibility in ("PUBLIC", "PRIVATE"):
        response = await client.post(
            "/api/media/upload",
            files=text_file(name=f"{visibility.lower()}.txt"),
            data={"patient_id": str(patient.id), "visibility": visibility},
            headers=auth_headers(doctor),
        )
        assert response.status_code == 201

    staff_view = await client.get(
        f"/api/media/patient/{patient.id}", headers=auth_headers(doctor)
    )
    patient_view = await client.get(
        f"/api/media/patient/{patient.id}", headers=auth_headers(account)
    )

    assert staff_view.json()["pagination"]["total"] == 2
    assert [m["file_name"] for m in patient_view.json()["data"]] == ["public.txt"]


async def test_patient_cannot_open_private_media_by_id(client, db, doctor, make_patient):
    patient = await make_patient(doctor)
    account = await db.get(User, patient.user_id)
    uploaded = await client.post(
        "/api/media/upload",
        files=text_file(name="op-note.txt"),
        data={"patient_id": str(patient.id), "visibility": "PRIVATE"},
        headers=auth_headers(doctor),
    )
    media_id = uploaded.json()["data"]["id"]

    staff_view = await client.get(f"/api/media/{media_id}", headers=auth_headers(doctor))
    patient_view = await client.get(f"/api/media/{media_id}", headers=auth_headers(account))

    assert staff_view.status_code == 200
    assert patient_view.status_code == 404
