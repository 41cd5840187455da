# tests/test_http_auth.py
from datetime import timedelta

import pytest

from models.user import UserRole

from conftest import TEST_PASSWORD, auth_headers


@pytest.fixture
async def doctor(make_user):
    return await make_user(UserRole.DOCTOR)


async def test_missing_token_is_401(client):
    response = await client.get("/api/patients")
    assert response.status_code == 401
    assert response.json()["success"] is False


async def test_garbage_token_is_401(client):
    response = await client.get(
        "/api/patients", headers={"Authorization": "Bearer not-a-jwt"}
    )
    assert response.status_code == 401


async def test_expired_token_is_401(client, doctor):
    response = await client.get(
        "/api/patients", headers=auth_headers(doctor, timedelta(minutes=-1))
    )
    assert response.status_code == 401


async def test_role_outside_policy_is_403(client, make_user):
    patient = await make_user(UserRole.PATIENT)

    response = await client.post(
        "/api/patients",
        json={
            "full_name": "Someone",
            "cnic": "3520212345671",
            "contact_number": "03001234567",
            "email": "someone@example.com",
        },
        headers=auth_headers(patient),
    )

    assert response.status_code == 403


async def test_deactivated_account_loses_access(client, make_user):
    inactive = await make_user(UserRole.DOCTOR, is_active=False)

    response = await client.get("/api/patients", headers=auth_headers(inactive))

    assert response.status_code == 401


async def test_login_returns_token_for_valid_credentials(client, doctor):
    response = await client.post(
        "/api/auth/login", json={"email": doctor.email, "password": TEST_PASSWORD}
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["token_type"] == "bearer"
    assert data["user"]["role"] == "DOCTOR"

    me = await client.get(
        "/api/auth/me", headers={"Authorization": f"Bearer {data['access_token']}"}
    )
    assert me.status_code == 200
    assert me.json()["data"]["email"] == doctor.email


@pytest.mark.parametrize(
    "email, password",
    [("nobody@example.com", TEST_PASSWORD), (None, "wrong-password")],
)
async def test_login_failures_share_one_message(client, doctor, email, password):
    response = await client.post(
        "/api/auth/login", json={"email": email or doctor.email, "password": password}
    )

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid email or password"


async def test_login_of_deactivated_account_is_403(client, make_user):
    inactive = await make_user(UserRole.DOCTOR, is_active=False)

    response = await client.post(
        "/api/auth/login", json={"email": inactive.email, "password": TEST_PASSWORD}
    )

    assert response.status_code == 403


async def test_logout_revokes_token(client, doctor):
    headers = auth_headers(doctor)

    assert (await client.post("/api/auth/logout", headers=headers)).status_code == 200

    response = await client.get("/api/auth/me", headers=headers)
    assert response.status_code == 401


async def test_patient_me_carries_patient_id(client, db, make_patient, doctor):
    from models.user import User

    patient = await make_patient(doctor)
    account = await db.get(User, patient.user_id)

    response = await client.get("/api/auth/me", headers=auth_headers(account))

    assert response.json()["data"]["patient_id"] == str(patient.id)


async def test_admin_creates_staff_but_not_patients(client, make_user):
    admin = await make_user(UserRole.ADMIN)
    payload = {
        "email": "surgeon@example.com",
        "password": "long-enough-pw",
        "full_name": "Dr. Surgeon",
        "role": "SURGEON",
    }

    created = await client.post("/api/users", json=payload, headers=auth_headers(admin))
    assert created.status_code == 201
    assert created.json()["data"]["role"] == "SURGEON"

    duplicate = await client.post("/api/users", json=payload, headers=auth_headers(admin))
    assert duplicate.status_code == 409

    patient = await client.post(
        "/api/users",
        json={**payload, "email": "p@example.com", "role": "PATIENT"},
        headers=auth_headers(admin),
    )
    assert patient.status_code == 400
