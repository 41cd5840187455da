# tests/test_audit_log.py
from datetime import timedelta

import pytest
from sqlalchemy import select

from models.audit_log import AuditAction, AuditLog
from models.user import UserRole
from services.audit_log_service import audit_log_service
from utils.datetime_utils import utcnow
from utils.exceptions import BadRequestException

from conftest import auth_headers


@pytest.fixture
async def admin(make_user):
    return await make_user(UserRole.ADMIN)


async def add_log(db, age_days: float, **overrides) -> AuditLog:
    data = {
        "action": AuditAction.VIEW,
        "entity_type": "PATIENT",
        "created_at": utcnow() - timedelta(days=age_days),
    }
    data.update(overrides)
    entry = AuditLog(**data)
    db.add(entry)
    await db.commit()
    return entry


async def test_cleanup_enforces_minimum_retention(db):
    with pytest.raises(BadRequestException):
        await audit_log_service.delete_old_logs(db, 10)


async def test_cleanup_removes_only_old_entries(db):
    await add_log(db, 120)
    await add_log(db, 91)
    recent = await add_log(db, 5)

    deleted = await audit_log_service.delete_old_logs(db, 90)

    assert deleted == 2
    remaining = (await db.execute(select(AuditLog.id))).scalars().all()
    assert remaining == [recent.id]


async def test_failed_write_does_not_raise(db):
    entry = await audit_log_service.create_log(
        db, {"action": AuditAction.CREATE, "entity_type": None}
    )
    assert entry is None

    # Session is still usable afterwards
    assert await audit_log_service.log_event(
        db, None, None, AuditAction.CREATE, "PATIENT", "abc"
    ) is not None


async def test_changes_are_stored_as_json(db, admin):
    from conftest import actor_for

    entry = await audit_log_service.log_event(
        db,
        None,
        actor_for(admin),
        AuditAction.UPDATE,
        "SURGERY",
        admin.id,
        changes={"surgery_date": utcnow(), "notes": "x"},
    )
    assert entry.entity_id == str(admin.id)
    assert isinstance(entry.changes["surgery_date"], str)


async def test_stats_counts_by_action(db):
    await add_log(db, 1, action=AuditAction.CREATE)
    await add_log(db, 2, action=AuditAction.CREATE)
    await add_log(db, 3, action=AuditAction.DELETE, success=False)

    stats = await audit_log_service.get_stats(db)

    assert stats["total_logs"] == 3
    assert stats["action_counts"] == {"CREATE": 2, "DELETE": 1}
    assert stats["success_rate"] == pytest.approx(66.67)
    assert len(stats["recent_activity"]) == 7


async def test_audit_endpoints_are_admin_only(client, make_user):
    doctor = await make_user(UserRole.DOCTOR)

    response = await client.get("/api/audit-logs", headers=auth_headers(doctor))

    assert response.status_code == 403


async def test_cleanup_endpoint_rejects_short_window(client, admin):
    response = await client.delete(
        "/api/audit-logs/cleanup", params={"days": 10}, headers=auth_headers(admin)
    )
    assert response.status_code == 400


async def test_mutations_are_audited(client, admin, make_user):
    doctor = await make_user(UserRole.DOCTOR)
    created = await client.post(
        "/api/patients",
        json={
            "full_name": "Ayesha Khan",
            "cnic": "35202-1234567-1",
            "contact_number": "03001234567",
            "email": "ayesha@example.com",
        },
        headers=auth_headers(doctor),
    )
    assert created.status_code == 201
    patient_id = created.json()["data"]["id"]

    response = await client.get(
        f"/api/audit-logs/entity/PATIENT/{patient_id}", headers=auth_headers(admin)
    )

    assert response.status_code == 200
    logs = response.json()["data"]
    assert [log["action"] for log in logs] == ["CREATE"]
    assert logs[0]["user_id"] == str(doctor.id)
    assert logs[0]["request_method"] == "POST"


async def test_export_is_an_attachment(client, db, admin):
    await add_log(db, 1)

    response = await client.get("/api/audit-logs/export", headers=auth_headers(admin))

    assert response.status_code == 200
    assert response.headers["content-disposition"].startswith("attachment;")
    body = response.json()
    assert body["count"] == 1
    assert len(body["logs"]) == 1
    assert "exportedAt" in body
