# tests/test_scoped_records.py
from datetime import timedelta

import pytest

from models.user import UserRole
from services.private_note_service import PrivateNoteService, strategy_for_scope
from services.scoped_record_service import SingleOwnerStrategy
from services.surgery_service import surgery_service
from utils.datetime_utils import utcnow
from utils.exceptions import BadRequestException, NotFoundException

from conftest import actor_for


def surgery_data(patient, **overrides):
    data = {
        "patient_id": patient.id,
        "doctor_id": patient.created_by,
        "diagnosis": "Medial meniscus tear",
        "procedure_name": "Arthroscopic meniscectomy",
        "surgery_date": utcnow(),
    }
    data.update(overrides)
    return data


@pytest.fixture
async def doctors(make_user):
    return await make_user(UserRole.DOCTOR), await make_user(UserRole.DOCTOR)


async def test_create_stamps_creator_and_ignores_supplied_owner(db, doctors, make_patient):
    owner, other = doctors
    patient = await make_patient(owner)

    surgery = await surgery_service.create(
        db, surgery_data(patient, created_by=other.id, is_archived=True), actor_for(owner)
    )

    assert surgery.created_by == owner.id
    assert surgery.is_archived is False


async def test_archived_record_visible_only_to_owner_and_admin(
    db, doctors, make_user, make_patient
):
    owner, other = doctors
    admin = await make_user(UserRole.ADMIN)
    patient = await make_patient(owner)
    surgery = await surgery_service.create(db, surgery_data(patient), actor_for(owner))

    archived = await surgery_service.archive(db, surgery.id, actor_for(owner))
    assert archived.is_archived is True
    assert archived.archived_at is not None

    assert (await surgery_service.get_by_id(db, surgery.id, actor_for(owner))).is_archived
    assert (await surgery_service.get_by_id(db, surgery.id, actor_for(admin))).is_archived
    with pytest.raises(NotFoundException):
        await surgery_service.get_by_id(db, surgery.id, actor_for(other))

    items, meta = await surgery_service.list_by_patient(db, patient.id, actor_for(owner))
    assert items == []
    assert meta["total"] == 0


async def test_archive_is_one_way(db, doctors, make_patient):
    owner, _ = doctors
    patient = await make_patient(owner)
    surgery = await surgery_service.create(db, surgery_data(patient), actor_for(owner))
    await surgery_service.archive(db, surgery.id, actor_for(owner))

    with pytest.raises(NotFoundException):
        await surgery_service.archive(db, surgery.id, actor_for(owner))
    with pytest.raises(NotFoundException):
        await surgery_service.update(db, surgery.id, actor_for(owner), {"diagnosis": "x"})


async def test_non_owner_update_is_indistinguishable_from_missing(db, doctors, make_patient):
    owner, other = doctors
    patient = await make_patient(owner)
    surgery = await surgery_service.create(db, surgery_data(patient), actor_for(owner))

    with pytest.raises(NotFoundException) as foreign:
        await surgery_service.update(db, surgery.id, actor_for(other), {"diagnosis": "x"})
    with pytest.raises(NotFoundException) as missing:
        await surgery_service.update(
            db, patient.id, actor_for(other), {"diagnosis": "x"}
        )
    assert foreign.value.detail == missing.value.detail

    unchanged = await surgery_service.get_by_id(db, surgery.id, actor_for(owner))
    assert unchanged.diagnosis == "Medial meniscus tear"


async def test_admin_archives_but_cannot_edit_anothers_surgery(
    db, doctors, make_user, make_patient
):
    owner, _ = doctors
    admin = await make_user(UserRole.ADMIN)
    patient = await make_patient(owner)
    surgery = await surgery_service.create(db, surgery_data(patient), actor_for(owner))

    with pytest.raises(NotFoundException):
        await surgery_service.update(db, surgery.id, actor_for(admin), {"diagnosis": "x"})
    archived = await surgery_service.archive(db, surgery.id, actor_for(admin))
    assert archived.is_archived


async def test_update_drops_ownership_fields(db, doctors, make_patient):
    owner, other = doctors
    patient = await make_patient(owner)
    surgery = await surgery_service.create(db, surgery_data(patient), actor_for(owner))

    updated = await surgery_service.update(
        db,
        surgery.id,
        actor_for(owner),
        {"diagnosis": "Lateral meniscus tear", "created_by": other.id, "is_archived": True},
    )
    assert updated.diagnosis == "Lateral meniscus tear"
    assert updated.created_by == owner.id
    assert updated.is_archived is False

    with pytest.raises(BadRequestException):
        await surgery_service.update(db, surgery.id, actor_for(owner), {"created_by": other.id})


async def test_pagination_second_page(db, doctors, make_patient):
    owner, _ = doctors
    patient = await make_patient(owner)
    base = utcnow()
    for i in range(25):
        await surgery_service.create(
            db,
            surgery_data(patient, procedure_name=f"Procedure {i:02d}", surgery_date=base - timedelta(days=i)),
            actor_for(owner),
        )

    items, meta = await surgery_service.list_by_patient(
        db, patient.id, actor_for(owner), page=2, limit=10
    )

    # Newest first: page 2 holds the 11th..20th most recent
    assert [s.procedure_name for s in items] == [f"Procedure {i:02d}" for i in range(10, 20)]
    assert meta == {
        "total": 25,
        "page": 2,
        "limit": 10,
        "total_pages": 3,
        "has_more": True,
    }

    last, last_meta = await surgery_service.list_by_patient(
        db, patient.id, actor_for(owner), page=3, limit=10
    )
    assert len(last) == 5
    assert last_meta["has_more"] is False


async def test_patient_reads_only_own_records(db, doctors, make_patient):
    owner, _ = doctors
    mine = await make_patient(owner)
    theirs = await make_patient(owner)
    own_surgery = await surgery_service.create(db, surgery_data(mine), actor_for(owner))
    other_surgery = await surgery_service.create(db, surgery_data(theirs), actor_for(owner))

    from models.user import User

    account = await db.get(User, mine.user_id)
    patient_actor = actor_for(account, patient_id=mine.id)

    assert (await surgery_service.get_by_id(db, own_surgery.id, patient_actor)).id == own_surgery.id
    with pytest.raises(NotFoundException):
        await surgery_service.get_by_id(db, other_surgery.id, patient_actor)

    items, _ = await surgery_service.list_by_patient(db, theirs.id, patient_actor)
    assert items == []


async def test_single_owner_private_notes_hide_colleague_notes(
    db, doctors, make_user, make_patient
):
    owner, other = doctors
    admin = await make_user(UserRole.ADMIN)
    patient = await make_patient(owner)
    service = PrivateNoteService(SingleOwnerStrategy())

    note = await service.create(
        db, {"patient_id": patient.id, "content": "Wound healing well"}, actor_for(owner)
    )
    assert note.created_by_role == UserRole.DOCTOR
    assert note.created_by_name == owner.full_name

    with pytest.raises(NotFoundException):
        await service.get_by_id(db, note.id, actor_for(other))
    assert (await service.get_by_id(db, note.id, actor_for(admin))).id == note.id
    assert await service.count_visible(db, actor_for(other)) == 0
    assert await service.count_visible(db, actor_for(owner)) == 1


async def test_cohort_shared_private_notes_readable_by_colleagues(db, doctors, make_patient):
    owner, other = doctors
    patient = await make_patient(owner)
    service = PrivateNoteService(strategy_for_scope("cohort_shared"))

    note = await service.create(
        db, {"patient_id": patient.id, "content": "Review in two weeks"}, actor_for(owner)
    )
    assert (await service.get_by_id(db, note.id, actor_for(other))).id == note.id
    with pytest.raises(NotFoundException):
        await service.update(db, note.id, actor_for(other), {"content": "edited"})


async def test_transcription_requires_text(db, doctors, make_patient):
    owner, _ = doctors
    patient = await make_patient(owner)
    service = PrivateNoteService(SingleOwnerStrategy())
    note = await service.create(
        db, {"patient_id": patient.id, "content": "Voice memo"}, actor_for(owner)
    )

    with pytest.raises(BadRequestException):
        await service.add_transcription(db, note.id, actor_for(owner), "   ")

    updated = await service.add_transcription(db, note.id, actor_for(owner), "Patient reports no pain")
    assert updated.has_transcription is True
    assert updated.transcription_text == "Patient reports no pain"


def test_unknown_private_note_scope_rejected():
    with pytest.raises(ValueError):
        strategy_for_scope("everyone")
