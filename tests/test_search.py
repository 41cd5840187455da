# tests/test_search.py
from datetime import timedelta

import pytest

from models.user import UserRole
from services.private_note_service import PrivateNoteService
from services.scoped_record_service import CohortSharedStrategy
from services.surgery_service import surgery_service
from utils.datetime_utils import utcnow
from utils.exceptions import BadRequestException
from utils.query import SEARCH_RESULT_CAP

from conftest import actor_for


@pytest.fixture
async def doctor(make_user):
    return await make_user(UserRole.DOCTOR)


@pytest.fixture
async def patient(doctor, make_patient):
    return await make_patient(doctor)


def new_surgery(patient, **overrides):
    data = {
        "patient_id": patient.id,
        "doctor_id": patient.created_by,
        "diagnosis": "Medial meniscus tear",
        "procedure_name": "Arthroscopic meniscectomy",
        "surgery_date": utcnow(),
    }
    data.update(overrides)
    return data


async def test_note_search_is_case_sensitive(db, doctor, patient):
    service = PrivateNoteService(CohortSharedStrategy())
    actor = actor_for(doctor)
    upper = await service.create(
        db, {"patient_id": patient.id, "content": "Knee stable on review"}, actor
    )
    lower = await service.create(
        db, {"patient_id": patient.id, "content": "Swelling around the knee"}, actor
    )

    assert [n.id for n in await service.search(db, "Knee", actor)] == [upper.id]
    assert [n.id for n in await service.search(db, "knee", actor)] == [lower.id]


async def test_note_search_covers_title_and_transcription(db, doctor, patient):
    service = PrivateNoteService(CohortSharedStrategy())
    actor = actor_for(doctor)
    titled = await service.create(
        db, {"patient_id": patient.id, "title": "Drain removal", "content": "Done"}, actor
    )
    dictated = await service.create(
        db, {"patient_id": patient.id, "content": "Voice memo"}, actor
    )
    await service.add_transcription(db, dictated.id, actor, "Drain output minimal")

    found = {n.id for n in await service.search(db, "Drain", actor)}
    assert found == {titled.id, dictated.id}


async def test_surgery_search_ignores_case(db, doctor, patient):
    surgery = await surgery_service.create(db, new_surgery(patient), actor_for(doctor))

    results = await surgery_service.search(db, "MENISCUS", actor_for(doctor))

    assert [s.id for s in results] == [surgery.id]


async def test_search_is_capped(db, doctor, patient):
    base = utcnow()
    for i in range(SEARCH_RESULT_CAP + 10):
        await surgery_service.create(
            db,
            new_surgery(patient, surgery_date=base - timedelta(hours=i)),
            actor_for(doctor),
        )

    results = await surgery_service.search(db, "tear", actor_for(doctor))
    assert len(results) == SEARCH_RESULT_CAP
    # Newest first
    assert results[0].surgery_date >= results[-1].surgery_date

    asked_for_more = await surgery_service.search(db, "tear", actor_for(doctor), limit=500)
    assert len(asked_for_more) == SEARCH_RESULT_CAP


@pytest.mark.parametrize("query", ["", "   "])
async def test_blank_query_is_rejected(db, doctor, query):
    with pytest.raises(BadRequestException):
        await surgery_service.search(db, query, actor_for(doctor))


async def test_wildcards_match_literally(db, doctor, patient):
    actor = actor_for(doctor)
    await surgery_service.create(db, new_surgery(patient), actor)
    graft = await surgery_service.create(
        db, new_surgery(patient, diagnosis="100% graft uptake"), actor
    )

    assert [s.id for s in await surgery_service.search(db, "%", actor)] == [graft.id]
    assert await surgery_service.search(db, "_eniscus", actor) == []


async def test_search_skips_archived_records(db, doctor, patient):
    actor = actor_for(doctor)
    surgery = await surgery_service.create(db, new_surgery(patient), actor)
    await surgery_service.archive(db, surgery.id, actor)

    assert await surgery_service.search(db, "meniscus", actor) == []


async def test_search_endpoint_requires_query(client, doctor):
    from conftest import auth_headers

    response = await client.get(
        "/api/surgeries/search", params={"q": " "}, headers=auth_headers(doctor)
    )
    assert response.status_code == 400
