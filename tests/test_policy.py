# tests/test_policy.py
import pytest

from core.policy import (
    POLICY,
    Action,
    Resource,
    allowed_roles,
    authorize,
    evaluate,
)
from models.user import UserRole


def test_authorize_is_membership():
    assert authorize(UserRole.DOCTOR, [UserRole.DOCTOR, UserRole.SURGEON])
    assert not authorize(UserRole.PATIENT, [UserRole.DOCTOR])
    assert not authorize(None, [UserRole.ADMIN])
    assert not authorize(UserRole.ADMIN, [])


def test_unknown_pair_denies_everyone():
    assert allowed_roles(Resource.AUDIT_LOG, Action.CREATE) == frozenset()
    for role in UserRole:
        assert not evaluate(role, Resource.AUDIT_LOG, Action.CREATE)


@pytest.mark.parametrize(
    "role,expected",
    [
        (UserRole.DOCTOR, True),
        (UserRole.SURGEON, True),
        (UserRole.MODERATOR, True),
        (UserRole.ADMIN, False),
        (UserRole.PATIENT, False),
    ],
)
def test_private_note_creation_is_clinician_only(role, expected):
    assert evaluate(role, Resource.PRIVATE_NOTE, Action.CREATE) is expected


def test_patients_never_reach_private_notes():
    for (resource, action), roles in POLICY.items():
        if resource == Resource.PRIVATE_NOTE:
            assert UserRole.PATIENT not in roles, action


def test_audit_log_is_admin_only():
    for (resource, action), roles in POLICY.items():
        if resource == Resource.AUDIT_LOG:
            assert roles == frozenset({UserRole.ADMIN}), action


def test_document_request_roles():
    assert evaluate(UserRole.SURGEON, Resource.DOCUMENT_REQUEST, Action.CREATE)
    assert evaluate(UserRole.MODERATOR, Resource.DOCUMENT_REQUEST, Action.CREATE)
    assert not evaluate(UserRole.DOCTOR, Resource.DOCUMENT_REQUEST, Action.CREATE)
    assert evaluate(UserRole.PATIENT, Resource.DOCUMENT_REQUEST, Action.UPDATE)
    assert not evaluate(UserRole.MODERATOR, Resource.DOCUMENT_REQUEST, Action.DELETE)


def test_patient_archive_is_admin_only():
    assert evaluate(UserRole.ADMIN, Resource.PATIENT, Action.ARCHIVE)
    assert not evaluate(UserRole.SURGEON, Resource.PATIENT, Action.ARCHIVE)
