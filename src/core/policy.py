# src/core/policy.py
"""
Declarative access policy.

Every route names a (resource, action) pair; the allowed role set for that
pair lives here and nowhere else. Record-level ownership is enforced by the
services, after this gate has admitted the caller.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Iterable, Optional, Tuple
from uuid import UUID

from models.user import UserRole, STAFF_ROLES


class Resource(str, Enum):
    USER = "USER"
    PATIENT = "PATIENT"
    SURGERY = "SURGERY"
    FOLLOW_UP = "FOLLOW_UP"
    PRIVATE_NOTE = "PRIVATE_NOTE"
    MEDIA = "MEDIA"
    DOCUMENT_REQUEST = "DOCUMENT_REQUEST"
    REMINDER = "REMINDER"
    NOTIFICATION = "NOTIFICATION"
    AUDIT_LOG = "AUDIT_LOG"
    WHATSAPP = "WHATSAPP"


class Action(str, Enum):
    CREATE = "CREATE"
    READ = "READ"
    LIST = "LIST"
    LIST_ALL = "LIST_ALL"
    SEARCH = "SEARCH"
    UPDATE = "UPDATE"
    ARCHIVE = "ARCHIVE"
    DELETE = "DELETE"
    EXPORT = "EXPORT"
    STATS = "STATS"
    CLEANUP = "CLEANUP"
    SEND = "SEND"
    SEND_TEST = "SEND_TEST"
    PROCESS = "PROCESS"
    STATUS = "STATUS"


@dataclass(frozen=True)
class Actor:
    """The authenticated caller, as resolved from the bearer token."""

    id: UUID
    role: UserRole
    email: str
    name: str
    # Set only for PATIENT actors: their own patient record
    patient_id: Optional[UUID] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_patient(self) -> bool:
        return self.role == UserRole.PATIENT

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES


def roles(*members: UserRole) -> FrozenSet[UserRole]:
    return frozenset(members)


P, D, S, M, A = (
    UserRole.PATIENT,
    UserRole.DOCTOR,
    UserRole.SURGEON,
    UserRole.MODERATOR,
    UserRole.ADMIN,
)

EVERYONE = roles(P, D, S, M, A)
STAFF = frozenset(STAFF_ROLES)
CLINICIANS = roles(D, S, M)
ADMIN_ONLY = roles(A)

POLICY: Dict[Tuple[Resource, Action], FrozenSet[UserRole]] = {
    # Accounts
    (Resource.USER, Action.CREATE): ADMIN_ONLY,
    (Resource.USER, Action.LIST): ADMIN_ONLY,
    (Resource.USER, Action.READ): ADMIN_ONLY,
    (Resource.USER, Action.UPDATE): ADMIN_ONLY,
    # Patients
    (Resource.PATIENT, Action.CREATE): STAFF,
    (Resource.PATIENT, Action.LIST): STAFF,
    (Resource.PATIENT, Action.SEARCH): STAFF,
    (Resource.PATIENT, Action.READ): EVERYONE,
    (Resource.PATIENT, Action.UPDATE): STAFF,
    (Resource.PATIENT, Action.ARCHIVE): ADMIN_ONLY,
    # Surgeries
    (Resource.SURGERY, Action.CREATE): STAFF,
    (Resource.SURGERY, Action.LIST): EVERYONE,
    (Resource.SURGERY, Action.SEARCH): STAFF,
    (Resource.SURGERY, Action.READ): EVERYONE,
    (Resource.SURGERY, Action.UPDATE): STAFF,
    (Resource.SURGERY, Action.ARCHIVE): roles(D, S, A),
    # Follow-ups
    (Resource.FOLLOW_UP, Action.CREATE): STAFF,
    (Resource.FOLLOW_UP, Action.LIST): EVERYONE,
    (Resource.FOLLOW_UP, Action.READ): EVERYONE,
    (Resource.FOLLOW_UP, Action.UPDATE): STAFF,
    (Resource.FOLLOW_UP, Action.ARCHIVE): roles(D, S, A),
    # Private notes: never visible to patients
    (Resource.PRIVATE_NOTE, Action.CREATE): CLINICIANS,
    (Resource.PRIVATE_NOTE, Action.LIST): STAFF,
    (Resource.PRIVATE_NOTE, Action.SEARCH): STAFF,
    (Resource.PRIVATE_NOTE, Action.READ): STAFF,
    (Resource.PRIVATE_NOTE, Action.UPDATE): CLINICIANS,
    (Resource.PRIVATE_NOTE, Action.ARCHIVE): STAFF,
    # Media
    (Resource.MEDIA, Action.CREATE): EVERYONE,
    (Resource.MEDIA, Action.LIST): EVERYONE,
    (Resource.MEDIA, Action.LIST_ALL): ADMIN_ONLY,
    (Resource.MEDIA, Action.SEARCH): STAFF,
    (Resource.MEDIA, Action.READ): EVERYONE,
    (Resource.MEDIA, Action.UPDATE): EVERYONE,
    (Resource.MEDIA, Action.STATS): ADMIN_ONLY,
    (Resource.MEDIA, Action.ARCHIVE): roles(D, S, A),
    # Document requests
    (Resource.DOCUMENT_REQUEST, Action.CREATE): roles(S, M),
    (Resource.DOCUMENT_REQUEST, Action.LIST): roles(P, S, M),
    (Resource.DOCUMENT_REQUEST, Action.UPDATE): roles(P, M),
    (Resource.DOCUMENT_REQUEST, Action.DELETE): roles(S),
    # Reminders
    (Resource.REMINDER, Action.CREATE): STAFF,
    (Resource.REMINDER, Action.LIST): EVERYONE,
    (Resource.REMINDER, Action.READ): EVERYONE,
    (Resource.REMINDER, Action.UPDATE): STAFF,
    (Resource.REMINDER, Action.DELETE): STAFF,
    (Resource.REMINDER, Action.PROCESS): ADMIN_ONLY,
    # In-app notifications
    (Resource.NOTIFICATION, Action.LIST): EVERYONE,
    (Resource.NOTIFICATION, Action.UPDATE): EVERYONE,
    # Audit trail
    (Resource.AUDIT_LOG, Action.LIST): ADMIN_ONLY,
    (Resource.AUDIT_LOG, Action.READ): ADMIN_ONLY,
    (Resource.AUDIT_LOG, Action.STATS): ADMIN_ONLY,
    (Resource.AUDIT_LOG, Action.EXPORT): ADMIN_ONLY,
    (Resource.AUDIT_LOG, Action.CLEANUP): ADMIN_ONLY,
    # WhatsApp
    (Resource.WHATSAPP, Action.STATUS): roles(S, M, A),
    (Resource.WHATSAPP, Action.SEND): STAFF,
    (Resource.WHATSAPP, Action.SEND_TEST): ADMIN_ONLY,
    (Resource.WHATSAPP, Action.PROCESS): ADMIN_ONLY,
}


def authorize(role: Optional[UserRole], allowed_roles: Iterable[UserRole]) -> bool:
    """Pure role check: is `role` a member of `allowed_roles`?"""
    if role is None:
        return False
    return role in frozenset(allowed_roles)


def allowed_roles(resource: Resource, action: Action) -> FrozenSet[UserRole]:
    return POLICY.get((resource, action), frozenset())


def evaluate(role: Optional[UserRole], resource: Resource, action: Action) -> bool:
    """Unknown (resource, action) pairs deny."""
    return authorize(role, allowed_roles(resource, action))
