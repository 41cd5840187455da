# src/models/__init__.py
"""
Importing this package registers every mapped class on Base.metadata.
"""

from .user import User, UserRole, STAFF_ROLES
from .auth import BlacklistedToken
from .patient import Patient
from .surgery import Surgery, DoctorRole, Visibility
from .follow_up import FollowUp, FollowUpStatus
from .private_note import PrivateNote
from .media import Media, FileType
from .document_request import DocumentRequest, DocumentRequestStatus
from .reminder import Reminder, ReminderChannel, ReminderStatus
from .notification import Notification, NotificationType, NotificationPriority
from .audit_log import AuditLog, AuditAction

from sqlalchemy.orm import configure_mappers

configure_mappers()

__all__ = [
    "User",
    "UserRole",
    "STAFF_ROLES",
    "BlacklistedToken",
    "Patient",
    "Surgery",
    "DoctorRole",
    "Visibility",
    "FollowUp",
    "FollowUpStatus",
    "PrivateNote",
    "Media",
    "FileType",
    "DocumentRequest",
    "DocumentRequestStatus",
    "Reminder",
    "ReminderChannel",
    "ReminderStatus",
    "Notification",
    "NotificationType",
    "NotificationPriority",
    "AuditLog",
    "AuditAction",
]
