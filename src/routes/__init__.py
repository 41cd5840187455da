# src/routes/__init__.py
from .auth import router as auth_router
from .users import router as users_router
from .profile import router as profile_router
from .patients import router as patients_router
from .surgeries import router as surgeries_router
from .follow_ups import router as follow_ups_router
from .private_notes import router as private_notes_router
from .media import router as media_router
from .document_requests import router as document_requests_router
from .reminders import router as reminders_router
from .notifications import router as notifications_router
from .audit_logs import router as audit_logs_router
from .whatsapp import router as whatsapp_router

__all__ = [
    "auth_router",
    "users_router",
    "profile_router",
    "patients_router",
    "surgeries_router",
    "follow_ups_router",
    "private_notes_router",
    "media_router",
    "document_requests_router",
    "reminders_router",
    "notifications_router",
    "audit_logs_router",
    "whatsapp_router",
]
