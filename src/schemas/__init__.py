# src/schemas/__init__.py
from .base_schemas import *
from .user_schemas import *
from .auth_schemas import *
from .patient_schemas import *
from .surgery_schemas import *
from .follow_up_schemas import *
from .private_note_schemas import *
from .media_schemas import *
from .document_request_schemas import *
from .reminder_schemas import *
from .notification_schemas import *
from .audit_log_schemas import *
