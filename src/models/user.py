# src/models/user.py
import uuid
from sqlalchemy import Column, String, DateTime, Boolean, Enum, Index, Uuid
from enum import Enum as PyEnum
from db.database import Base
from utils.datetime_utils import utcnow


class UserRole(str, PyEnum):
    PATIENT = "PATIENT"
    DOCTOR = "DOCTOR"
    SURGEON = "SURGEON"
    MODERATOR = "MODERATOR"
    ADMIN = "ADMIN"


STAFF_ROLES = frozenset(
    {UserRole.DOCTOR, UserRole.SURGEON, UserRole.MODERATOR, UserRole.ADMIN}
)


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    email = Column(String(100), nullable=False, unique=True)
    hashed_password = Column(String(255), nullable=False)
    full_name = Column(String(150), nullable=False)
    phone = Column(String(20), nullable=True)

    role = Column(Enum(UserRole), nullable=False)

    # Status
    is_active = Column(Boolean, default=True, nullable=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)
    last_login_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (Index("ix_users_role", "role"),)

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES
