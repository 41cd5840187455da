# src/models/auth.py
import uuid
from sqlalchemy import Column, String, DateTime, ForeignKey, Index, Uuid
from db.database import Base
from utils.datetime_utils import utcnow


class BlacklistedToken(Base):
    """Bearer tokens revoked at logout; rows are kept until the token expires."""

    __tablename__ = "blacklisted_tokens"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    token = Column(String(1024), nullable=False, unique=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (Index("ix_blacklisted_tokens_expires_at", "expires_at"),)
