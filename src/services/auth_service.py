# src/services/auth_service.py
from datetime import timedelta
from typing import Any, Dict, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.policy import Actor
from models.auth import BlacklistedToken
from models.patient import Patient
from models.user import User, UserRole
from schemas.auth_schemas import LoginRequest
from utils.datetime_utils import utcnow
from utils.exceptions import ForbiddenException, UnauthorizedException
from utils.logger import setup_logger
from utils.security import (
    create_access_token,
    decode_access_token,
    token_expiry,
    verify_password,
)

logger = setup_logger("AUTH_SERVICE")


class AuthService:
    async def get_user_by_email(self, db: AsyncSession, email: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.email == email.lower()))
        return result.scalar_one_or_none()

    async def authenticate_user(
        self, db: AsyncSession, email: str, password: str
    ) -> User:
        user = await self.get_user_by_email(db, email)
        # Same message for unknown email and wrong password
        if user is None or not verify_password(password, user.hashed_password):
            logger.warning(f"Failed login for {email}")
            raise UnauthorizedException("Invalid email or password")
        if not user.is_active:
            logger.warning(f"Inactive user attempted login: {user.id}")
            raise ForbiddenException("Account is deactivated")
        return user

    async def build_actor(self, db: AsyncSession, user: User) -> Actor:
        patient_id = None
        if user.role == UserRole.PATIENT:
            result = await db.execute(select(Patient.id).where(Patient.user_id == user.id))
            patient_id = result.scalar_one_or_none()
        return Actor(
            id=user.id,
            role=UserRole(user.role),
            email=user.email,
            name=user.full_name,
            patient_id=patient_id,
        )

    async def login(self, db: AsyncSession, login_data: LoginRequest) -> Dict[str, Any]:
        user = await self.authenticate_user(db, login_data.email, login_data.password)

        expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        token = create_access_token(
            {"sub": str(user.id), "role": UserRole(user.role).value}, expires
        )

        user.last_login_at = utcnow()
        await db.commit()

        actor = await self.build_actor(db, user)
        logger.info(f"Successful login for user: {user.email}")
        return {
            "access_token": token,
            "token_type": "bearer",
            "expires_in": int(expires.total_seconds()),
            "user": {
                "id": actor.id,
                "email": actor.email,
                "full_name": actor.name,
                "role": actor.role,
                "patient_id": actor.patient_id,
            },
        }

    async def logout(self, db: AsyncSession, token: str, actor: Actor) -> None:
        """Revoke the presented token until it would have expired anyway."""
        payload = decode_access_token(token) or {}
        existing = await db.execute(
            select(BlacklistedToken.id).where(BlacklistedToken.token == token)
        )
        if existing.first() is None:
            db.add(
                BlacklistedToken(
                    token=token, user_id=actor.id, expires_at=token_expiry(payload)
                )
            )
            await db.commit()
        logger.info(f"User {actor.id} logged out")

    async def cleanup_expired_tokens(self, db: AsyncSession) -> int:
        result = await db.execute(
            delete(BlacklistedToken).where(BlacklistedToken.expires_at < utcnow())
        )
        await db.commit()
        return result.rowcount or 0


auth_service = AuthService()
