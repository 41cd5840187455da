# src/services/user_service.py
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.policy import Actor
from models.patient import Patient
from models.user import User, UserRole
from schemas.user_schemas import PasswordChange, UserCreate
from utils.exceptions import BadRequestException, ConflictException, NotFoundException
from utils.logger import setup_logger
from utils.security import hash_password, verify_password
from .base_service import BaseService

logger = setup_logger("USER_SERVICE")


class UserService(BaseService):
    def __init__(self):
        super().__init__(User, "USER_SERVICE")

    async def ensure_email_available(
        self, db: AsyncSession, email: str, exclude_id: Optional[UUID] = None
    ) -> None:
        query = select(User.id).where(User.email == email.lower())
        if exclude_id is not None:
            query = query.where(User.id != exclude_id)
        result = await db.execute(query)
        if result.first() is not None:
            raise ConflictException("A user with this email already exists")

    def build_user(
        self,
        email: str,
        password: str,
        full_name: str,
        role: UserRole,
        phone: Optional[str] = None,
    ) -> User:
        return User(
            email=email.lower(),
            hashed_password=hash_password(password),
            full_name=full_name,
            role=role,
            phone=phone,
        )

    async def create_user(self, db: AsyncSession, user_in: UserCreate) -> User:
        await self.ensure_email_available(db, user_in.email)
        user = self.build_user(
            user_in.email, user_in.password, user_in.full_name, user_in.role, user_in.phone
        )
        db.add(user)
        await db.commit()
        await db.refresh(user)
        logger.info(f"Created {user.role} account {user.id}")
        return user

    async def list_users(
        self,
        db: AsyncSession,
        role: Optional[UserRole] = None,
        page: int = 1,
        limit: int = 50,
    ) -> Tuple[List[User], dict]:
        return await self.get_multi(db, page, limit, {"role": role})

    async def deactivate(self, db: AsyncSession, user_id: UUID) -> User:
        result = await db.execute(
            update(User)
            .where(User.id == user_id)
            .values(is_active=False)
            .returning(User)
            .execution_options(synchronize_session="fetch")
        )
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFoundException("User not found")
        await db.commit()
        logger.info(f"Deactivated user {user_id}")
        return user


    async def get_user(self, db: AsyncSession, user_id: UUID) -> User:
        user = await self.get(db, user_id)
        if user is None:
            raise NotFoundException("User not found")
        return user

    async def get_linked_patient(self, db: AsyncSession, user: User) -> Optional[Patient]:
        if UserRole(user.role) != UserRole.PATIENT:
            return None
        result = await db.execute(select(Patient).where(Patient.user_id == user.id))
        return result.scalar_one_or_none()

    async def update_user(
        self, db: AsyncSession, user_id: UUID, patch: Dict[str, Any]
    ) -> User:
        """Apply an admin or self-service edit. Email stays unique; patients keep their role."""
        user = await self.get_user(db, user_id)
        values = {k: v for k, v in patch.items() if v is not None}
        if not values:
            raise BadRequestException("No updatable fields provided")

        role = values.get("role")
        if role is not None and UserRole(user.role) == UserRole.PATIENT:
            raise BadRequestException("Patient accounts cannot change role")

        email = values.get("email")
        if email is not None:
            values["email"] = email = email.lower()
            await self.ensure_email_available(db, email, exclude_id=user.id)

        for field, value in values.items():
            setattr(user, field, value)

        # The patient record mirrors the login's name and email
        if {"email", "full_name"} & values.keys():
            patient = await self.get_linked_patient(db, user)
            if patient is not None:
                patient.email = user.email
                patient.full_name = user.full_name

        await db.commit()
        await db.refresh(user)
        logger.info(f"Updated user {user.id}: {sorted(values)}")
        return user

    async def change_password(
        self, db: AsyncSession, user_id: UUID, password_data: PasswordChange
    ) -> None:
        user = await self.get_user(db, user_id)
        if not verify_password(password_data.current_password, user.hashed_password):
            raise BadRequestException("Current password is incorrect")
        if password_data.new_password == password_data.current_password:
            raise BadRequestException("New password must differ from the current password")

        user.hashed_password = hash_password(password_data.new_password)
        await db.commit()
        logger.info(f"Password changed for user {user.id}")

    async def toggle_status(self, db: AsyncSession, user_id: UUID, actor: Actor) -> User:
        if user_id == actor.id:
            raise BadRequestException("You cannot change the status of your own account")
        user = await self.get_user(db, user_id)
        user.is_active = not user.is_active
        await db.commit()
        await db.refresh(user)
        logger.info(f"User {user_id} is now {'active' if user.is_active else 'inactive'}")
        return user


user_service = UserService()
