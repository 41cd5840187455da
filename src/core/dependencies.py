from typing import Optional
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.policy import Action, Actor, Resource, allowed_roles, evaluate
from db.database import get_db
from models.auth import BlacklistedToken
from models.patient import Patient
from models.user import User, UserRole
from utils.exceptions import ForbiddenException, UnauthorizedException
from utils.logger import setup_logger
from utils.security import decode_access_token

logger = setup_logger("AUTH_GATE")

# auto_error=False: a missing header must surface as 401, not FastAPI's 403
bearer_scheme = HTTPBearer(auto_error=False)


async def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise UnauthorizedException("Authentication required")
    return credentials.credentials


async def is_token_revoked(db: AsyncSession, token: str) -> bool:
    result = await db.execute(
        select(BlacklistedToken.id).where(BlacklistedToken.token == token)
    )
    return result.first() is not None


async def get_current_actor(
    request: Request,
    token: str = Depends(get_bearer_token),
    db: AsyncSession = Depends(get_db),
) -> Actor:
    """
    Resolve the caller from the bearer token.

    Every failure here (bad signature, expiry, revocation, unknown or
    inactive account) is a 401; role checks happen afterwards.
    """
    payload = decode_access_token(token)
    if not payload or not payload.get("sub"):
        raise UnauthorizedException("Invalid or expired token")

    if await is_token_revoked(db, token):
        logger.warning("Revoked token presented")
        raise UnauthorizedException("Token has been revoked")

    user = await db.get(User, _parse_uuid(payload["sub"]))
    if user is None or not user.is_active:
        logger.warning(f"Token subject {payload['sub']} is missing or inactive")
        raise UnauthorizedException("Authentication required")

    patient_id = None
    if user.role == UserRole.PATIENT:
        result = await db.execute(select(Patient.id).where(Patient.user_id == user.id))
        patient_id = result.scalar_one_or_none()

    actor = Actor(
        id=user.id,
        role=UserRole(user.role),
        email=user.email,
        name=user.full_name,
        patient_id=patient_id,
    )
    request.state.actor = actor
    return actor


def _parse_uuid(value: str):
    try:
        return UUID(str(value))
    except ValueError:
        raise UnauthorizedException("Invalid token payload")


class PolicyChecker:
    """Route dependency: authenticate, then evaluate the policy table."""

    def __init__(self, resource: Resource, action: Action):
        self.resource = resource
        self.action = action

    async def __call__(self, actor: Actor = Depends(get_current_actor)) -> Actor:
        if not evaluate(actor.role, self.resource, self.action):
            logger.warning(
                f"Policy denied {actor.role.value} {actor.id} on "
                f"{self.resource.value}:{self.action.value}. "
                f"Allowed: {sorted(r.value for r in allowed_roles(self.resource, self.action))}"
            )
            raise ForbiddenException("Insufficient permissions")
        return actor
