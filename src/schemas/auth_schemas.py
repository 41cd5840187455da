# src/schemas/auth_schemas.py
from pydantic import EmailStr, Field
from .base_schemas import BaseSchema
from .user_schemas import ActorResponse


class LoginRequest(BaseSchema):
    email: EmailStr
    password: str = Field(..., min_length=1)


class TokenResponse(BaseSchema):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: ActorResponse
