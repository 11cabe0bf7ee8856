"""Auth request/response schemas"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from sessionguard.config import settings


def _normalize_email(value: str) -> str:
    return value.strip().lower()


class RegisterRequest(BaseModel):
    """Schema for registering a new user"""

    email: EmailStr = Field(..., description="Login email, unique per user")
    password: str = Field(..., max_length=128, description="Plaintext password (hashed before storage)")
    name: str = Field(..., min_length=1, max_length=255, description="Display name")

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value):
        return _normalize_email(value) if isinstance(value, str) else value

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        if len(value) < settings.PASSWORD_MIN_LENGTH:
            raise ValueError(f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters long")
        return value


class LoginRequest(BaseModel):
    """Schema for logging in"""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value):
        return _normalize_email(value) if isinstance(value, str) else value


class UserResponse(BaseModel):
    """Public user summary returned by auth endpoints"""

    id: int
    email: str
    name: str

    class Config:
        from_attributes = True


class ProfileUser(UserResponse):
    is_active: bool
    created_at: Optional[datetime] = None


class AuthResponse(BaseModel):
    success: bool = True
    message: str
    user: UserResponse


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class ProfileData(BaseModel):
    user: ProfileUser


class ProfileResponse(BaseModel):
    success: bool = True
    data: ProfileData


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    message: str
