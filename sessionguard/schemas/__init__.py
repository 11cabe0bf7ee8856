"""Pydantic schemas for request/response validation"""
from sessionguard.schemas.auth import (
    AuthResponse,
    ErrorResponse,
    LoginRequest,
    MessageResponse,
    ProfileData,
    ProfileResponse,
    ProfileUser,
    RegisterRequest,
    UserResponse,
)

__all__ = [
    "AuthResponse",
    "ErrorResponse",
    "LoginRequest",
    "MessageResponse",
    "ProfileData",
    "ProfileResponse",
    "ProfileUser",
    "RegisterRequest",
    "UserResponse",
]
