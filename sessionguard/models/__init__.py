"""Database models"""
from sessionguard.models.refresh_token import RefreshToken
from sessionguard.models.user import User

__all__ = ["RefreshToken", "User"]
