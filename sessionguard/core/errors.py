"""Error taxonomy shared by the lifecycle manager, auth service and routers"""
from dataclasses import dataclass
from enum import Enum


class ErrorKind(str, Enum):
    CONFLICT = "conflict"
    INVALID_CREDENTIALS = "invalid_credentials"
    FORBIDDEN = "forbidden"
    INVALID_TOKEN = "invalid_token"
    EXPIRED = "expired"
    NOT_FOUND = "not_found"
    INTERNAL = "internal"


@dataclass(frozen=True)
class AuthError:
    kind: ErrorKind
    message: str


class TokenRejected(Exception):
    """A refresh attempt was refused; ``kind`` says why."""

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    def to_error(self) -> AuthError:
        return AuthError(kind=self.kind, message=self.message)
