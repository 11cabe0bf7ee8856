"""Token lifecycle core: credential store, state machine, auth flows, reaper"""
from sessionguard.core.errors import AuthError, ErrorKind, TokenRejected
from sessionguard.core.lifecycle import RefreshResult, TokenLifecycleManager, TokenPair, TokenState
from sessionguard.core.reaper import TokenReaper
from sessionguard.core.service import AuthResult, AuthService, AuthSession
from sessionguard.core.store import CredentialStore, DuplicateUserError, UserSummary

__all__ = [
    "AuthError",
    "AuthResult",
    "AuthService",
    "AuthSession",
    "CredentialStore",
    "DuplicateUserError",
    "ErrorKind",
    "RefreshResult",
    "TokenLifecycleManager",
    "TokenPair",
    "TokenReaper",
    "TokenRejected",
    "TokenState",
    "UserSummary",
]
