"""API dependencies: service wiring and access-token authentication.

Access tokens are read from the ``accessToken`` cookie first; an
``Authorization: Bearer <JWT>`` header is accepted as a fallback for
non-browser clients.
"""
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from sessionguard.api.cookies import get_access_token_from_cookie
from sessionguard.config import settings
from sessionguard.core.errors import AuthError, ErrorKind
from sessionguard.core.lifecycle import TokenLifecycleManager
from sessionguard.core.service import AuthResult, AuthService
from sessionguard.core.store import CredentialStore, UserSummary
from sessionguard.database import get_db
from sessionguard.utils.jwt_utils import TokenCodec

_bearer_scheme = HTTPBearer(auto_error=False)

_codec = TokenCodec.from_settings()


def get_codec() -> TokenCodec:
    """Process-wide token codec (overridable in tests)"""
    return _codec


def get_auth_service(
    db: Session = Depends(get_db),
    codec: TokenCodec = Depends(get_codec),
) -> AuthService:
    """Build a request-scoped auth service over the request's session"""
    store = CredentialStore(db)
    lifecycle = TokenLifecycleManager(
        store,
        codec,
        rotation_threshold_hours=settings.REFRESH_ROTATION_THRESHOLD_HOURS,
        clock=codec.clock,
    )
    return AuthService(store, lifecycle)


def authenticate_request(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    service: AuthService = Depends(get_auth_service),
) -> AuthResult:
    """Resolve the caller's access token without raising.

    Routes that must still act on a failed authentication (logout) depend on
    this directly; everything else goes through :func:`require_user`.
    """
    token = get_access_token_from_cookie(request)
    if not token and credentials:
        token = credentials.credentials

    if not token:
        return AuthResult.failure(ErrorKind.INVALID_TOKEN, "Access token not found")

    result = service.authenticate(token)
    if result.ok:
        request.state.user_id = result.session.user.id
    return result


def auth_failure_status(error: AuthError) -> int:
    if error.kind is ErrorKind.FORBIDDEN:
        return status.HTTP_403_FORBIDDEN
    if error.kind is ErrorKind.INTERNAL:
        return status.HTTP_500_INTERNAL_SERVER_ERROR
    return status.HTTP_401_UNAUTHORIZED


def require_user(result: AuthResult = Depends(authenticate_request)) -> UserSummary:
    """Require a valid access token belonging to an active user.

    Raises:
        HTTPException 401: token missing or invalid/expired.
        HTTPException 403: user no longer exists or is inactive.
        HTTPException 500: store failure while resolving the user.
    """
    if result.ok:
        return result.session.user

    status_code = auth_failure_status(result.error)
    headers = {"WWW-Authenticate": "Bearer"} if status_code == status.HTTP_401_UNAUTHORIZED else None
    raise HTTPException(status_code=status_code, detail=result.error.message, headers=headers)
