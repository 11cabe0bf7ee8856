"""Registration, login, token refresh and logout endpoints"""
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from sessionguard.api.cookies import (
    clear_token_cookies,
    error_response,
    get_refresh_token_from_cookie,
    set_token_cookies,
)
from sessionguard.api.deps import auth_failure_status, authenticate_request, get_auth_service
from sessionguard.core.service import AuthResult, AuthService
from sessionguard.middleware.rate_limit import get_rate_limit, limiter
from sessionguard.schemas.auth import (
    AuthResponse,
    ErrorResponse,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    UserResponse,
)

router = APIRouter(prefix="/auth", tags=["authentication"])

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


def _session_response(result: AuthResult, message: str, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    user = result.session.user
    body = AuthResponse(
        message=message,
        user=UserResponse(id=user.id, email=user.email, name=user.name),
    )
    response = JSONResponse(status_code=status_code, content=body.model_dump())
    set_token_cookies(response, result.session.tokens)
    return response


def _logged_out_response(message: str) -> JSONResponse:
    response = JSONResponse(content=MessageResponse(message=message).model_dump())
    clear_token_cookies(response)
    return response


# ---------------------------------------------------------------------------
# POST /auth/register
# ---------------------------------------------------------------------------

@router.post("/register", status_code=201, response_model=AuthResponse, responses=_ERROR_RESPONSES)
@limiter.limit(get_rate_limit("register"))
def register(
    request: Request,
    data: RegisterRequest,
    service: AuthService = Depends(get_auth_service),
):
    """Create an account and sign the new user in.

    Sets the `accessToken` and `refreshToken` cookies on success.
    Returns 400 if the email is already registered.
    """
    result = service.register(data.email, data.password, data.name)
    if not result.ok:
        return error_response(result.error)
    return _session_response(result, "User registered successfully", status.HTTP_201_CREATED)


# ---------------------------------------------------------------------------
# POST /auth/login
# ---------------------------------------------------------------------------

@router.post("/login", response_model=AuthResponse, responses=_ERROR_RESPONSES)
@limiter.limit(get_rate_limit("login"))
def login(
    request: Request,
    data: LoginRequest,
    service: AuthService = Depends(get_auth_service),
):
    """Verify email and password and issue tokens.

    If the user already holds a live refresh token it is handed back again
    rather than minting a second one. Returns 400 on bad credentials and 403
    for a deactivated account.
    """
    result = service.login(data.email, data.password)
    if not result.ok:
        return error_response(result.error)
    return _session_response(result, "Login successful")


# ---------------------------------------------------------------------------
# POST /auth/refresh-token
# ---------------------------------------------------------------------------

@router.post("/refresh-token", response_model=AuthResponse, responses=_ERROR_RESPONSES)
@limiter.limit(get_rate_limit("refresh"))
def refresh_token(
    request: Request,
    service: AuthService = Depends(get_auth_service),
):
    """Exchange the `refreshToken` cookie for a fresh access token.

    The refresh token is rotated only when less than 24 hours of its life
    remain. On any failure both cookies are cleared.
    """
    result = service.refresh(get_refresh_token_from_cookie(request))
    if not result.ok:
        return error_response(result.error, clear_cookies=True)
    return _session_response(result, "Tokens refreshed successfully")


# ---------------------------------------------------------------------------
# POST /auth/logout, /auth/logout-all
# ---------------------------------------------------------------------------

@router.post("/logout", response_model=MessageResponse, responses={401: {"model": ErrorResponse}})
@limiter.limit(get_rate_limit("logout"))
def logout(
    request: Request,
    auth: AuthResult = Depends(authenticate_request),
    service: AuthService = Depends(get_auth_service),
):
    """Revoke the current refresh token and clear both cookies.

    The refresh token is revoked and the cookies cleared even when the access
    token is missing or expired; the response is then 401 instead of 200.
    """
    service.logout(get_refresh_token_from_cookie(request))
    if not auth.ok:
        return error_response(auth.error, clear_cookies=True, status_code=auth_failure_status(auth.error))
    return _logged_out_response("Logged out successfully")


@router.post("/logout-all", response_model=MessageResponse, responses={401: {"model": ErrorResponse}})
@limiter.limit(get_rate_limit("logout"))
def logout_all(
    request: Request,
    auth: AuthResult = Depends(authenticate_request),
    service: AuthService = Depends(get_auth_service),
):
    """Revoke every refresh token of the caller and clear both cookies.

    Without a valid access token nothing is revoked, but the cookies are
    still cleared.
    """
    if not auth.ok:
        return error_response(auth.error, clear_cookies=True, status_code=auth_failure_status(auth.error))
    service.logout_all(auth.session.user.id)
    return _logged_out_response("Logged out from all devices successfully")
