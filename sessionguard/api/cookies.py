"""Token cookie transport and error-kind -> HTTP status mapping"""
from typing import Dict, Optional

from fastapi import Request, Response
from fastapi.responses import JSONResponse

from sessionguard.config import settings
from sessionguard.core.errors import AuthError, ErrorKind
from sessionguard.core.lifecycle import TokenPair

ERROR_STATUS: Dict[ErrorKind, int] = {
    ErrorKind.CONFLICT: 400,
    ErrorKind.INVALID_CREDENTIALS: 400,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.INVALID_TOKEN: 400,
    ErrorKind.EXPIRED: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INTERNAL: 500,
}


def _cookie_options() -> dict:
    return {
        "httponly": True,
        "secure": settings.COOKIE_SECURE,
        "samesite": "strict",
        "path": settings.COOKIE_PATH,
    }


def set_token_cookies(response: Response, tokens: TokenPair) -> None:
    """Set both token cookies; each max-age matches that token's remaining life."""
    response.set_cookie(
        settings.ACCESS_COOKIE_NAME,
        tokens.access.token,
        max_age=tokens.access.lifetime_seconds,
        **_cookie_options(),
    )
    response.set_cookie(
        settings.REFRESH_COOKIE_NAME,
        tokens.refresh.token,
        max_age=tokens.refresh.lifetime_seconds,
        **_cookie_options(),
    )


def clear_token_cookies(response: Response) -> None:
    response.delete_cookie(settings.ACCESS_COOKIE_NAME, **_cookie_options())
    response.delete_cookie(settings.REFRESH_COOKIE_NAME, **_cookie_options())


def get_access_token_from_cookie(request: Request) -> Optional[str]:
    return request.cookies.get(settings.ACCESS_COOKIE_NAME)


def get_refresh_token_from_cookie(request: Request) -> Optional[str]:
    return request.cookies.get(settings.REFRESH_COOKIE_NAME)


def error_response(error: AuthError, clear_cookies: bool = False,
                   status_code: Optional[int] = None) -> JSONResponse:
    response = JSONResponse(
        status_code=status_code or ERROR_STATUS[error.kind],
        content={"success": False, "error": error.kind.value, "message": error.message},
    )
    if clear_cookies:
        clear_token_cookies(response)
    return response
