"""Security and cache-control response headers"""
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "X-XSS-Protection": "0",
}

# Path prefix -> Cache-Control; first match wins
CACHE_POLICIES = (
    ("/auth", "no-cache, no-store, must-revalidate"),
    ("/profile", "private, max-age=300"),
    ("/health", "no-cache, no-store, must-revalidate"),
)


def cache_control_for(method: str, path: str) -> str:
    """Cache-Control value for a request; only GETs are ever cacheable."""
    for prefix, policy in CACHE_POLICIES:
        if path.startswith(prefix):
            if method != "GET":
                return "no-store"
            return policy
    return "no-store"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds security headers and a Cache-Control policy to every response"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        response.headers.setdefault("Cache-Control", cache_control_for(request.method, request.url.path))
        if request.url.path.startswith("/profile"):
            response.headers["Vary"] = "Cookie, Authorization, Accept-Encoding"
        return response
