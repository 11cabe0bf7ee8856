"""Rate limiting middleware for API protection"""
from slowapi import Limiter
from slowapi.util import get_remote_address

from sessionguard.config import settings

# Keyed by client address
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=settings.RATE_LIMIT_DEFAULT,
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    strategy="fixed-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)


# Rate limit configurations for different endpoints
RATE_LIMITS = {
    # Credential endpoints - tight limits against guessing
    "login": "10/minute",
    "register": "5/minute",

    # Token endpoints - called by every client on a timer
    "refresh": "60/minute",
    "logout": "30/minute",

    # Public endpoints
    "health": "100/minute",
}


def get_rate_limit(endpoint: str) -> str:
    """Get rate limit for specific endpoint"""
    return RATE_LIMITS.get(endpoint, settings.RATE_LIMIT_DEFAULT[0])
