"""Middleware modules for production-ready features"""
from sessionguard.middleware.headers import SecurityHeadersMiddleware, cache_control_for
from sessionguard.middleware.monitoring import (
    MonitoringMiddleware,
    record_auth_failure,
    record_token_event,
    set_active_refresh_tokens,
)
from sessionguard.middleware.rate_limit import get_rate_limit, limiter

__all__ = [
    "MonitoringMiddleware",
    "SecurityHeadersMiddleware",
    "cache_control_for",
    "record_auth_failure",
    "record_token_event",
    "set_active_refresh_tokens",
    "limiter",
    "get_rate_limit"
]
