"""Monitoring and observability middleware"""
import time
from typing import Callable

from fastapi import Request, Response
from prometheus_client import Counter, Gauge, Histogram
from starlette.middleware.base import BaseHTTPMiddleware

from sessionguard.utils.logger import logger


# ===== Prometheus Metrics =====

# Request metrics
http_requests_total = Counter(
    "sessionguard_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"]
)

http_request_duration_seconds = Histogram(
    "sessionguard_http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "endpoint"]
)

# Token lifecycle metrics
token_events_total = Counter(
    "sessionguard_refresh_token_events_total",
    "Refresh-token lifecycle transitions",
    ["event"]  # issued, reused, rotated, revoked, reaped
)

active_refresh_tokens_gauge = Gauge(
    "sessionguard_active_refresh_tokens",
    "Refresh tokens that are neither revoked nor expired"
)

# Error metrics
http_errors_total = Counter(
    "sessionguard_http_errors_total",
    "Total HTTP errors",
    ["method", "endpoint", "status"]
)

authentication_failures_total = Counter(
    "sessionguard_authentication_failures_total",
    "Total authentication failures",
    ["kind"]  # invalid_credentials, invalid_token, expired, forbidden, ...
)


class MonitoringMiddleware(BaseHTTPMiddleware):
    """Middleware for monitoring and metrics collection"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and collect metrics"""
        start_time = time.time()

        method = request.method
        endpoint = request.url.path

        # Add request ID for tracing
        request_id = request.headers.get("x-request-id", f"req_{int(time.time() * 1000)}")
        request.state.request_id = request_id

        try:
            response = await call_next(request)
            status = response.status_code

            duration = time.time() - start_time
            http_requests_total.labels(
                method=method,
                endpoint=endpoint,
                status=status
            ).inc()

            http_request_duration_seconds.labels(
                method=method,
                endpoint=endpoint
            ).observe(duration)

            # Log slow requests
            if duration > 1.0:
                logger.warning(
                    f"Slow request detected: {method} {endpoint}",
                    extra={
                        "request_id": request_id,
                        "method": method,
                        "path": endpoint,
                    }
                )

            if status >= 400:
                http_errors_total.labels(
                    method=method,
                    endpoint=endpoint,
                    status=status
                ).inc()

            response.headers["X-Request-ID"] = request_id
            response.headers["X-Response-Time"] = f"{duration:.3f}s"

            return response

        except Exception:
            http_errors_total.labels(
                method=method,
                endpoint=endpoint,
                status=500
            ).inc()

            logger.error(
                f"Request failed: {method} {endpoint}",
                extra={
                    "request_id": request_id,
                    "method": method,
                    "path": endpoint,
                },
                exc_info=True
            )
            raise


def record_token_event(event: str, count: int = 1):
    """Record a refresh-token lifecycle transition"""
    token_events_total.labels(event=event).inc(count)


def record_auth_failure(kind: str):
    """Record authentication failure"""
    authentication_failures_total.labels(kind=kind).inc()


def set_active_refresh_tokens(count: int):
    """Publish the current number of live refresh tokens"""
    active_refresh_tokens_gauge.set(count)
