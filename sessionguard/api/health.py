"""Health check endpoints"""
import time
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session

from sessionguard import __version__
from sessionguard.config import settings
from sessionguard.core.store import CredentialStore
from sessionguard.database import get_db
from sessionguard.middleware.monitoring import set_active_refresh_tokens
from sessionguard.middleware.rate_limit import get_rate_limit, limiter
from sessionguard.utils.jwt_utils import utcnow

router = APIRouter(prefix="/health", tags=["health"])

# Track startup time
STARTUP_TIME = time.time()


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("")
@limiter.limit(get_rate_limit("health"))
def health_check(request: Request):
    """
    Basic health check endpoint

    Returns 200 if service is running
    """
    return {
        "status": "healthy",
        "service": "SessionGuard",
        "version": __version__,
        "timestamp": _timestamp()
    }


@router.get("/ready")
@limiter.limit(get_rate_limit("health"))
def readiness_check(request: Request, db: Session = Depends(get_db)):
    """
    Readiness check - verifies the database answers

    Returns 200 if ready to serve traffic, 503 if not ready
    """
    checks: Dict[str, Any] = {
        "database": False,
        "database_latency_ms": None
    }

    try:
        start = time.time()
        db.execute(text("SELECT 1"))
        latency_ms = (time.time() - start) * 1000
        checks["database"] = True
        checks["database_latency_ms"] = round(latency_ms, 2)
    except Exception as e:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "unhealthy",
                "checks": checks,
                "message": f"Database check failed: {str(e)}"
            },
        )

    if latency_ms > 1000:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "degraded",
                "checks": checks,
                "message": "Database latency is high"
            },
        )

    return {
        "status": "ready",
        "checks": checks,
        "timestamp": _timestamp()
    }


@router.get("/live")
@limiter.limit(get_rate_limit("health"))
def liveness_check(request: Request):
    """
    Liveness check - verifies service is alive

    Used as the Kubernetes liveness check
    """
    return {
        "status": "alive",
        "uptime_seconds": round(time.time() - STARTUP_TIME, 2),
        "timestamp": _timestamp()
    }


@router.get("/stats")
@limiter.limit(get_rate_limit("health"))
def health_stats(request: Request, db: Session = Depends(get_db)):
    """
    User and session counts plus reaper configuration
    """
    try:
        store = CredentialStore(db)
        active_tokens = store.count_active(utcnow())
        set_active_refresh_tokens(active_tokens)

        return {
            "status": "healthy",
            "users": {
                "total": store.count_users(),
                "active": store.count_users(active_only=True)
            },
            "refresh_tokens": {
                "active": active_tokens
            },
            "reaper": {
                "enabled": settings.TOKEN_REAPER_ENABLED,
                "interval_seconds": settings.TOKEN_REAPER_INTERVAL_SECONDS
            },
            "system": {
                "uptime_seconds": round(time.time() - STARTUP_TIME, 2)
            },
            "timestamp": _timestamp()
        }

    except Exception as e:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "error",
                "message": str(e),
                "timestamp": _timestamp()
            },
        )
