"""
Health Check Endpoints

Provides health and readiness checks for orchestration systems.
"""

from datetime import datetime, timezone
from typing import Dict, Any

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel

from checkout_analytics.config import get_settings
from checkout_analytics.serving.api.dependencies import get_event_store
from checkout_analytics.store.base import EventStore

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    version: str
    environment: str
    timestamp: datetime
    checks: Dict[str, Any]


@router.get("/health", response_model=HealthResponse)
async def health_check(store: EventStore = Depends(get_event_store)) -> HealthResponse:
    """
    Health check endpoint.

    Checks:
    - Application status
    - Event store connectivity
    """
    settings = get_settings()
    checks = {}
    overall_status = "healthy"

    try:
        store_health = await store.health()
        checks["event_store"] = {"backend": store.name, **store_health}
        if store_health.get("status") != "healthy":
            overall_status = "degraded"
    except Exception as e:
        checks["event_store"] = {"backend": store.name, "status": "unhealthy", "error": str(e)}
        overall_status = "unhealthy"

    return HealthResponse(
        status=overall_status,
        version=settings.version,
        environment=settings.app_env,
        timestamp=datetime.now(timezone.utc),
        checks=checks,
    )


@router.get("/health/live")
async def liveness_check() -> Dict[str, str]:
    """
    Kubernetes liveness endpoint.

    Returns 200 if the application is running.
    """
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness_check(
    response: Response,
    store: EventStore = Depends(get_event_store),
) -> Dict[str, str]:
    """
    Kubernetes readiness endpoint.

    Returns 200 if the event store is reachable.
    """
    try:
        store_health = await store.health()

        if store_health.get("status") != "healthy":
            response.status_code = 503
            return {"status": "not_ready", "reason": "event_store_unavailable"}

        return {"status": "ready"}
    except Exception as e:
        response.status_code = 503
        return {"status": "not_ready", "reason": str(e)}
