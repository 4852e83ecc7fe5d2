"""
API Dependencies

Tenant context and service wiring for route handlers. Authentication
happens upstream; the gateway forwards the tenant account and plan as
headers.
"""

from dataclasses import dataclass
from typing import Optional

import structlog
from fastapi import Depends, Request

from checkout_analytics.analytics.service import AnalyticsService
from checkout_analytics.config import get_settings
from checkout_analytics.exceptions import TenantContextError
from checkout_analytics.store.base import EventStore


@dataclass(frozen=True)
class TenantContext:
    """Authenticated tenant for the current request"""
    account_id: str
    plan_code: Optional[str] = None


async def get_tenant(request: Request) -> TenantContext:
    """
    Read the tenant from gateway headers.

    Raises:
        TenantContextError: If no account header is present
    """
    security = get_settings().security
    account_id = (request.headers.get(security.account_header) or "").strip()
    if not account_id:
        raise TenantContextError("Not authenticated", details=f"missing {security.account_header} header")

    plan_code = (request.headers.get(security.plan_header) or "").strip() or None
    structlog.contextvars.bind_contextvars(account_id=account_id)
    return TenantContext(account_id=account_id, plan_code=plan_code)


def get_event_store(request: Request) -> EventStore:
    return request.app.state.event_store


def get_analytics_service(
    request: Request,
    store: EventStore = Depends(get_event_store),
) -> AnalyticsService:
    """Per-request service over the application's event store"""
    return AnalyticsService(store, clock=request.app.state.clock)
