"""
Event Store Interface

The analytics core reads checkout events through one narrow call:

    fetch_events(account_id, event_types, start, end) -> List[EventRecord]

Implementations only return raw rows; parsing, malformed-row filtering
and fetch metrics live here so every store behaves the same. Row order
is unspecified and callers must not rely on it. Retry policy, if any,
belongs to the implementation.
"""

import time
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, List, Mapping, Sequence

import structlog
from prometheus_client import Counter, Histogram

from checkout_analytics.events.models import EventRecord, parse_events

logger = structlog.get_logger(__name__)


# =============================================================================
# METRICS
# =============================================================================

EVENTS_FETCHED = Counter(
    "checkout_analytics_events_fetched_total",
    "Rows returned by the event store",
    ["store"],
)

FETCH_DURATION = Histogram(
    "checkout_analytics_event_fetch_seconds",
    "Time spent fetching an event slice",
    ["store"],
)

FETCH_FAILURES = Counter(
    "checkout_analytics_event_fetch_failures_total",
    "Event slice fetches that raised",
    ["store"],
)


class EventStore(ABC):
    """Read-only source of checkout events for a tenant"""

    name = "abstract"

    @abstractmethod
    async def fetch_rows(
        self,
        account_id: str,
        event_types: Sequence[str],
        start: datetime,
        end: datetime,
    ) -> Sequence[Mapping[str, Any]]:
        """
        Return raw event rows for the tenant with a type in ``event_types``
        and a timestamp in [start, end).
        """

    async def fetch_events(
        self,
        account_id: str,
        event_types: Sequence[str],
        start: datetime,
        end: datetime,
    ) -> List[EventRecord]:
        """Fetch and parse an event slice, dropping malformed rows."""
        started = time.perf_counter()
        try:
            rows = await self.fetch_rows(account_id, list(event_types), start, end)
        except Exception:
            FETCH_FAILURES.labels(store=self.name).inc()
            raise
        finally:
            FETCH_DURATION.labels(store=self.name).observe(time.perf_counter() - started)

        EVENTS_FETCHED.labels(store=self.name).inc(len(rows))
        events = parse_events(rows)

        logger.debug(
            "Event slice fetched",
            store=self.name,
            account_id=account_id,
            event_types=list(event_types),
            rows=len(rows),
            events=len(events),
        )
        return events

    async def health(self) -> dict:
        """Store health for the readiness check"""
        return {"status": "healthy"}
