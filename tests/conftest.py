"""
Test Suite Configuration
"""
import itertools
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import pytest

from checkout_analytics.analytics.service import AnalyticsService
from checkout_analytics.config import Settings
from checkout_analytics.events.models import EventRecord, parse_event
from checkout_analytics.store.memory import InMemoryEventStore

NOW = datetime(2025, 6, 15, 12, 0, 0, tzinfo=timezone.utc)

_event_ids = itertools.count(1)


def make_row(
    event_type: str,
    session_id: str = "s1",
    timestamp: Optional[datetime] = None,
    order_form_id: Optional[str] = None,
    days_ago: Optional[float] = None,
    **metadata: Any,
) -> Dict[str, Any]:
    """Raw event row the way the event store returns it"""
    if timestamp is None:
        timestamp = NOW - timedelta(days=days_ago if days_ago is not None else 1)
    return {
        "id": f"evt-{next(_event_ids)}",
        "session_id": session_id,
        "order_form_id": order_form_id,
        "event_type": event_type,
        "timestamp": timestamp,
        "metadata": metadata,
    }


def make_event(event_type: str, **kwargs: Any) -> EventRecord:
    """Parsed EventRecord built from make_row arguments"""
    return parse_event(make_row(event_type, **kwargs))


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings"""
    return Settings(
        APP_ENV="testing",
        DEBUG=True,
    )


@pytest.fixture
def memory_store() -> InMemoryEventStore:
    """Empty in-memory event store"""
    return InMemoryEventStore()


@pytest.fixture
def service(memory_store, test_settings) -> AnalyticsService:
    """Analytics service over the in-memory store with a fixed clock"""
    return AnalyticsService(memory_store, clock=lambda: NOW, settings=test_settings)


@pytest.fixture
def repeat_customer_rows():
    """Three completed orders from one customer over the past week"""
    return [
        make_row("checkout_complete", session_id="s1", days_ago=6, customer_id="c1", revenue=100),
        make_row("checkout_complete", session_id="s2", days_ago=4, customer_id="c1", revenue=150),
        make_row("checkout_complete", session_id="s3", days_ago=2, customer_id="c1", revenue=250),
    ]


@pytest.fixture
def row_factory():
    """Factory for raw event rows"""
    return make_row


@pytest.fixture
def event_factory():
    """Factory for parsed events"""
    return make_event
