"""
Events Module
"""
from .models import (
    CONVERSION_EVENT_TYPES,
    EventMetadata,
    EventRecord,
    EventType,
    parse_event,
    parse_events,
)
from .revenue import coerce_amount, extract_revenue
from .identity import resolve_channel, resolve_identity

__all__ = [
    "CONVERSION_EVENT_TYPES",
    "EventMetadata",
    "EventRecord",
    "EventType",
    "parse_event",
    "parse_events",
    "coerce_amount",
    "extract_revenue",
    "resolve_channel",
    "resolve_identity",
]
