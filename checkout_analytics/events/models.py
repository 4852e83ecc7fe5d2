"""
Checkout Event Models

Normalized shape of a single checkout telemetry event, plus a typed view
over its weakly-typed metadata bag.

Producers have changed field names over time without migrating historical
records, so the metadata view checks several names in a fixed order and
never raises. Structurally broken rows (no session, type or timestamp) are
dropped by ``parse_events`` instead of failing the batch.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import structlog
from prometheus_client import Counter
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = structlog.get_logger(__name__)


# =============================================================================
# METRICS
# =============================================================================

EVENTS_SKIPPED = Counter(
    "checkout_analytics_events_skipped_total",
    "Events dropped for missing session, type or timestamp",
)


# =============================================================================
# EVENT TYPES
# =============================================================================

class EventType(str, Enum):
    """Well-known checkout event types. The set is open-ended."""
    CHECKOUT_START = "checkout_start"
    CHECKOUT_COMPLETE = "checkout_complete"
    ORDER_CONFIRMED = "order_confirmed"
    SHIPPING_METHOD_SELECTED = "shipping_method_selected"
    PAYMENT_METHOD_SELECTED = "payment_method_selected"
    FIELD_INTERACTION = "field_interaction"


# Event types that represent a completed order
CONVERSION_EVENT_TYPES: Tuple[str, ...] = (
    EventType.CHECKOUT_COMPLETE.value,
    EventType.ORDER_CONFIRMED.value,
)


# =============================================================================
# METADATA VIEW
# =============================================================================

class EventMetadata:
    """
    Read-only view over an event's metadata bag.

    Each accessor checks its candidate keys in priority order. Revenue
    uses "present and not null" (a stored 0 wins); the label accessors use
    the first non-empty value.

    Example:
        meta = EventMetadata({"orderValue": "49.90"})
        meta.revenue_field()  # "49.90"
    """

    REVENUE_KEYS = ("revenue", "value", "orderValue", "totalValue", "amount")
    CHANNEL_KEYS = ("utm_source", "referrer", "channel")
    BROWSER_KEYS = ("browserName", "browser")

    __slots__ = ("_data",)

    def __init__(self, data: Optional[Mapping[str, Any]] = None):
        self._data: Mapping[str, Any] = data if isinstance(data, Mapping) else {}

    def _first_present(self, keys: Iterable[str]) -> Any:
        for key in keys:
            value = self._data.get(key)
            if value is not None:
                return value
        return None

    def _first_truthy(self, keys: Iterable[str]) -> Optional[str]:
        for key in keys:
            value = self._data.get(key)
            if value:
                return str(value)
        return None

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def revenue_field(self) -> Any:
        """Raw monetary value under the highest-priority present name."""
        return self._first_present(self.REVENUE_KEYS)

    def customer_id_field(self) -> Optional[str]:
        return self._first_truthy(("customer_id",))

    def channel_field(self) -> Optional[str]:
        """Acquisition source label, before normalization."""
        return self._first_truthy(self.CHANNEL_KEYS)

    def browser_field(self) -> Optional[str]:
        return self._first_truthy(self.BROWSER_KEYS)

    def platform_field(self) -> Optional[str]:
        return self._first_truthy(("platform",))

    def shipping_method_field(self) -> Optional[str]:
        return self._first_truthy(("shippingMethod",))

    def shipping_cost_field(self) -> Any:
        return self._data.get("shippingCost")

    def delivery_days_field(self) -> Any:
        return self._data.get("deliveryDays")

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def __repr__(self) -> str:
        return f"EventMetadata({dict(self._data)!r})"


# =============================================================================
# EVENT RECORD
# =============================================================================

class EventRecord(BaseModel):
    """Immutable checkout telemetry event"""

    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    session_id: str = Field(min_length=1)
    order_form_id: Optional[str] = None
    event_type: str = Field(min_length=1)
    timestamp: datetime
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("id", "session_id", "order_form_id", "event_type", mode="before")
    @classmethod
    def coerce_identifier(cls, v: Any) -> Any:
        """Stores may hand back UUIDs or ints for identifier columns"""
        if v is None or isinstance(v, str):
            return v
        return str(v)

    @field_validator("order_form_id")
    @classmethod
    def empty_order_form_is_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    @field_validator("timestamp")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        """Naive producer timestamps are taken as UTC"""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @field_validator("metadata", mode="before")
    @classmethod
    def metadata_bag(cls, v: Any) -> Any:
        if isinstance(v, Mapping):
            return dict(v)
        return {}

    @property
    def meta(self) -> EventMetadata:
        """Typed accessor view over ``metadata``"""
        return EventMetadata(self.metadata)

    @property
    def is_conversion(self) -> bool:
        return self.event_type in CONVERSION_EVENT_TYPES


def _pick(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in raw and raw[key] is not None:
            return raw[key]
    return None


def parse_event(raw: Any) -> Optional[EventRecord]:
    """
    Build an EventRecord from a store row.

    Accepts snake_case columns and the camelCase names some producers use.

    Returns:
        The parsed event, or None when the row is structurally unusable
    """
    if isinstance(raw, EventRecord):
        return raw
    if not isinstance(raw, Mapping):
        return None

    try:
        return EventRecord(
            id=_pick(raw, "id", "event_id"),
            session_id=_pick(raw, "session_id", "sessionId"),
            order_form_id=_pick(raw, "order_form_id", "orderFormId"),
            event_type=_pick(raw, "event_type", "eventType"),
            timestamp=_pick(raw, "timestamp"),
            metadata=_pick(raw, "metadata"),
        )
    except ValidationError as e:
        logger.debug(
            "Skipping malformed event",
            event_id=raw.get("id"),
            errors=[err["loc"] for err in e.errors()],
        )
        return None


def parse_events(rows: Iterable[Any]) -> List[EventRecord]:
    """Parse a batch of store rows, dropping malformed ones."""
    events: List[EventRecord] = []
    skipped = 0

    for row in rows or ():
        event = parse_event(row)
        if event is None:
            skipped += 1
            continue
        events.append(event)

    if skipped:
        EVENTS_SKIPPED.inc(skipped)
        logger.info("Dropped malformed events", skipped=skipped, kept=len(events))

    return events
