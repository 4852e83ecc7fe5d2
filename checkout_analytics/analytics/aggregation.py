"""
Aggregation Engine

Folds a slice of checkout events into per-key statistics. The key function
decides what a bucket means: a customer identity for LTV and segments, an
attributed channel for CAC.

The fold is associative and commutative. Revenue is kept per order and
summed with ``math.fsum`` so totals are identical for any event order,
and partial maps built from partitions of a slice can be merged with
``merge_aggregates``.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Set

import structlog

from checkout_analytics.events.models import EventRecord
from checkout_analytics.events.revenue import extract_revenue

logger = structlog.get_logger(__name__)

SECONDS_PER_DAY = 86400

KeyFn = Callable[[EventRecord], Optional[str]]
RevenueFn = Callable[[EventRecord], float]


@dataclass
class AggregateState:
    """Running statistics for one grouping key"""
    key: str
    order_count: int = 0
    revenues: List[float] = field(default_factory=list)
    first_activity_at: Optional[datetime] = None
    last_activity_at: Optional[datetime] = None
    customer_id: Optional[str] = None
    order_form_ids: Set[str] = field(default_factory=set)

    def add(self, event: EventRecord, revenue: float) -> None:
        """Account one revenue-bearing event"""
        self.order_count += 1
        self.revenues.append(revenue)
        self._expand(event.timestamp, event.timestamp)

        customer_id = event.meta.customer_id_field()
        if customer_id and (self.customer_id is None or customer_id < self.customer_id):
            self.customer_id = customer_id
        if event.order_form_id:
            self.order_form_ids.add(event.order_form_id)

    def merge(self, other: "AggregateState") -> "AggregateState":
        """Combine with a state for the same key, returning a new state."""
        merged = AggregateState(
            key=self.key,
            order_count=self.order_count + other.order_count,
            revenues=self.revenues + other.revenues,
            first_activity_at=self.first_activity_at,
            last_activity_at=self.last_activity_at,
            customer_id=self.customer_id,
            order_form_ids=self.order_form_ids | other.order_form_ids,
        )
        if other.first_activity_at is not None:
            merged._expand(other.first_activity_at, other.last_activity_at)
        if other.customer_id and (merged.customer_id is None or other.customer_id < merged.customer_id):
            merged.customer_id = other.customer_id
        return merged

    def _expand(self, first: datetime, last: datetime) -> None:
        if self.first_activity_at is None or first < self.first_activity_at:
            self.first_activity_at = first
        if self.last_activity_at is None or last > self.last_activity_at:
            self.last_activity_at = last

    # -------------------------------------------------------------------------
    # Derived values (never stored)
    # -------------------------------------------------------------------------

    @property
    def total_revenue(self) -> float:
        return math.fsum(self.revenues)

    @property
    def avg_order_value(self) -> float:
        if self.order_count <= 0:
            return 0.0
        return self.total_revenue / self.order_count

    @property
    def days_between(self) -> float:
        """Fractional days between first and last order, at least 1"""
        if self.first_activity_at is None or self.last_activity_at is None:
            return 1.0
        span = (self.last_activity_at - self.first_activity_at).total_seconds() / SECONDS_PER_DAY
        return max(1.0, span)

    @property
    def purchase_frequency(self) -> float:
        """Orders per 30-day month"""
        return (self.order_count / self.days_between) * 30

    @property
    def is_recurring(self) -> bool:
        return self.order_count > 1

    def days_since_last_order(self, now: datetime) -> int:
        return _whole_days(now, self.last_activity_at)

    def days_since_first_order(self, now: datetime) -> int:
        return _whole_days(now, self.first_activity_at)


def _whole_days(now: datetime, then: Optional[datetime]) -> int:
    if then is None:
        return 0
    return math.floor((now - then).total_seconds() / SECONDS_PER_DAY)


def aggregate(
    events: Iterable[EventRecord],
    key_fn: KeyFn,
    revenue_fn: RevenueFn = extract_revenue,
) -> Dict[str, AggregateState]:
    """
    Fold events into per-key aggregates.

    Events without usable revenue are skipped, as are events the key
    function maps to None (e.g. a conversion with no attributable channel).

    Args:
        events: Event slice, in any order
        key_fn: Grouping key for an event
        revenue_fn: Revenue for an event

    Returns:
        Mapping of key to AggregateState
    """
    states: Dict[str, AggregateState] = {}
    zero_revenue = 0
    unkeyed = 0

    for event in events:
        revenue = revenue_fn(event)
        if revenue <= 0:
            zero_revenue += 1
            continue

        key = key_fn(event)
        if not key:
            unkeyed += 1
            continue

        state = states.get(key)
        if state is None:
            state = states[key] = AggregateState(key=key)
        state.add(event, revenue)

    logger.debug(
        "Aggregated events",
        buckets=len(states),
        skipped_zero_revenue=zero_revenue,
        skipped_unkeyed=unkeyed,
    )
    return states


def merge_aggregates(*partials: Dict[str, AggregateState]) -> Dict[str, AggregateState]:
    """Merge aggregate maps built from disjoint partitions of one slice."""
    merged: Dict[str, AggregateState] = {}
    for partial in partials:
        for key, state in partial.items():
            existing = merged.get(key)
            merged[key] = state if existing is None else existing.merge(state)
    return merged
