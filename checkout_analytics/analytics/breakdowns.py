"""
Checkout Breakdowns

Session-level breakdowns of the checkout funnel:
- Browser / platform: sessions, conversion and revenue per client
- Shipping: method mix, average delivery days and cost
"""

from datetime import datetime
from typing import Dict, List, Sequence, Tuple

import polars as pl

from checkout_analytics.analytics.schemas import (
    BrowserBreakdown,
    BrowserReport,
    PlatformBreakdown,
    ShippingMethodBreakdown,
    ShippingReport,
)
from checkout_analytics.events.models import EventRecord, EventType
from checkout_analytics.events.revenue import coerce_amount, extract_revenue

UNKNOWN_LABEL = "Unknown"

# Event types each breakdown reads
BROWSER_EVENT_TYPES = (EventType.CHECKOUT_START.value, EventType.CHECKOUT_COMPLETE.value)
SHIPPING_EVENT_TYPES = (EventType.SHIPPING_METHOD_SELECTED.value,)

_SESSION_SCHEMA = {
    "session_id": pl.Utf8,
    "browser": pl.Utf8,
    "platform": pl.Utf8,
    "converted": pl.Boolean,
    "revenue": pl.Float64,
}

_SHIPPING_SCHEMA = {
    "method": pl.Utf8,
    "cost": pl.Float64,
    "days": pl.Float64,
}


def _session_outcomes(completions: Sequence[EventRecord]) -> Tuple[set, Dict[str, float]]:
    """
    Converted sessions, and the revenue of each session's latest
    revenue-bearing completion.
    """
    converted = set()
    latest: Dict[str, Tuple[datetime, float]] = {}

    for event in completions:
        converted.add(event.session_id)
        revenue = extract_revenue(event)
        if revenue <= 0:
            continue
        current = latest.get(event.session_id)
        if current is None or event.timestamp >= current[0]:
            latest[event.session_id] = (event.timestamp, revenue)

    return converted, {session_id: revenue for session_id, (_, revenue) in latest.items()}


def _group_sessions(frame: pl.DataFrame, column: str) -> List[dict]:
    grouped = (
        frame.group_by(column)
        .agg([
            pl.len().alias("sessions"),
            pl.col("converted").sum().alias("conversions"),
            pl.col("revenue").sum().alias("revenue"),
        ])
        .sort(["sessions", column], descending=[True, False])
    )
    return list(grouped.iter_rows(named=True))


def _conversion(row: dict) -> float:
    if not row["sessions"]:
        return 0.0
    return row["conversions"] / row["sessions"] * 100


def summarize_browsers(events: Sequence[EventRecord], period: str) -> BrowserReport:
    """
    Browser and platform breakdown of checkout sessions.

    Every ``checkout_start`` counts as a session for its browser and
    platform; it converts when its session has a ``checkout_complete``.
    """
    starts = [e for e in events if e.event_type == EventType.CHECKOUT_START.value]
    completions = [e for e in events if e.event_type == EventType.CHECKOUT_COMPLETE.value]
    converted, revenue_by_session = _session_outcomes(completions)

    frame = pl.DataFrame(
        {
            "session_id": [e.session_id for e in starts],
            "browser": [e.meta.browser_field() or UNKNOWN_LABEL for e in starts],
            "platform": [e.meta.platform_field() or UNKNOWN_LABEL for e in starts],
            "converted": [e.session_id in converted for e in starts],
            "revenue": [revenue_by_session.get(e.session_id, 0.0) for e in starts],
        },
        schema=_SESSION_SCHEMA,
    )

    total_sessions = frame.height
    browsers = [
        BrowserBreakdown(
            browser=row["browser"],
            sessions=row["sessions"],
            conversion=_conversion(row),
            revenue=row["revenue"],
            market_share=row["sessions"] / total_sessions * 100 if total_sessions else 0.0,
        )
        for row in _group_sessions(frame, "browser")
    ]
    platforms = [
        PlatformBreakdown(
            platform=row["platform"],
            sessions=row["sessions"],
            conversion=_conversion(row),
            revenue=row["revenue"],
        )
        for row in _group_sessions(frame, "platform")
    ]

    avg_conversion = sum(b.conversion for b in browsers) / len(browsers) if browsers else 0.0

    return BrowserReport(
        browsers=browsers,
        platforms=platforms,
        total_sessions=total_sessions,
        avg_conversion=round(avg_conversion, 1),
        period=period,
    )


def summarize_shipping(events: Sequence[EventRecord], period: str) -> ShippingReport:
    """Shipping method mix with average delivery days and cost"""
    frame = pl.DataFrame(
        {
            "method": [e.meta.shipping_method_field() or UNKNOWN_LABEL for e in events],
            "cost": [coerce_amount(e.meta.shipping_cost_field()) for e in events],
            "days": [float(int(coerce_amount(e.meta.delivery_days_field()))) for e in events],
        },
        schema=_SHIPPING_SCHEMA,
    )

    grouped = (
        frame.group_by("method")
        .agg([
            pl.len().alias("count"),
            pl.col("days").mean().alias("avg_days"),
            pl.col("cost").mean().alias("avg_cost"),
        ])
        .sort(["count", "method"], descending=[True, False])
    )

    methods = [
        ShippingMethodBreakdown(
            method=row["method"],
            count=row["count"],
            avg_days=row["avg_days"] or 0.0,
            avg_cost=row["avg_cost"] or 0.0,
        )
        for row in grouped.iter_rows(named=True)
    ]

    total_shipments = frame.height
    avg_shipping_cost = float(frame["cost"].sum()) / total_shipments if total_shipments else 0.0

    return ShippingReport(
        shipping_methods=methods,
        total_shipments=total_shipments,
        avg_shipping_cost=round(avg_shipping_cost, 2),
        period=period,
    )
