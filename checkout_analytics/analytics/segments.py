"""
Behavioral Customer Segmentation

Each customer gets a set of segment tags from independent conditions, so
segments overlap: a big repeat buyer is both ``vip`` and ``frequent``.
The ``vip`` cut-off is one population standard deviation above the
window's mean AOV.
"""

import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, List, Tuple

import numpy as np
import structlog

from checkout_analytics.analytics.aggregation import AggregateState
from checkout_analytics.analytics.ltv import safe_div
from checkout_analytics.analytics.schemas import (
    SegmentMetrics,
    SegmentReportItem,
    SegmentsReport,
    SegmentsSummary,
)

logger = structlog.get_logger(__name__)

NEW_CUSTOMER_DAYS = 30
AT_RISK_DAYS = 60
DORMANT_DAYS = 90


class SegmentTag(str, Enum):
    """Behavioral segments"""
    VIP = "vip"
    FREQUENT = "frequent"
    NEW = "new"
    AT_RISK = "at-risk"
    DORMANT = "dormant"


# Display order and copy for the report
SEGMENT_DEFINITIONS: Tuple[Tuple[SegmentTag, str, str], ...] = (
    (SegmentTag.VIP, "VIP Customers", "High-value customers with AOV > average + 1 std dev"),
    (SegmentTag.FREQUENT, "Frequent Buyers", "Customers with 2+ orders"),
    (SegmentTag.NEW, "New Customers", "First-time buyers"),
    (SegmentTag.AT_RISK, "At-Risk Customers", "No order in 60+ days but previously active"),
    (SegmentTag.DORMANT, "Dormant Customers", "No order in 90+ days"),
)


@dataclass(frozen=True)
class AOVStats:
    """Window-level AOV distribution"""
    mean: float
    std: float

    @property
    def vip_threshold(self) -> float:
        return self.mean + self.std


def aov_stats(aggregates: Dict[str, AggregateState]) -> AOVStats:
    """Mean and population standard deviation of per-customer AOV"""
    if not aggregates:
        return AOVStats(mean=0.0, std=0.0)
    values = np.fromiter((s.avg_order_value for s in aggregates.values()), dtype=float)
    return AOVStats(mean=float(values.mean()), std=float(values.std()))


def classify(state: AggregateState, stats: AOVStats, now: datetime) -> FrozenSet[SegmentTag]:
    """
    Segment tags for one customer. Conditions are independent.

    Args:
        state: Customer aggregate
        stats: Window AOV statistics
        now: Reference instant for recency

    Returns:
        Possibly empty set of tags
    """
    tags = set()
    days_since_last = state.days_since_last_order(now)

    if state.avg_order_value >= stats.vip_threshold:
        tags.add(SegmentTag.VIP)
    if state.order_count >= 2:
        tags.add(SegmentTag.FREQUENT)
    if state.days_since_first_order(now) <= NEW_CUSTOMER_DAYS and state.order_count == 1:
        tags.add(SegmentTag.NEW)
    if AT_RISK_DAYS <= days_since_last < DORMANT_DAYS and state.order_count > 0:
        tags.add(SegmentTag.AT_RISK)
    if days_since_last >= DORMANT_DAYS:
        tags.add(SegmentTag.DORMANT)

    return frozenset(tags)


def segment_membership(
    aggregates: Dict[str, AggregateState],
    now: datetime,
) -> Dict[str, FrozenSet[SegmentTag]]:
    """Tags per identity key"""
    stats = aov_stats(aggregates)
    return {key: classify(state, stats, now) for key, state in aggregates.items()}


def _segment_metrics(members: List[AggregateState], total_customers: int) -> SegmentMetrics:
    count = len(members)
    total_revenue = math.fsum(s.total_revenue for s in members)
    return SegmentMetrics(
        count=count,
        total_revenue=total_revenue,
        avg_ltv=safe_div(total_revenue, count),
        avg_aov=safe_div(math.fsum(s.avg_order_value for s in members), count),
        avg_orders=safe_div(sum(s.order_count for s in members), count),
        conversion_rate=safe_div(count, total_customers) * 100,
    )


def summarize_segments(
    aggregates: Dict[str, AggregateState],
    now: datetime,
    period: str,
) -> SegmentsReport:
    """
    Build the segmentation report for one window.

    Every segment is listed, including empty ones, unless the window has
    no customers at all.
    """
    stats = aov_stats(aggregates)
    states = list(aggregates.values())
    total_customers = len(states)

    members: Dict[SegmentTag, List[AggregateState]] = {tag: [] for tag, _, _ in SEGMENT_DEFINITIONS}
    for state in states:
        for tag in classify(state, stats, now):
            members[tag].append(state)

    segments = []
    if total_customers:
        segments = [
            SegmentReportItem(
                key=tag.value,
                name=name,
                description=description,
                metrics=_segment_metrics(members[tag], total_customers),
            )
            for tag, name, description in SEGMENT_DEFINITIONS
        ]

    total_revenue = math.fsum(s.total_revenue for s in states)
    summary = SegmentsSummary(
        total_customers=total_customers,
        total_revenue=total_revenue,
        overall_avg_ltv=safe_div(total_revenue, total_customers),
        avg_aov=stats.mean,
        avg_orders=safe_div(sum(s.order_count for s in states), total_customers),
    )

    logger.debug(
        "Segments classified",
        customers=total_customers,
        counts={tag.value: len(m) for tag, m in members.items()},
    )

    return SegmentsReport(summary=summary, segments=segments, period=period)
