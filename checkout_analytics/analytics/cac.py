"""
Customer Acquisition Cost (approximation)

Attributes conversions to acquisition channels by session and prices each
channel with an estimator. No ad-spend data is integrated yet: the default
estimator is a static table of industry averages, and LTV is proxied as a
multiple of AOV. Every report carries ``CAC_ESTIMATE_NOTE``.

To plug in real spend, implement ``CACEstimator`` and hand it to the query
service; the attribution code does not change.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Protocol, Sequence, Set, Tuple

import structlog

from checkout_analytics.analytics.aggregation import aggregate
from checkout_analytics.analytics.ltv import safe_div
from checkout_analytics.analytics.schemas import (
    AcquisitionEfficiency,
    CACReport,
    CACSummary,
    ChannelCAC,
)
from checkout_analytics.events.identity import channel_display_name, resolve_channel
from checkout_analytics.events.models import EventRecord

logger = structlog.get_logger(__name__)

CAC_ESTIMATE_NOTE = (
    "CAC values are estimated. For accurate CAC, integrate with your marketing "
    "platform to get actual spend data."
)

EXCELLENT_RATIO = 3.0
GOOD_RATIO = 2.0


# =============================================================================
# ESTIMATORS
# =============================================================================

class CACEstimator(Protocol):
    """Cost to acquire one customer through a channel"""

    def estimate(self, channel: str, conversions: int) -> float:
        ...


class IndustryAverageCACEstimator:
    """
    Static per-channel estimates in USD, matched by substring.

    Table entries are checked in order; the first key contained in the
    channel name wins.
    """

    DEFAULT_ESTIMATES: Tuple[Tuple[str, float], ...] = (
        ("google", 45.0),
        ("facebook", 35.0),
        ("instagram", 30.0),
        ("twitter", 40.0),
        ("linkedin", 60.0),
        ("email", 5.0),
        ("organic", 0.0),
        ("direct", 0.0),
        ("referral", 10.0),
        ("social", 30.0),
    )

    def __init__(
        self,
        estimates: Optional[Sequence[Tuple[str, float]]] = None,
        default: float = 25.0,
    ):
        self.estimates = tuple(estimates) if estimates is not None else self.DEFAULT_ESTIMATES
        self.default = default

    def estimate(self, channel: str, conversions: int) -> float:
        for key, value in self.estimates:
            if key in channel:
                return value
        return self.default


# =============================================================================
# ATTRIBUTION
# =============================================================================

@dataclass
class ChannelStats:
    """Sessions and attributed conversions for one channel"""
    channel: str
    sessions: Set[str] = field(default_factory=set)
    conversions: int = 0
    revenue: float = 0.0


def session_channels(start_events: Iterable[EventRecord]) -> Dict[str, str]:
    """
    Channel of each session's first checkout start.

    The earliest start event wins (ties broken by event id) so attribution
    does not depend on store ordering.
    """
    first_start: Dict[str, EventRecord] = {}
    for event in start_events:
        current = first_start.get(event.session_id)
        if current is None or (event.timestamp, event.id or "") < (current.timestamp, current.id or ""):
            first_start[event.session_id] = event
    return {session_id: resolve_channel(event) for session_id, event in first_start.items()}


def attribute_channels(
    start_events: Sequence[EventRecord],
    conversion_events: Sequence[EventRecord],
) -> Dict[str, ChannelStats]:
    """
    Register sessions per channel and attribute conversions back to them.

    Each start event registers its session under its own channel. A
    conversion with revenue is credited to the channel of its session's
    first start event; conversions with no start event in the slice are not
    attributed.
    """
    stats: Dict[str, ChannelStats] = {}
    for event in start_events:
        channel = resolve_channel(event)
        stats.setdefault(channel, ChannelStats(channel=channel)).sessions.add(event.session_id)

    by_session = session_channels(start_events)
    attributed = aggregate(conversion_events, key_fn=lambda e: by_session.get(e.session_id))

    for channel, state in attributed.items():
        channel_stats = stats[channel]
        channel_stats.conversions = state.order_count
        channel_stats.revenue = state.total_revenue

    return stats


# =============================================================================
# REPORT
# =============================================================================

def acquisition_efficiency(ratio: float) -> AcquisitionEfficiency:
    return AcquisitionEfficiency(
        excellent=ratio >= EXCELLENT_RATIO,
        good=GOOD_RATIO <= ratio < EXCELLENT_RATIO,
        needs_improvement=ratio < GOOD_RATIO,
        ratio=ratio,
    )


def channel_row(stats: ChannelStats, estimator: CACEstimator, ltv_multiplier: float) -> ChannelCAC:
    sessions = len(stats.sessions)
    avg_order_value = safe_div(stats.revenue, stats.conversions)
    estimated_cac = estimator.estimate(stats.channel, stats.conversions)

    return ChannelCAC(
        channel=channel_display_name(stats.channel),
        sessions=sessions,
        conversions=stats.conversions,
        revenue=stats.revenue,
        conversion_rate=safe_div(stats.conversions, sessions) * 100,
        avg_order_value=avg_order_value,
        estimated_cac=estimated_cac,
        ltv_cac_ratio=safe_div(avg_order_value * ltv_multiplier, estimated_cac),
    )


def summarize_cac(
    channel_stats: Dict[str, ChannelStats],
    period: str,
    estimator: Optional[CACEstimator] = None,
    ltv_multiplier: float = 2.0,
) -> CACReport:
    """
    Build the CAC report for one window.

    Args:
        channel_stats: Output of ``attribute_channels``
        period: Period label echoed in the payload
        estimator: Channel cost estimator (industry averages by default)
        ltv_multiplier: AOV multiple used as the LTV proxy

    Returns:
        CACReport with channels sorted by conversions
    """
    estimator = estimator or IndustryAverageCACEstimator()

    ordered: List[ChannelStats] = sorted(
        channel_stats.values(),
        key=lambda s: (-s.conversions, s.channel),
    )
    rows = [channel_row(s, estimator, ltv_multiplier) for s in ordered]

    total_new_customers = sum(row.conversions for row in rows)
    total_spend = math.fsum(row.estimated_cac * row.conversions for row in rows)
    total_revenue = math.fsum(row.revenue for row in rows)

    avg_cac = safe_div(total_spend, total_new_customers)
    avg_ltv = safe_div(total_revenue, total_new_customers) * ltv_multiplier
    ratio = safe_div(avg_ltv, avg_cac)

    logger.debug(
        "CAC estimated",
        channels=len(rows),
        new_customers=total_new_customers,
        estimated_spend=total_spend,
    )

    return CACReport(
        summary=CACSummary(
            total_new_customers=total_new_customers,
            avg_cac=avg_cac,
            avg_ltv=avg_ltv,
            ltv_cac_ratio=ratio,
            total_estimated_marketing_spend=total_spend,
            acquisition_efficiency=acquisition_efficiency(ratio),
        ),
        channels=rows,
        period=period,
        note=CAC_ESTIMATE_NOTE,
    )
