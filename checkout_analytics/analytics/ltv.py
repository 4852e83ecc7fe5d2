"""
Customer Lifetime Value

Pure calculations over identity-keyed aggregates. Value bands (high /
medium / low) are relative to the mean LTV of the current window, so their
boundaries move with the query.
"""

import math
from typing import Dict, List

from checkout_analytics.analytics.aggregation import AggregateState
from checkout_analytics.analytics.schemas import (
    CustomerLTV,
    LTVBySegment,
    LTVGroup,
    LTVReport,
    LTVSegmentCounts,
    LTVSummary,
)

HIGH_LTV_FACTOR = 1.5
LOW_LTV_FACTOR = 0.5


def safe_div(numerator: float, denominator: float) -> float:
    """Division that returns 0.0 for a zero denominator"""
    if not denominator:
        return 0.0
    return numerator / denominator


def customer_ltv(state: AggregateState) -> CustomerLTV:
    """Per-customer LTV row"""
    return CustomerLTV(
        identity_key=state.key,
        customer_id=state.customer_id,
        orders=state.order_count,
        revenue=state.total_revenue,
        avg_order_value=state.avg_order_value,
        first_order_date=state.first_activity_at,
        last_order_date=state.last_activity_at,
        days_between=round(state.days_between),
        purchase_frequency=state.purchase_frequency,
        is_recurring=state.is_recurring,
    )


def ltv_band_counts(revenues: List[float], avg_ltv: float) -> LTVSegmentCounts:
    """Count customers per band around ``avg_ltv``"""
    high_floor = avg_ltv * HIGH_LTV_FACTOR
    low_ceiling = avg_ltv * LOW_LTV_FACTOR

    counts = LTVSegmentCounts()
    for revenue in revenues:
        if revenue >= high_floor:
            counts.high += 1
        elif revenue >= low_ceiling:
            counts.medium += 1
        else:
            counts.low += 1
    return counts


def ltv_by_recurrence(rows: List[CustomerLTV]) -> LTVBySegment:
    """Split customers into recurring (2+ orders) and new"""
    groups: Dict[str, List[float]] = {"recurring": [], "new": []}
    for row in rows:
        groups["recurring" if row.is_recurring else "new"].append(row.revenue)

    def _group(revenues: List[float]) -> LTVGroup:
        total = math.fsum(revenues)
        return LTVGroup(
            customers=len(revenues),
            total_revenue=total,
            avg_ltv=safe_div(total, len(revenues)),
        )

    return LTVBySegment(recurring=_group(groups["recurring"]), new=_group(groups["new"]))


def summarize_ltv(
    aggregates: Dict[str, AggregateState],
    period: str,
    detail_limit: int = 100,
) -> LTVReport:
    """
    Build the LTV report for one window.

    Args:
        aggregates: Identity-keyed aggregates
        period: Period label echoed in the payload
        detail_limit: Max customers in the detail list

    Returns:
        LTVReport with roll-up summary and top customers by revenue
    """
    rows = [customer_ltv(state) for state in aggregates.values()]

    total_customers = len(rows)
    total_revenue = math.fsum(row.revenue for row in rows)
    avg_ltv = safe_div(total_revenue, total_customers)
    total_orders = sum(row.orders for row in rows)
    recurring = sum(1 for row in rows if row.is_recurring)

    summary = LTVSummary(
        total_customers=total_customers,
        total_revenue=total_revenue,
        avg_ltv=avg_ltv,
        avg_orders_per_customer=safe_div(total_orders, total_customers),
        recurring_rate=safe_div(recurring, total_customers) * 100,
        ltv_segments=ltv_band_counts([row.revenue for row in rows], avg_ltv),
    )

    rows.sort(key=lambda row: (-row.revenue, row.identity_key))

    return LTVReport(
        summary=summary,
        customers=rows[:detail_limit],
        ltv_by_segment=ltv_by_recurrence(rows),
        period=period,
    )
