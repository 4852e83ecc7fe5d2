"""
Unit Tests - Behavioral Segmentation
"""
import pytest

from checkout_analytics.analytics.aggregation import aggregate
from checkout_analytics.analytics.segments import (
    SEGMENT_DEFINITIONS,
    SegmentTag,
    aov_stats,
    segment_membership,
    summarize_segments,
)
from checkout_analytics.events.identity import resolve_identity


@pytest.fixture
def customers(event_factory):
    """
    Four customers:
    - big: two large recent orders (vip + frequent)
    - fresh: one small order 3 days ago (new)
    - lapsing: one order 70 days ago (at-risk)
    - gone: one order 120 days ago (dormant)
    """
    events = [
        event_factory("checkout_complete", session_id="b1", days_ago=10, customer_id="big", revenue=500),
        event_factory("checkout_complete", session_id="b2", days_ago=5, customer_id="big", revenue=700),
        event_factory("checkout_complete", session_id="f1", days_ago=3, customer_id="fresh", revenue=40),
        event_factory("checkout_complete", session_id="l1", days_ago=70, customer_id="lapsing", revenue=60),
        event_factory("checkout_complete", session_id="g1", days_ago=120, customer_id="gone", revenue=50),
    ]
    return aggregate(events, resolve_identity)


class TestClassification:
    """Tests for per-customer segment tags"""

    def test_membership(self, customers, now):
        membership = segment_membership(customers, now)

        assert membership["big"] == {SegmentTag.VIP, SegmentTag.FREQUENT}
        assert membership["fresh"] == {SegmentTag.NEW}
        assert membership["lapsing"] == {SegmentTag.AT_RISK}
        assert membership["gone"] == {SegmentTag.DORMANT}

    def test_at_risk_and_dormant_are_exclusive(self, event_factory, now):
        events = [event_factory("checkout_complete", days_ago=90, revenue=10)]
        membership = segment_membership(aggregate(events, resolve_identity), now)

        assert membership["s1"] == {SegmentTag.DORMANT, SegmentTag.VIP}

    def test_aov_stats_population_std(self, customers):
        stats = aov_stats(customers)

        assert stats.mean == pytest.approx((600 + 40 + 60 + 50) / 4)
        assert stats.std == pytest.approx(238.262, rel=1e-4)
        assert stats.vip_threshold == pytest.approx(stats.mean + stats.std)


class TestSummarizeSegments:
    """Tests for the segments report"""

    def test_all_segments_listed(self, customers, now):
        report = summarize_segments(customers, now, "year")

        assert [s.key for s in report.segments] == [tag.value for tag, _, _ in SEGMENT_DEFINITIONS]
        by_key = {s.key: s.metrics for s in report.segments}

        assert by_key["vip"].count == 1
        assert by_key["vip"].total_revenue == 1200.0
        assert by_key["vip"].avg_aov == 600.0
        assert by_key["frequent"].avg_orders == 2.0
        assert by_key["new"].conversion_rate == 25.0

    def test_overlapping_counts(self, customers, now):
        """Test segment counts can sum to more than the customer count"""
        report = summarize_segments(customers, now, "year")

        assert sum(s.metrics.count for s in report.segments) == 5
        assert report.summary.total_customers == 4

    def test_summary(self, customers, now):
        report = summarize_segments(customers, now, "year")

        assert report.summary.total_revenue == 1350.0
        assert report.summary.overall_avg_ltv == pytest.approx(337.5)
        assert report.summary.avg_orders == pytest.approx(1.25)
        assert report.period == "year"

    def test_empty_window(self, now):
        report = summarize_segments({}, now, "week")

        assert report.segments == []
        assert report.summary.total_customers == 0
        assert report.summary.avg_aov == 0.0

    def test_camel_case_payload(self, customers, now):
        payload = summarize_segments(customers, now, "year").model_dump(by_alias=True)

        assert "overallAvgLTV" in payload["summary"]
        assert "avgAOV" in payload["segments"][0]["metrics"]
