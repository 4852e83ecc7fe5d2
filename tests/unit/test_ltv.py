"""
Unit Tests - Customer Lifetime Value
"""
import pytest

from checkout_analytics.analytics.aggregation import aggregate
from checkout_analytics.analytics.ltv import ltv_band_counts, summarize_ltv
from checkout_analytics.events.identity import resolve_identity
from checkout_analytics.events.models import parse_events


class TestSummarizeLTV:
    """Tests for the LTV report"""

    def test_repeat_customer(self, repeat_customer_rows):
        report = summarize_ltv(aggregate(parse_events(repeat_customer_rows), resolve_identity), "week")

        assert report.summary.total_customers == 1
        assert report.summary.total_revenue == 500.0
        assert report.summary.avg_ltv == 500.0
        assert report.summary.recurring_rate == 100.0

        customer = report.customers[0]
        assert customer.identity_key == "c1"
        assert customer.customer_id == "c1"
        assert customer.orders == 3
        assert customer.avg_order_value == pytest.approx(166.67, abs=0.01)
        assert customer.days_between == 4
        assert customer.is_recurring

        assert report.ltv_by_segment.recurring.customers == 1
        assert report.ltv_by_segment.new.customers == 0
        assert report.period == "week"

    def test_avg_ltv_is_exact_mean(self, event_factory):
        events = [
            event_factory("checkout_complete", session_id="a", revenue=10),
            event_factory("checkout_complete", session_id="b", revenue=20),
            event_factory("checkout_complete", session_id="c", revenue=40),
        ]

        report = summarize_ltv(aggregate(events, resolve_identity), "month")

        assert report.summary.total_customers == 3
        assert report.summary.total_revenue == 70.0
        assert report.summary.avg_ltv == pytest.approx(70.0 / 3)
        assert report.summary.recurring_rate == 0.0
        assert [c.identity_key for c in report.customers] == ["c", "b", "a"]

    def test_detail_limit(self, event_factory):
        events = [
            event_factory("checkout_complete", session_id=f"s{i}", revenue=i + 1)
            for i in range(5)
        ]

        report = summarize_ltv(aggregate(events, resolve_identity), "week", detail_limit=2)

        assert report.summary.total_customers == 5
        assert [c.revenue for c in report.customers] == [5.0, 4.0]
        assert report.ltv_by_segment.new.customers == 5

    def test_empty_window(self):
        report = summarize_ltv({}, "today")

        assert report.summary.total_customers == 0
        assert report.summary.avg_ltv == 0.0
        assert report.customers == []
        assert report.ltv_by_segment.recurring.avg_ltv == 0.0

    def test_camel_case_payload(self, repeat_customer_rows):
        report = summarize_ltv(aggregate(parse_events(repeat_customer_rows), resolve_identity), "week")
        payload = report.model_dump(by_alias=True)

        assert set(payload["summary"]) == {
            "totalCustomers",
            "totalRevenue",
            "avgLTV",
            "avgOrdersPerCustomer",
            "recurringRate",
            "ltvSegments",
        }
        assert "avgOrderValue" in payload["customers"][0]
        assert "ltvBySegment" in payload


class TestLTVBands:
    """Tests for relative LTV bands"""

    def test_band_boundaries(self):
        counts = ltv_band_counts([150.0, 149.0, 50.0, 49.0], avg_ltv=100.0)

        assert counts.high == 1
        assert counts.medium == 2
        assert counts.low == 1
