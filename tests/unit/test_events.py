"""
Unit Tests - Events, Revenue Extraction and Identity Resolution
"""
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from checkout_analytics.analytics.aggregation import aggregate
from checkout_analytics.events.identity import (
    channel_display_name,
    normalize_channel,
    resolve_channel,
    resolve_identity,
)
from checkout_analytics.events.models import EventMetadata, parse_event, parse_events
from checkout_analytics.events.revenue import coerce_amount, extract_revenue


class TestCoerceAmount:
    """Tests for monetary value coercion"""

    @pytest.mark.parametrize("value,expected", [
        (120, 120.0),
        (49.9, 49.9),
        ("49.90", 49.9),
        ("12.50 USD", 12.5),
        ("  7", 7.0),
    ])
    def test_numeric_values(self, value, expected):
        """Test numbers and numeric-looking strings"""
        assert coerce_amount(value) == pytest.approx(expected)

    @pytest.mark.parametrize("value", [None, "", "abc", "USD 12", True, [], {}])
    def test_unusable_values_are_zero(self, value):
        """Test values without a leading number"""
        assert coerce_amount(value) == 0.0

    @pytest.mark.parametrize("value", [-5, "-10.5", float("inf"), float("nan"), "Infinity"])
    def test_negative_and_non_finite_are_zero(self, value):
        """Test negative, infinite and NaN amounts"""
        assert coerce_amount(value) == 0.0

    @pytest.mark.parametrize("value", [10 ** 400, Decimal("1e400"), Decimal("NaN"), "9" * 400])
    def test_out_of_range_amounts_are_zero(self, value):
        """Test amounts too large for a float"""
        assert coerce_amount(value) == 0.0

    def test_oversized_revenue_does_not_sink_batch(self, row_factory):
        """Test one unusable amount leaves the rest of the slice intact"""
        events = parse_events([
            row_factory("checkout_complete", session_id="s1", revenue=10 ** 400),
            row_factory("checkout_complete", session_id="s2", revenue=50),
        ])

        assert extract_revenue(events[0]) == 0.0

        states = aggregate(events, resolve_identity)
        assert set(states) == {"s2"}
        assert states["s2"].total_revenue == 50.0


class TestExtractRevenue:
    """Tests for revenue field resolution"""

    def test_revenue_field_priority(self, event_factory):
        """Test revenue wins over the other names"""
        event = event_factory("checkout_complete", revenue=10, value=20, amount=30)
        assert extract_revenue(event) == 10.0

    def test_fallback_field_names(self, event_factory):
        """Test orderValue is used when earlier names are absent"""
        event = event_factory("checkout_complete", orderValue="99.5")
        assert extract_revenue(event) == 99.5

    def test_first_present_field_is_used_even_if_zero(self, event_factory):
        """Test a stored 0 does not fall through to later names"""
        event = event_factory("checkout_complete", revenue=0, value=50)
        assert extract_revenue(event) == 0.0

    def test_null_field_falls_through(self, event_factory):
        """Test null values are treated as absent"""
        event = event_factory("checkout_complete", revenue=None, totalValue=42)
        assert extract_revenue(event) == 42.0

    def test_no_revenue(self, event_factory):
        """Test events without any revenue field"""
        assert extract_revenue(event_factory("checkout_complete")) == 0.0


class TestIdentity:
    """Tests for identity and channel resolution"""

    def test_customer_id_preferred(self, event_factory):
        event = event_factory("checkout_complete", session_id="s1", order_form_id="of1", customer_id="c1")
        assert resolve_identity(event) == "c1"

    def test_order_form_fallback(self, event_factory):
        event = event_factory("checkout_complete", session_id="s1", order_form_id="of1")
        assert resolve_identity(event) == "of1"

    def test_session_fallback(self, event_factory):
        """Test empty customer and order form ids fall back to session"""
        event = event_factory("checkout_complete", session_id="s1", order_form_id="", customer_id="")
        assert resolve_identity(event) == "s1"

    def test_channel_normalization(self):
        assert normalize_channel("Google Ads") == "google_ads"
        assert normalize_channel("news.ycombinator.com") == "news_ycombinator_com"

    def test_channel_priority(self, event_factory):
        """Test utm_source wins over referrer and channel"""
        event = event_factory("checkout_start", utm_source="Facebook", referrer="google.com", channel="email")
        assert resolve_channel(event) == "facebook"

    def test_channel_defaults_to_direct(self, event_factory):
        assert resolve_channel(event_factory("checkout_start")) == "direct"

    def test_display_name(self):
        assert channel_display_name("google_ads") == "Google ads"
        assert channel_display_name("direct") == "Direct"


class TestEventParsing:
    """Tests for event row parsing"""

    def test_camel_case_row(self):
        """Test camelCase column names"""
        event = parse_event({
            "sessionId": "s1",
            "orderFormId": "of1",
            "eventType": "checkout_complete",
            "timestamp": "2025-06-01T10:00:00Z",
            "metadata": {"revenue": 10},
        })

        assert event is not None
        assert event.session_id == "s1"
        assert event.order_form_id == "of1"
        assert event.is_conversion

    def test_naive_timestamp_is_utc(self):
        event = parse_event({
            "session_id": "s1",
            "event_type": "checkout_start",
            "timestamp": datetime(2025, 6, 1, 10, 0),
        })

        assert event.timestamp.tzinfo == timezone.utc

    def test_non_mapping_metadata_becomes_empty(self):
        event = parse_event({
            "session_id": "s1",
            "event_type": "checkout_start",
            "timestamp": "2025-06-01T10:00:00Z",
            "metadata": "not-a-dict",
        })

        assert event.metadata == {}
        assert event.meta.channel_field() is None

    @pytest.mark.parametrize("row", [
        {"event_type": "checkout_start", "timestamp": "2025-06-01T10:00:00Z"},
        {"session_id": "s1", "timestamp": "2025-06-01T10:00:00Z"},
        {"session_id": "s1", "event_type": "checkout_start"},
        {"session_id": "s1", "event_type": "checkout_start", "timestamp": "yesterday"},
        "not a row",
    ])
    def test_malformed_rows_are_rejected(self, row):
        assert parse_event(row) is None

    def test_parse_events_skips_malformed(self, row_factory):
        """Test a bad row does not fail the batch"""
        rows = [
            row_factory("checkout_complete", session_id="s1"),
            {"event_type": "checkout_complete"},
            row_factory("checkout_complete", session_id="s2"),
        ]

        events = parse_events(rows)

        assert [e.session_id for e in events] == ["s1", "s2"]


class TestEventMetadata:
    """Tests for the metadata accessor view"""

    def test_browser_field_fallback(self):
        assert EventMetadata({"browser": "Firefox"}).browser_field() == "Firefox"
        assert EventMetadata({"browserName": "Chrome", "browser": "x"}).browser_field() == "Chrome"

    def test_missing_values(self):
        meta = EventMetadata(None)
        assert meta.revenue_field() is None
        assert meta.shipping_method_field() is None
        assert "revenue" not in meta
