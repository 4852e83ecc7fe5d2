"""
Analytics Query Service

Entry point for the metric endpoints. For each report:

1. Resolve the reporting window (validation errors abort before any fetch)
2. Fetch the event slice(s) the metric needs
3. Aggregate and run the metric calculator
4. Return the response payload

The service holds no mutable state; one instance can serve concurrent
requests. A failed fetch fails the whole report with UpstreamFetchError.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence

import structlog

from checkout_analytics.analytics.aggregation import aggregate
from checkout_analytics.analytics.breakdowns import (
    BROWSER_EVENT_TYPES,
    SHIPPING_EVENT_TYPES,
    summarize_browsers,
    summarize_shipping,
)
from checkout_analytics.analytics.cac import (
    CACEstimator,
    IndustryAverageCACEstimator,
    attribute_channels,
    summarize_cac,
)
from checkout_analytics.analytics.ltv import summarize_ltv
from checkout_analytics.analytics.periods import (
    Clock,
    Period,
    TimeWindow,
    max_range_days_for_plan,
    parse_iso_datetime,
    parse_period,
    resolve_window,
    utc_now,
)
from checkout_analytics.analytics.schemas import (
    BrowserReport,
    CACReport,
    LTVReport,
    SegmentsReport,
    ShippingReport,
)
from checkout_analytics.analytics.segments import summarize_segments
from checkout_analytics.config import Settings, get_settings
from checkout_analytics.events.identity import resolve_identity
from checkout_analytics.events.models import CONVERSION_EVENT_TYPES, EventRecord, EventType
from checkout_analytics.exceptions import UpstreamFetchError
from checkout_analytics.store.base import EventStore

logger = structlog.get_logger(__name__)

CHECKOUT_START_TYPES = (EventType.CHECKOUT_START.value,)


@dataclass(frozen=True)
class ReportRequest:
    """Tenant and period parameters of a metric request"""
    account_id: str
    period: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    plan_code: Optional[str] = None


class AnalyticsService:
    """
    Computes checkout analytics reports from a tenant's event slices.

    Example:
        service = AnalyticsService(PostgresEventStore())
        report = await service.ltv_report(ReportRequest(account_id="acct-1", period="month"))
    """

    def __init__(
        self,
        store: EventStore,
        clock: Clock = utc_now,
        cac_estimator: Optional[CACEstimator] = None,
        settings: Optional[Settings] = None,
    ):
        self.store = store
        self.clock = clock
        self.settings = settings or get_settings()
        self.cac_estimator = cac_estimator or IndustryAverageCACEstimator(
            default=self.settings.analytics.default_cac,
        )

    # -------------------------------------------------------------------------
    # Window and fetch
    # -------------------------------------------------------------------------

    def period_of(self, request: ReportRequest) -> Period:
        return parse_period(request.period, default=Period(self.settings.analytics.default_period))

    def resolve_window(self, request: ReportRequest, now: datetime) -> TimeWindow:
        """
        Window for a request.

        Raises:
            DateRangeError: Bad custom dates or range over the plan ceiling
        """
        period = self.period_of(request)
        if period != Period.CUSTOM:
            return resolve_window(period, now)

        analytics = self.settings.analytics
        return resolve_window(
            period,
            now,
            custom_start=parse_iso_datetime(request.start_date, "startDate") if request.start_date else None,
            custom_end=parse_iso_datetime(request.end_date, "endDate") if request.end_date else None,
            max_range_days=max_range_days_for_plan(
                request.plan_code,
                analytics.plan_max_range_days,
                analytics.default_plan,
            ),
        )

    async def _fetch(
        self,
        metric: str,
        account_id: str,
        event_types: Sequence[str],
        window: TimeWindow,
    ) -> List[EventRecord]:
        try:
            return await self.store.fetch_events(account_id, event_types, window.start, window.end)
        except Exception as e:
            logger.error(
                "Event fetch failed",
                metric=metric,
                account_id=account_id,
                event_types=list(event_types),
                error=str(e),
                error_type=type(e).__name__,
            )
            raise UpstreamFetchError(
                f"Failed to fetch {metric} data",
                details=type(e).__name__,
                event_types=list(event_types),
            ) from e

    # -------------------------------------------------------------------------
    # Reports
    # -------------------------------------------------------------------------

    async def ltv_report(self, request: ReportRequest) -> LTVReport:
        """Customer lifetime value over the window"""
        now = self.clock()
        period = self.period_of(request)
        window = self.resolve_window(request, now)

        events = await self._fetch("LTV", request.account_id, CONVERSION_EVENT_TYPES, window)
        customers = aggregate(events, resolve_identity)

        report = summarize_ltv(customers, period.value, self.settings.analytics.detail_limit)
        logger.info(
            "LTV report computed",
            account_id=request.account_id,
            period=period.value,
            events=len(events),
            customers=report.summary.total_customers,
        )
        return report

    async def cac_report(self, request: ReportRequest) -> CACReport:
        """Estimated acquisition cost per channel"""
        now = self.clock()
        period = self.period_of(request)
        window = self.resolve_window(request, now)

        # A failed slice cancels the other fetch
        try:
            async with asyncio.TaskGroup() as group:
                starts = group.create_task(
                    self._fetch("CAC", request.account_id, CHECKOUT_START_TYPES, window)
                )
                conversions = group.create_task(
                    self._fetch("checkout complete", request.account_id, CONVERSION_EVENT_TYPES, window)
                )
        except ExceptionGroup as eg:
            raise eg.exceptions[0]

        channels = attribute_channels(starts.result(), conversions.result())

        report = summarize_cac(
            channels,
            period.value,
            estimator=self.cac_estimator,
            ltv_multiplier=self.settings.analytics.ltv_proxy_multiplier,
        )
        logger.info(
            "CAC report computed",
            account_id=request.account_id,
            period=period.value,
            channels=len(report.channels),
            new_customers=report.summary.total_new_customers,
        )
        return report

    async def segments_report(self, request: ReportRequest) -> SegmentsReport:
        """Behavioral segments over the window"""
        now = self.clock()
        period = self.period_of(request)
        window = self.resolve_window(request, now)

        events = await self._fetch("segments", request.account_id, CONVERSION_EVENT_TYPES, window)
        customers = aggregate(events, resolve_identity)

        report = summarize_segments(customers, now, period.value)
        logger.info(
            "Segments report computed",
            account_id=request.account_id,
            period=period.value,
            customers=report.summary.total_customers,
        )
        return report

    async def browser_report(self, request: ReportRequest) -> BrowserReport:
        """Browser and platform breakdown of checkout sessions"""
        now = self.clock()
        period = self.period_of(request)
        window = self.resolve_window(request, now)

        events = await self._fetch("browser analytics", request.account_id, BROWSER_EVENT_TYPES, window)
        return summarize_browsers(events, period.value)

    async def shipping_report(self, request: ReportRequest) -> ShippingReport:
        """Shipping method breakdown"""
        now = self.clock()
        period = self.period_of(request)
        window = self.resolve_window(request, now)

        events = await self._fetch("shipping analytics", request.account_id, SHIPPING_EVENT_TYPES, window)
        return summarize_shipping(events, period.value)
