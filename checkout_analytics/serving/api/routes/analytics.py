"""
Analytics API Endpoints

Checkout analytics for the authenticated tenant. All endpoints accept
``period`` (today, week, month, year, custom); ``custom`` also needs
ISO-8601 ``startDate`` and ``endDate``.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
import structlog

from checkout_analytics.analytics.schemas import (
    BrowserReport,
    CACReport,
    LTVReport,
    SegmentsReport,
    ShippingReport,
)
from checkout_analytics.analytics.service import AnalyticsService, ReportRequest
from checkout_analytics.serving.api.dependencies import (
    TenantContext,
    get_analytics_service,
    get_tenant,
)

router = APIRouter()
logger = structlog.get_logger(__name__)


def report_request(
    period: Optional[str] = Query(None, description="today, week, month, year or custom"),
    start_date: Optional[str] = Query(None, alias="startDate", description="ISO-8601, custom period only"),
    end_date: Optional[str] = Query(None, alias="endDate", description="ISO-8601, custom period only"),
    tenant: TenantContext = Depends(get_tenant),
) -> ReportRequest:
    """Build a ReportRequest from query parameters and tenant context"""
    return ReportRequest(
        account_id=tenant.account_id,
        period=period,
        start_date=start_date,
        end_date=end_date,
        plan_code=tenant.plan_code,
    )


@router.get("/ltv", response_model=LTVReport)
async def get_ltv(
    request: ReportRequest = Depends(report_request),
    service: AnalyticsService = Depends(get_analytics_service),
) -> LTVReport:
    """
    Customer Lifetime Value analytics.

    Customers are keyed by customer_id when tracked, else by order form,
    else by session, so counts are an approximation.
    """
    logger.info("get_ltv called", period=request.period)
    return await service.ltv_report(request)


@router.get("/cac", response_model=CACReport)
async def get_cac(
    request: ReportRequest = Depends(report_request),
    service: AnalyticsService = Depends(get_analytics_service),
) -> CACReport:
    """Estimated Customer Acquisition Cost and LTV:CAC ratio per channel."""
    logger.info("get_cac called", period=request.period)
    return await service.cac_report(request)


@router.get("/segments", response_model=SegmentsReport)
async def get_segments(
    request: ReportRequest = Depends(report_request),
    service: AnalyticsService = Depends(get_analytics_service),
) -> SegmentsReport:
    """Behavioral customer segmentation. Segments overlap."""
    logger.info("get_segments called", period=request.period)
    return await service.segments_report(request)


@router.get("/browsers", response_model=BrowserReport)
async def get_browsers(
    request: ReportRequest = Depends(report_request),
    service: AnalyticsService = Depends(get_analytics_service),
) -> BrowserReport:
    """Browser and platform analytics."""
    return await service.browser_report(request)


@router.get("/shipping", response_model=ShippingReport)
async def get_shipping(
    request: ReportRequest = Depends(report_request),
    service: AnalyticsService = Depends(get_analytics_service),
) -> ShippingReport:
    """Shipping method analytics."""
    return await service.shipping_report(request)
