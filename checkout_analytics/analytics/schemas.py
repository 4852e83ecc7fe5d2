"""
Analytics Response Schemas

Payloads returned by the metric endpoints. Field names are snake_case in
Python and serialize to the camelCase keys the dashboard consumes.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for payloads serialized with camelCase keys"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# LTV
# =============================================================================

class LTVSegmentCounts(CamelModel):
    """Customers per value band, relative to the window's average LTV"""
    high: int = 0
    medium: int = 0
    low: int = 0


class LTVSummary(CamelModel):
    total_customers: int
    total_revenue: float
    avg_ltv: float = Field(alias="avgLTV")
    avg_orders_per_customer: float
    recurring_rate: float
    ltv_segments: LTVSegmentCounts


class CustomerLTV(CamelModel):
    identity_key: str
    customer_id: Optional[str] = None
    orders: int
    revenue: float
    avg_order_value: float
    first_order_date: datetime
    last_order_date: datetime
    days_between: int
    purchase_frequency: float
    is_recurring: bool


class LTVGroup(CamelModel):
    customers: int = 0
    total_revenue: float = 0.0
    avg_ltv: float = Field(default=0.0, alias="avgLTV")


class LTVBySegment(CamelModel):
    recurring: LTVGroup = Field(default_factory=LTVGroup)
    new: LTVGroup = Field(default_factory=LTVGroup)


class LTVReport(CamelModel):
    summary: LTVSummary
    customers: List[CustomerLTV]
    ltv_by_segment: LTVBySegment
    period: str


# =============================================================================
# CAC
# =============================================================================

class AcquisitionEfficiency(CamelModel):
    excellent: bool
    good: bool
    needs_improvement: bool
    ratio: float


class CACSummary(CamelModel):
    total_new_customers: int
    avg_cac: float = Field(alias="avgCAC")
    avg_ltv: float = Field(alias="avgLTV")
    ltv_cac_ratio: float
    total_estimated_marketing_spend: float
    acquisition_efficiency: AcquisitionEfficiency


class ChannelCAC(CamelModel):
    channel: str
    sessions: int
    conversions: int
    revenue: float
    conversion_rate: float
    avg_order_value: float
    estimated_cac: float = Field(alias="estimatedCAC")
    ltv_cac_ratio: float


class CACReport(CamelModel):
    summary: CACSummary
    channels: List[ChannelCAC]
    period: str
    note: str


# =============================================================================
# SEGMENTS
# =============================================================================

class SegmentMetrics(CamelModel):
    count: int = 0
    total_revenue: float = 0.0
    avg_ltv: float = Field(default=0.0, alias="avgLTV")
    avg_aov: float = Field(default=0.0, alias="avgAOV")
    avg_orders: float = 0.0
    conversion_rate: float = 0.0


class SegmentReportItem(CamelModel):
    key: str
    name: str
    description: str
    metrics: SegmentMetrics


class SegmentsSummary(CamelModel):
    total_customers: int
    total_revenue: float
    overall_avg_ltv: float = Field(alias="overallAvgLTV")
    avg_aov: float = Field(alias="avgAOV")
    avg_orders: float


class SegmentsReport(CamelModel):
    summary: SegmentsSummary
    segments: List[SegmentReportItem]
    period: str


# =============================================================================
# BREAKDOWNS
# =============================================================================

class BrowserBreakdown(CamelModel):
    browser: str
    sessions: int
    conversion: float
    revenue: float
    market_share: float


class PlatformBreakdown(CamelModel):
    platform: str
    sessions: int
    conversion: float
    revenue: float


class BrowserReport(CamelModel):
    browsers: List[BrowserBreakdown]
    platforms: List[PlatformBreakdown]
    total_sessions: int
    avg_conversion: float
    period: str


class ShippingMethodBreakdown(CamelModel):
    method: str
    count: int
    avg_days: float
    avg_cost: float


class ShippingReport(CamelModel):
    shipping_methods: List[ShippingMethodBreakdown]
    total_shipments: int
    avg_shipping_cost: float
    period: str

