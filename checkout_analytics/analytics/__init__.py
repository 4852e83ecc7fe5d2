"""
Analytics Module
"""
from .aggregation import AggregateState, aggregate, merge_aggregates
from .periods import Period, TimeWindow, resolve_window
from .service import AnalyticsService, ReportRequest

__all__ = [
    "AggregateState",
    "aggregate",
    "merge_aggregates",
    "Period",
    "TimeWindow",
    "resolve_window",
    "AnalyticsService",
    "ReportRequest",
]
