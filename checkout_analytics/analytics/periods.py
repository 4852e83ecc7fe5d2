"""
Reporting Period Resolution

Maps a requested reporting period to a concrete [start, end) window.

"now" is always passed in by the caller; nothing here reads the system
clock except ``utc_now``, the default clock handed to the query service.
Custom ranges are checked against a plan-dependent maximum span; the
named periods are bounded by construction and ignore plan ceilings.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Mapping, Optional, Union

import structlog
from dateutil.parser import isoparse
from dateutil.relativedelta import relativedelta

from checkout_analytics.exceptions import DateRangeError

logger = structlog.get_logger(__name__)

Clock = Callable[[], datetime]

SECONDS_PER_DAY = 86400


class Period(str, Enum):
    """Supported reporting periods"""
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"
    CUSTOM = "custom"


@dataclass(frozen=True)
class TimeWindow:
    """Resolved reporting window"""
    start: datetime
    end: datetime

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def days(self) -> float:
        """Span in fractional days"""
        return self.duration.total_seconds() / SECONDS_PER_DAY


def utc_now() -> datetime:
    """Default clock"""
    return datetime.now(timezone.utc)


def parse_period(value: Optional[Union[str, Period]], default: Period = Period.WEEK) -> Period:
    """
    Parse a period query value.

    Unknown or missing values fall back to ``default``.
    """
    if isinstance(value, Period):
        return value
    if value:
        try:
            return Period(value.strip().lower())
        except ValueError:
            logger.debug("Unknown period, using default", requested=value, default=default.value)
    return default


def parse_iso_datetime(value: str, field: str = "date") -> datetime:
    """
    Parse an ISO-8601 date or datetime. Naive values are taken as UTC.

    Raises:
        DateRangeError: If the value is not valid ISO-8601
    """
    try:
        parsed = isoparse(value.strip())
    except (ValueError, OverflowError, AttributeError) as e:
        raise DateRangeError(
            "Invalid date format. Use ISO 8601 format.",
            details=f"{field}={value!r}",
            field=field,
            value=value,
        ) from e

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def max_range_days_for_plan(
    plan_code: Optional[str],
    ceilings: Mapping[str, int],
    default_plan: str = "starter",
) -> int:
    """Maximum custom range span for a plan; unknown plans get the default plan's ceiling."""
    code = (plan_code or default_plan).strip().lower()
    if code in ceilings:
        return ceilings[code]
    logger.debug("Unknown plan code, using default ceiling", plan=code, default_plan=default_plan)
    return ceilings[default_plan]


def resolve_window(
    period: Union[str, Period],
    now: datetime,
    custom_start: Optional[datetime] = None,
    custom_end: Optional[datetime] = None,
    max_range_days: Optional[int] = None,
) -> TimeWindow:
    """
    Resolve a period to a concrete window ending at ``now``.

    Args:
        period: today, week, month, year or custom
        now: Reference instant
        custom_start: Range start, required for custom
        custom_end: Range end, required for custom
        max_range_days: Plan ceiling for custom ranges (None = unlimited)

    Returns:
        TimeWindow

    Raises:
        DateRangeError: Missing, inverted, or over-long custom range
    """
    period = parse_period(period)

    if period == Period.TODAY:
        start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        return TimeWindow(start=start, end=now)
    if period == Period.WEEK:
        return TimeWindow(start=now - timedelta(days=7), end=now)
    if period == Period.MONTH:
        return TimeWindow(start=now - relativedelta(months=1), end=now)
    if period == Period.YEAR:
        return TimeWindow(start=now - relativedelta(years=1), end=now)

    if custom_start is None or custom_end is None:
        raise DateRangeError(
            "Custom period requires startDate and endDate",
            field="startDate" if custom_start is None else "endDate",
        )

    if custom_start > custom_end:
        raise DateRangeError(
            "Start date must not be after end date",
            details=f"startDate={custom_start.isoformat()} endDate={custom_end.isoformat()}",
            field="startDate",
        )

    window = TimeWindow(start=custom_start, end=custom_end)

    if max_range_days is not None and window.days > max_range_days:
        raise DateRangeError(
            "Date range exceeds plan limit",
            details=f"requested {window.days:.1f} days, allowed {max_range_days} days",
            field="endDate",
            requested_days=window.days,
            allowed_days=max_range_days,
        )

    return window
