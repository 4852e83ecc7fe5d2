"""
Exception hierarchy for analytics queries.

Exception Hierarchy:
    AnalyticsError (base)
    ├── ValidationError       - Request input rejected (HTTP 400)
    │   └── DateRangeError    - Bad date format, inverted or over-long range
    ├── TenantContextError    - No tenant account on the request
    └── UpstreamFetchError    - Event store query failed (HTTP 500)

Malformed events and unusable revenue values are not errors; they are
skipped or coerced to zero by the aggregation code.
"""
from typing import Any, Optional


class AnalyticsError(Exception):
    """Base exception for all analytics errors."""

    def __init__(self, message: str, details: Optional[str] = None):
        self.message = message
        self.details = details
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class ValidationError(AnalyticsError):
    """
    Request input failed validation.

    Raised before any event fetch happens.
    """

    def __init__(self, message: str, details: Optional[str] = None, field: Optional[str] = None, value: Any = None):
        super().__init__(message, details)
        self.field = field
        self.value = value


class DateRangeError(ValidationError):
    """Requested reporting window is unparsable, inverted, or exceeds the plan ceiling."""

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        field: Optional[str] = None,
        value: Any = None,
        requested_days: Optional[float] = None,
        allowed_days: Optional[int] = None,
    ):
        super().__init__(message, details, field=field, value=value)
        self.requested_days = requested_days
        self.allowed_days = allowed_days


class TenantContextError(AnalyticsError):
    """The request carries no usable tenant account."""

    def __init__(self, message: str, details: Optional[str] = None, status_code: int = 401):
        super().__init__(message, details)
        self.status_code = status_code


class UpstreamFetchError(AnalyticsError):
    """
    The event store failed to return a slice.

    The whole request fails; no partial aggregation is returned.
    """

    def __init__(self, message: str, details: Optional[str] = None, event_types: Optional[list] = None):
        super().__init__(message, details)
        self.event_types = event_types or []
