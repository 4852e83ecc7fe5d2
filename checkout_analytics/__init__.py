"""
Checkout Analytics Aggregation Engine

Customer LTV, CAC and behavioral segments computed on demand from
checkout telemetry events.
"""

__version__ = "1.0.0"
