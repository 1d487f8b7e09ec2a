"""Data aggregation logic for analytics."""

from biolink.aggregators.overview import period_window, resolve_period, summarize

__all__ = [
    "period_window",
    "resolve_period",
    "summarize",
]
