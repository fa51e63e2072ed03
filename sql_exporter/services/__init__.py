"""
Core services for the exporter.

This package contains the scheduling and publication engine: query
resolution, the recurring scheduler, the gauge registry and the exporter
lifecycle that ties them together.
"""

from .db_client import DbClient, QueryResult, Result, rows_to_column_values
from .exporter import Exporter
from .registry import MetricRegistry
from .resolver import resolve_all, resolve_queries
from .scheduler import QueryScheduler, TickOutcome

__all__ = [
    "DbClient",
    "Exporter",
    "MetricRegistry",
    "QueryResult",
    "QueryScheduler",
    "Result",
    "TickOutcome",
    "resolve_all",
    "resolve_queries",
    "rows_to_column_values",
]
