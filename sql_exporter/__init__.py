"""Periodic SQL query runner that republishes results as Prometheus gauges.

The package keeps the scheduling and publication engine in ``services``,
isolated from the MySQL driver and the HTTP surface so it can be tested
with in-memory database clients.
"""

__version__ = "1.0.0"
