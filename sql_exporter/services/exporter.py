"""
Exporter lifecycle: wires the resolver, scheduler and registry together.

Usage:
    exporter = Exporter(config, MySqlClient(config.db))
    exporter.start()            # inside a running event loop
    text = exporter.get_metrics()
    await exporter.shutdown()
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog

from sql_exporter.config import ExporterConfig
from sql_exporter.domain.models import ResolvedQuery
from sql_exporter.services.db_client import DbClient
from sql_exporter.services.registry import MetricRegistry
from sql_exporter.services.resolver import resolve_all
from sql_exporter.services.scheduler import DEFAULT_INITIAL_DELAY_SECONDS, QueryScheduler

logger = structlog.get_logger(__name__)


class Exporter:
    """Runs every configured query against its databases and serves the gauges."""

    def __init__(
        self,
        config: ExporterConfig,
        db_client: DbClient,
        registry: MetricRegistry | None = None,
        initial_delay_seconds: float = DEFAULT_INITIAL_DELAY_SECONDS,
    ) -> None:
        self.config = config
        self.db_client = db_client
        self.registry = registry if registry is not None else MetricRegistry()
        self.initial_delay_seconds = initial_delay_seconds
        self.logger = logger.bind(component="exporter")
        self._scheduler: QueryScheduler | None = None
        self._resolved: list[ResolvedQuery] = []

    @property
    def resolved_queries(self) -> list[ResolvedQuery]:
        return list(self._resolved)

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None and not self._scheduler.is_stopped

    def start(self) -> None:
        """Resolve every query and start one recurring task per resolved query."""
        if self._scheduler is not None:
            raise RuntimeError("Exporter already started")

        self.logger.info("starting_exporter_schedulers")
        self._resolved = resolve_all(self.config.db.databases, self.config.queries)
        self._scheduler = QueryScheduler(
            self.db_client, self.registry, initial_delay_seconds=self.initial_delay_seconds
        )
        for query in self._resolved:
            self._scheduler.schedule(query)

        self.logger.info(
            "exporter_started",
            queries=len(self.config.queries),
            resolved_queries=len(self._resolved),
        )

    def stop(self) -> None:
        """Signal every scheduler task to stop without waiting for in-flight ticks."""
        if self._scheduler is None:
            return
        self._scheduler.stop()

    async def wait_stopped(self) -> None:
        if self._scheduler is not None:
            await self._scheduler.wait_stopped()

    async def shutdown(self) -> None:
        """Stop the schedulers, wait for them and release database connections."""
        self.stop()
        await self.wait_stopped()
        await self.db_client.close()
        self.logger.info("exporter_stopped")

    def get_metrics(self) -> str:
        return self.registry.export()

    @asynccontextmanager
    async def running(self) -> AsyncIterator["Exporter"]:
        """Start the exporter for the duration of the block, shutting down on exit."""
        self.start()
        try:
            yield self
        finally:
            await self.shutdown()
