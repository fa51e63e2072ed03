"""
Recurring execution of resolved queries.

Each resolved query gets its own asyncio task, so a slow or failing database
never delays the ticks of another. Ticks are wall-clock periodic: the first
fires shortly after start, the following ones at start + k * interval. A tick
that overruns its interval skips the deadlines it missed instead of
overlapping with the next one.

Stopping sets a shared event and cancels every task. A tick whose query is
still in flight is dropped; its result never reaches the registry.
"""

import asyncio
from enum import Enum

import structlog

from sql_exporter.domain.models import ResolvedQuery
from sql_exporter.services.db_client import DbClient
from sql_exporter.services.registry import MetricRegistry

logger = structlog.get_logger(__name__)

DEFAULT_INITIAL_DELAY_SECONDS = 0.25


class TickOutcome(str, Enum):
    """What a single tick did to the registry."""

    SUCCESS = "success"
    NO_DATA = "no_data"
    FAILED = "failed"
    DISCARDED = "discarded"


class QueryScheduler:
    """Owns one recurring task per resolved query."""

    def __init__(
        self,
        db_client: DbClient,
        registry: MetricRegistry,
        initial_delay_seconds: float = DEFAULT_INITIAL_DELAY_SECONDS,
    ) -> None:
        self.db_client = db_client
        self.registry = registry
        self.initial_delay_seconds = initial_delay_seconds
        self.tasks: list[asyncio.Task[None]] = []
        self.logger = logger.bind(component="query_scheduler")
        self._stopped = asyncio.Event()

    @property
    def is_stopped(self) -> bool:
        return self._stopped.is_set()

    def schedule(self, query: ResolvedQuery) -> asyncio.Task[None]:
        """Start the recurring task for one resolved query. Requires a running loop."""
        if self.is_stopped:
            raise RuntimeError("Scheduler already stopped")
        task = asyncio.get_running_loop().create_task(
            self._run(query), name=f"query:{query.name}@{query.target}"
        )
        self.tasks.append(task)
        self.logger.info(
            "query_scheduled",
            query=query.name,
            target=query.target,
            interval_seconds=query.interval_secs,
        )
        return task

    def stop(self) -> None:
        """Signal every task to stop. Returns immediately."""
        self._stopped.set()
        for task in self.tasks:
            task.cancel()
        self.logger.info("scheduler_stop_requested", tasks=len(self.tasks))

    async def wait_stopped(self) -> None:
        """Wait until every cancelled task has finished."""
        await asyncio.gather(*self.tasks, return_exceptions=True)

    async def _run(self, query: ResolvedQuery) -> None:
        loop = asyncio.get_running_loop()
        log = self.logger.bind(query=query.name, target=query.target)
        interval = query.interval_secs
        started = loop.time()
        next_tick = started + self.initial_delay_seconds
        next_index = 1

        try:
            while not self.is_stopped:
                delay = next_tick - loop.time()
                if delay > 0:
                    await asyncio.sleep(delay)
                if self.is_stopped:
                    break

                await self.run_tick(query)

                due_index = int((loop.time() - started) // interval) + 1
                if due_index > next_index:
                    log.warning(
                        "query_slower_than_interval",
                        skipped_ticks=due_index - next_index,
                        interval_seconds=interval,
                    )
                    next_index = due_index
                next_tick = started + next_index * interval
                next_index += 1
        except asyncio.CancelledError:
            log.info("query_task_stopped")
            raise

    async def run_tick(self, query: ResolvedQuery) -> TickOutcome:
        """Execute the query once and apply its values. Never raises on query errors."""
        log = self.logger.bind(query=query.name, target=query.target)

        try:
            result = await self.db_client.execute(
                query.statement, query.value_columns, query.target
            )
        except Exception as e:
            log.exception("unexpected_query_error", error=str(e))
            return TickOutcome.FAILED

        if self.is_stopped:
            log.info("query_result_discarded")
            return TickOutcome.DISCARDED

        if result.is_err():
            error = result.unwrap_err()
            log.error("query_failed", error=str(error), error_type=type(error).__name__)
            return TickOutcome.FAILED

        values = result.unwrap()
        if not values:
            log.debug("query_no_data")
            return TickOutcome.NO_DATA

        try:
            for value in values:
                metric = query.metric_key(value.column)
                self.registry.update(metric, query.target, value.value)
                log.debug("gauge_updated", metric=metric, value=value.value)
        except Exception as e:
            log.exception("gauge_update_failed", error=str(e))
            return TickOutcome.FAILED

        return TickOutcome.SUCCESS
