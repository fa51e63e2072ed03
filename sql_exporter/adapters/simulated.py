"""
Simulated database client for running the exporter without a database.

Every statement returns a single row with a random value per requested
column. A configurable share of executions fails, so the scheduler's error
paths can be watched in the logs.
"""

import asyncio
import random
from collections.abc import Sequence

import structlog

from sql_exporter.domain.models import ColumnValue
from sql_exporter.errors import QueryExecutionError
from sql_exporter.services.db_client import QueryResult, Result

logger = structlog.get_logger(__name__)


class SimulatedDbClient:
    """In-memory DbClient producing random gauge values."""

    def __init__(
        self,
        failure_rate: float = 0.05,
        min_latency_seconds: float = 0.01,
        max_latency_seconds: float = 0.2,
        value_range: tuple[float, float] = (0.0, 100.0),
    ) -> None:
        if not 0.0 <= failure_rate <= 1.0:
            raise ValueError("failure_rate must be between 0 and 1")
        self.failure_rate = failure_rate
        self.min_latency_seconds = min_latency_seconds
        self.max_latency_seconds = max_latency_seconds
        self.value_range = value_range
        self.executions: dict[str, int] = {}
        self.logger = logger.bind(component="simulated_db_client")

    async def execute(
        self, statement: str, value_columns: Sequence[str], database: str
    ) -> QueryResult:
        self.executions[database] = self.executions.get(database, 0) + 1

        # Simulate network/database latency
        await asyncio.sleep(random.uniform(self.min_latency_seconds, self.max_latency_seconds))

        if random.random() < self.failure_rate:
            return Result.err(
                QueryExecutionError(f"Simulated failure executing [{statement}] on [{database}]")
            )

        low, high = self.value_range
        values = [
            ColumnValue(column=column, value=round(random.uniform(low, high), 2))
            for column in value_columns
        ]
        self.logger.debug("simulated_query_executed", database=database, count=len(values))
        return Result.ok(values)

    async def close(self) -> None:
        self.executions.clear()
