"""Shared test doubles for the exporter services."""

import asyncio
from collections import deque
from collections.abc import Callable, Mapping, Sequence
from typing import Any

import pytest

from sql_exporter.config import DbConfig, ExporterConfig
from sql_exporter.domain.models import QueryDefinition, ResolvedQuery
from sql_exporter.errors import ResultShapeError, ValueParseError
from sql_exporter.services.db_client import QueryResult, Result, rows_to_column_values
from sql_exporter.services.registry import MetricRegistry

Response = list[Mapping[str, Any]] | Exception


class ScriptedDbClient:
    """
    DbClient test double that replays scripted responses per database.

    A response is either a list of rows (translated exactly like the MySQL
    client does) or an exception returned as a failed Result. Once a
    database's script runs out, every further call returns no rows.
    """

    def __init__(
        self,
        responses: Mapping[str, Sequence[Response]] | None = None,
        delay_seconds: float = 0.0,
        delays: Mapping[str, float] | None = None,
        raise_on: set[str] | None = None,
    ) -> None:
        self.responses = {db: deque(items) for db, items in (responses or {}).items()}
        self.delay_seconds = delay_seconds
        self.delays = dict(delays or {})
        self.raise_on = raise_on or set()
        self.calls: list[tuple[str, tuple[str, ...], str]] = []
        self.call_times: list[float] = []
        self.completed = 0
        self.closed = False

    def calls_for(self, database: str) -> int:
        return sum(1 for _, _, db in self.calls if db == database)

    async def execute(
        self, statement: str, value_columns: Sequence[str], database: str
    ) -> QueryResult:
        self.calls.append((statement, tuple(value_columns), database))
        self.call_times.append(asyncio.get_running_loop().time())

        delay = self.delays.get(database, self.delay_seconds)
        if delay > 0:
            await asyncio.sleep(delay)

        if database in self.raise_on:
            self.completed += 1
            raise ConnectionResetError(f"connection to {database} lost")

        script = self.responses.get(database)
        response: Response = script.popleft() if script else []
        self.completed += 1

        if isinstance(response, Exception):
            return Result.err(response)
        try:
            return Result.ok(rows_to_column_values(statement, response, value_columns))
        except (ResultShapeError, ValueParseError) as e:
            return Result.err(e)

    async def close(self) -> None:
        self.closed = True


async def wait_until(predicate: Callable[[], bool], timeout: float = 5.0) -> None:
    """Poll the predicate, yielding to the scheduler tasks between checks."""

    async def _poll() -> None:
        while not predicate():
            await asyncio.sleep(0.01)

    await asyncio.wait_for(_poll(), timeout=timeout)


def make_query(
    name: str = "mx_test",
    interval_secs: int = 1,
    value_columns: Sequence[str] = ("count",),
    db_pattern: str | None = None,
    statement: str = "SELECT COUNT(*) AS count FROM t",
) -> QueryDefinition:
    return QueryDefinition(
        name=name,
        interval_secs=interval_secs,
        statement=statement,
        value_columns=tuple(value_columns),
        db_pattern=db_pattern,
    )


def make_config(
    databases: Sequence[str] = ("testschema",),
    queries: Sequence[QueryDefinition] | None = None,
) -> ExporterConfig:
    return ExporterConfig(
        db=DbConfig(host="localhost", port=3306, user="root", databases=list(databases)),
        queries=list(queries) if queries is not None else [make_query()],
    )


@pytest.fixture
def registry() -> MetricRegistry:
    return MetricRegistry(include_process_metrics=False)


@pytest.fixture
def resolved_query() -> ResolvedQuery:
    return ResolvedQuery(**make_query().model_dump(), target="testschema")
