"""
Database client contract used by the scheduler.

Key pieces:
- Result: explicit success/failure value for expected per-tick failures
- DbClient: Protocol implemented by the MySQL and simulated adapters
- rows_to_column_values: driver-independent translation of a result set
"""

from collections.abc import Mapping, Sequence
from decimal import Decimal
from typing import Any, Generic, Protocol, TypeVar

import structlog

from sql_exporter.domain.models import ColumnValue
from sql_exporter.errors import ResultShapeError, ValueParseError

logger = structlog.get_logger(__name__)

# Generic Result type for explicit error handling
ValueT = TypeVar("ValueT")
ErrorT = TypeVar("ErrorT", bound=BaseException)


class Result(Generic[ValueT, ErrorT]):
    """
    Explicit error handling without exceptions for expected failures.

    A failed query is an ordinary outcome of a tick, so clients return it
    instead of raising and the scheduler branches on is_err().
    """

    def __init__(self, value: ValueT | None = None, error: ErrorT | None = None) -> None:
        if value is not None and error is not None:
            raise ValueError("Result cannot have both value and error")
        if value is None and error is None:
            raise ValueError("Result must have either value or error")
        self._value: ValueT | None = value
        self._error: ErrorT | None = error

    @classmethod
    def ok(cls, value: ValueT) -> "Result[ValueT, ErrorT]":
        return cls(value=value)

    @classmethod
    def err(cls, error: ErrorT) -> "Result[ValueT, ErrorT]":
        return cls(error=error)

    def is_ok(self) -> bool:
        return self._error is None

    def is_err(self) -> bool:
        return self._error is not None

    def unwrap(self) -> ValueT:
        if self._error:
            raise self._error
        return self._value  # type: ignore

    def unwrap_err(self) -> ErrorT:
        if self._error is None:
            raise ValueError("Called unwrap_err() on an Ok value")
        return self._error


QueryResult = Result[list[ColumnValue], Exception]


class DbClient(Protocol):
    """
    Protocol for running a statement against one named database.

    Implementations own their connections: one pool per database name,
    created on first use and reused for every later tick.
    """

    async def execute(
        self, statement: str, value_columns: Sequence[str], database: str
    ) -> QueryResult:
        """
        Run the statement and read the requested columns from its single row.

        Returns:
            QueryResult: the column values (empty when no row came back) or the
            QueryExecutionError, ResultShapeError or ValueParseError that stopped it.
        """
        ...

    async def close(self) -> None:
        """Release every pooled connection."""
        ...


def parse_value(column: str, raw: Any) -> float:
    """Read a result cell as a float, rejecting anything that is not numeric."""
    if isinstance(raw, bool) or raw is None:
        raise ValueParseError(f"Unexpected value [{raw!r}] for column [{column}]")
    if isinstance(raw, int | float | Decimal):
        return float(raw)
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    if isinstance(raw, str):
        try:
            return float(raw.strip())
        except ValueError:
            pass
    raise ValueParseError(f"Unexpected value [{raw!r}] for column [{column}]")


def rows_to_column_values(
    statement: str, rows: Sequence[Mapping[str, Any]], value_columns: Sequence[str]
) -> list[ColumnValue]:
    """
    Translate a result set into column values.

    Zero rows yields an empty list. More than one row raises ResultShapeError.
    A single row is parsed all-or-none: if any requested column is missing or
    not numeric, ValueParseError is raised and nothing is returned.
    """
    if len(rows) > 1:
        raise ResultShapeError(
            f"Only one row should be returned from [{statement}], but got {len(rows)}"
        )
    if not rows:
        logger.warning("query_returned_no_rows", statement=statement)
        return []

    row = rows[0]
    values = []
    for column in value_columns:
        if column not in row:
            raise ValueParseError(
                f"Column [{column}] is missing from the result of [{statement}]"
            )
        values.append(ColumnValue(column=column, value=parse_value(column, row[column])))
    return values
