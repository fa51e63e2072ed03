"""
Domain models for the SQL gauge exporter.

These models describe queries, their per-database resolution and the values
read back from a result row. They use Pydantic for validation and are frozen
so a resolved query can be shared freely between scheduler tasks.
"""

import re

from pydantic import BaseModel, ConfigDict, Field, field_validator


class QueryDefinition(BaseModel):
    """A configured SQL query, exported as one gauge per value column."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(min_length=1, description="Query name, must be unique")
    interval_secs: int = Field(
        alias="intervalSecs", gt=0, strict=True, description="Seconds between executions"
    )
    statement: str = Field(min_length=1, description="SQL statement returning at most one row")
    value_columns: tuple[str, ...] = Field(
        alias="valueColumns", description="Result columns exported as gauges"
    )
    db_pattern: str | None = Field(
        default=None,
        alias="dbPattern",
        description="Regex of targeted databases, anchored and case-insensitive",
    )

    @field_validator("db_pattern")
    @classmethod
    def validate_db_pattern(cls, v: str | None) -> str | None:
        if v is None:
            return v
        try:
            re.compile(v)
        except re.error as e:
            raise ValueError(f"dbPattern is not a valid regular expression: {e}") from e
        return v


class ResolvedQuery(QueryDefinition):
    """A query bound to one target database."""

    target: str = Field(min_length=1, description="Database the query runs against")

    def metric_key(self, column: str) -> str:
        return f"{self.name}_{self.target}_{column}"


class ColumnValue(BaseModel):
    """One numeric value read from a result column."""

    model_config = ConfigDict(frozen=True)

    column: str
    value: float
