"""Expansion of query definitions into one resolved query per matching database."""

import re
from collections.abc import Iterable, Sequence

from sql_exporter.domain.models import QueryDefinition, ResolvedQuery


def matches_database(db_pattern: str | None, database: str) -> bool:
    """True if the database is targeted; patterns must match the whole name, ignoring case."""
    if not db_pattern:
        return True
    return re.fullmatch(db_pattern, database, re.IGNORECASE) is not None


def resolve_queries(databases: Sequence[str], query: QueryDefinition) -> list[ResolvedQuery]:
    """Bind a query to every matching database, in database list order."""
    fields = query.model_dump()
    return [
        ResolvedQuery(**fields, target=database)
        for database in databases
        if matches_database(query.db_pattern, database)
    ]


def resolve_all(
    databases: Sequence[str], queries: Iterable[QueryDefinition]
) -> list[ResolvedQuery]:
    """Resolve every query in config order."""
    return [resolved for query in queries for resolved in resolve_queries(databases, query)]
