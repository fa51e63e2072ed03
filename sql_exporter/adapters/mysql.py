"""
MySQL implementation of the DbClient protocol on top of aiomysql.

One single-connection pool is kept per database name. Pools are created on
the first query against that database and reused for every later tick, so
the number of open connections never exceeds the number of targeted
databases. Creation is serialized per database, so a server that is slow to
accept one database connection does not hold up the first tick of another.
"""

import asyncio
from collections.abc import Sequence

import aiomysql
import structlog

from sql_exporter.config import DbConfig
from sql_exporter.errors import QueryExecutionError, ResultShapeError, ValueParseError
from sql_exporter.services.db_client import QueryResult, Result, rows_to_column_values

logger = structlog.get_logger(__name__)


class MySqlClient:
    """Runs statements against MySQL databases sharing one server and credentials."""

    def __init__(self, config: DbConfig, connect_timeout: float = 10.0) -> None:
        self.config = config
        self.connect_timeout = connect_timeout
        self.logger = logger.bind(component="mysql_client", host=config.host, port=config.port)
        self._pools: dict[str, aiomysql.Pool] = {}
        self._pool_locks: dict[str, asyncio.Lock] = {}
        self.logger.info("using_mysql_client")

    @property
    def pooled_databases(self) -> list[str]:
        return list(self._pools)

    async def _create_pool(self, database: str) -> aiomysql.Pool:
        return await aiomysql.create_pool(
            minsize=1,
            maxsize=1,
            host=self.config.host,
            port=self.config.port,
            user=self.config.user,
            password=self.config.password or "",
            db=database,
            autocommit=True,
            connect_timeout=self.connect_timeout,
        )

    async def _get_pool(self, database: str) -> aiomysql.Pool:
        pool = self._pools.get(database)
        if pool is not None:
            return pool
        async with self._pool_locks.setdefault(database, asyncio.Lock()):
            pool = self._pools.get(database)
            if pool is None:
                pool = await self._create_pool(database)
                self._pools[database] = pool
                self.logger.info("connection_pool_created", database=database)
        return pool

    async def execute(
        self, statement: str, value_columns: Sequence[str], database: str
    ) -> QueryResult:
        try:
            pool = await self._get_pool(database)
            async with pool.acquire() as connection:
                async with connection.cursor(aiomysql.DictCursor) as cursor:
                    await cursor.execute(statement)
                    rows = await cursor.fetchall()
        except (aiomysql.Error, OSError, TimeoutError) as e:
            return Result.err(
                QueryExecutionError(f"Failed while executing [{statement}] on [{database}]: {e}")
            )

        try:
            return Result.ok(rows_to_column_values(statement, list(rows), value_columns))
        except (ResultShapeError, ValueParseError) as e:
            return Result.err(e)

    async def close(self) -> None:
        self.logger.info("closing_connection_pools", pools=len(self._pools))
        pools = list(self._pools.values())
        self._pools.clear()
        for pool in pools:
            pool.close()
        for pool in pools:
            await pool.wait_closed()
