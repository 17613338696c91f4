from __future__ import annotations

from typing import Any, Optional, Sequence

from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from ..config import EngineConfig
from ..handle import RunResult
from ..models import Row


class SqlAlchemyStatement:
    """
    Prepared statement bound to an AsyncEngine.

    SQL is sent with exec_driver_sql so positional ``?N`` placeholders reach
    the DBAPI driver untouched. Each execution checks out its own connection.
    """

    def __init__(self, engine: AsyncEngine, sql: str, params: Sequence[Any] = ()) -> None:
        self.engine = engine
        self.sql = sql
        self.params = tuple(params)

    def bind(self, *params: Any) -> "SqlAlchemyStatement":
        return SqlAlchemyStatement(self.engine, self.sql, params)

    async def run(self) -> RunResult:
        """
        Execute a mutating statement in its own transaction.

        Driver errors raised by the statement are reported as
        ``RunResult(success=False)`` with the exception attached; the
        transaction is rolled back. Failures to obtain a connection propagate
        unmodified.
        """
        async with self.engine.connect() as conn:
            try:
                async with conn.begin():
                    result = await conn.exec_driver_sql(self.sql, self.params)
                    rowcount = result.rowcount
            except DBAPIError as exc:
                return RunResult(success=False, error=exc)

        # Drivers report -1 when the count is unknown
        changes = int(rowcount) if rowcount is not None and rowcount >= 0 else None
        return RunResult(success=True, changes=changes)

    async def first(self) -> Optional[Row]:
        async with self.engine.connect() as conn:
            result = await conn.exec_driver_sql(self.sql, self.params)
            row = result.mappings().first()
            if row is None:
                return None
            return dict(row)

    async def all(self) -> list[Row]:
        async with self.engine.connect() as conn:
            result = await conn.exec_driver_sql(self.sql, self.params)
            return [dict(row) for row in result.mappings()]


class SqlAlchemyHandle:
    """
    Database handle backed by a SQLAlchemy AsyncEngine.

    Usage:
        handle = SqlAlchemyHandle(create_async_engine("sqlite+aiosqlite:///app.db"))
        users = TableAccessor(handle, "users", "id")
        ...
        await handle.close()
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self.engine = engine

    def prepare(self, sql: str) -> SqlAlchemyStatement:
        return SqlAlchemyStatement(self.engine, sql)

    async def close(self) -> None:
        await self.engine.dispose()


def create_handle(config: Optional[EngineConfig] = None) -> SqlAlchemyHandle:
    """
    Create an engine from config (or TABLEACCESS_DB_URL) and wrap it in a handle.
    """
    config = config or EngineConfig.from_env()
    engine = create_async_engine(config.url, echo=config.echo)
    return SqlAlchemyHandle(engine)
