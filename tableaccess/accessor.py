from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from types import MappingProxyType
from typing import Any, Collection, Iterator, List, Mapping, Optional, Sequence, Union

from . import sql as sqlbuild
from .config import TableConfig
from .errors import QueryExecutionError
from .handle import DatabaseHandle
from .metrics import observe_query
from .models import DatabaseResult, Row
from .sql import Columns

logger = logging.getLogger(__name__)


class TableAccessor:
    """
    Single-table CRUD helper over a prepare/bind/execute database handle.

    Every operation builds exactly one parameterized statement (or none, for
    an empty update) and awaits the handle. No transactions, retries or
    timeouts are added here; those are inherited from the handle.

    Only keys present in the record or filter passed by the caller are
    referenced in the generated SQL. Defaults are applied on insert only.

    ⚠️ SECURITY CONTRACT ⚠️
    Values are always bound as parameters. Table and column names are
    interpolated and MUST be trusted identifiers, never raw external input.

    Usage:
        users = TableAccessor(handle, "users", "id")
        await users.insert({"id": 1, "name": "Alice"})
        row = await users.find_by_id(["id", "name"], 1)
        await users.increment_by_id("score", 5, 1)
    """

    def __init__(
        self,
        db: DatabaseHandle,
        table_name: str,
        primary_key: str,
        default_properties: Optional[Mapping[str, Any]] = None,
        columns: Optional[Collection[str]] = None,
    ) -> None:
        """
        Args:
            db: Database handle; owned by the caller and must outlive the accessor
            table_name: Table every statement targets
            primary_key: Column used by the *_by_id operations
            default_properties: Values applied on insert for omitted keys
            columns: Optional known column set; when given, increment() only
                     accepts target columns from it and primary_key must be in it

        Raises:
            ValueError: If columns is given and does not contain primary_key
        """
        self.db = db
        self.table_name = table_name
        self.primary_key = primary_key
        self.default_properties: Mapping[str, Any] = MappingProxyType(
            dict(default_properties or {})
        )
        self.columns = frozenset(columns) if columns is not None else None
        if self.columns is not None and primary_key not in self.columns:
            raise ValueError(
                f"primary_key {primary_key!r} is not one of the known columns"
            )

    @classmethod
    def from_config(cls, db: DatabaseHandle, config: TableConfig) -> "TableAccessor":
        return cls(
            db,
            config.table_name,
            config.primary_key,
            default_properties=config.default_properties,
            columns=config.columns,
        )

    @contextmanager
    def _observe(self, sql: str) -> Iterator[None]:
        table, op_type = sqlbuild.parse_sql_operation(sql)
        start_time = time.monotonic()
        status = "success"
        try:
            yield
        except Exception:
            status = "error"
            raise
        finally:
            # Metric errors must not mask the statement's own outcome
            try:
                observe_query(table, op_type, status, time.monotonic() - start_time)
            except Exception:
                logger.debug("Failed to record metrics for %s", sql, exc_info=True)

    async def _exec(self, sql: str, params: Sequence[Any]) -> DatabaseResult:
        """
        Run a mutating statement.

        Raises:
            QueryExecutionError: If the handle reports the statement did not succeed
        """
        logger.debug("Executing on %s: %s", self.table_name, sql)
        with self._observe(sql):
            result = await self.db.prepare(sql).bind(*params).run()
            if not result.success:
                logger.warning(
                    "Statement failed on %s: %s (%s)", self.table_name, sql, result.error
                )
                raise QueryExecutionError(sql, params) from result.error
        return DatabaseResult(success=True, changes=result.changes)

    async def _first(self, sql: str, params: Sequence[Any]) -> Optional[Row]:
        logger.debug("Querying %s: %s", self.table_name, sql)
        with self._observe(sql):
            return await self.db.prepare(sql).bind(*params).first()

    async def _all(self, sql: str, params: Sequence[Any]) -> List[Row]:
        logger.debug("Querying %s: %s", self.table_name, sql)
        with self._observe(sql):
            return list(await self.db.prepare(sql).bind(*params).all())

    def _check_column(self, column: str) -> str:
        column = sqlbuild.validate_identifier(column, "column")
        if self.columns is not None and column not in self.columns:
            raise ValueError(f"Unknown column {column!r} for table {self.table_name}")
        return column

    async def insert(self, record: Mapping[str, Any]) -> DatabaseResult:
        """
        Insert one row. Defaults fill omitted keys; keys in ``record`` win.

        Column order is defaults first, then any new keys from ``record``.
        A key explicitly set to None is inserted as NULL.
        """
        combined = {**self.default_properties, **record}
        stmt = sqlbuild.build_insert(self.table_name, combined)
        return await self._exec(stmt.sql, stmt.params)

    async def find_one(
        self, columns: Columns, condition_key: str, condition_value: Any
    ) -> Optional[Row]:
        """
        Return the first row where ``condition_key`` equals ``condition_value``,
        or None if there is none.
        """
        stmt = sqlbuild.build_select_one(
            self.table_name, columns, condition_key, condition_value
        )
        return await self._first(stmt.sql, stmt.params)

    async def find_all(self, columns: Columns = "*") -> List[Row]:
        """Return every row in engine order."""
        stmt = sqlbuild.build_select_all(self.table_name, columns)
        return await self._all(stmt.sql, stmt.params)

    async def find_many(
        self,
        columns_or_where: Union[Columns, Mapping[str, Any], None] = None,
        where: Optional[Mapping[str, Any]] = None,
    ) -> List[Row]:
        """
        Return rows matching every equality in the filter.

        Two call shapes are supported:
            await accessor.find_many({"status": "active"})            # all columns
            await accessor.find_many(["id", "name"], {"status": "active"})

        An empty filter emits no WHERE clause.
        """
        if isinstance(columns_or_where, Mapping):
            if where is not None:
                raise TypeError("find_many() got a filter in both positions")
            columns: Columns = "*"
            where = columns_or_where
        else:
            columns = "*" if columns_or_where is None else columns_or_where

        stmt = sqlbuild.build_select_many(self.table_name, columns, where or {})
        return await self._all(stmt.sql, stmt.params)

    async def update(
        self, record: Mapping[str, Any], condition_key: str, condition_value: Any
    ) -> DatabaseResult:
        """
        Set the given columns on rows matching the condition.

        An empty ``record`` is a no-op and touches nothing.
        """
        if not record:
            return DatabaseResult(success=True, changes=0)
        stmt = sqlbuild.build_update(
            self.table_name, record, condition_key, condition_value
        )
        return await self._exec(stmt.sql, stmt.params)

    async def delete(self, condition_key: str, condition_value: Any) -> DatabaseResult:
        stmt = sqlbuild.build_delete(self.table_name, condition_key, condition_value)
        return await self._exec(stmt.sql, stmt.params)

    async def increment(
        self, column: str, step: Union[int, float], condition_key: str, condition_value: Any
    ) -> DatabaseResult:
        """
        Add ``step`` (may be negative) to a numeric column on matching rows.

        Raises:
            TypeError: If column is not a string
            ValueError: If column is not a valid identifier or not a known column
        """
        column = self._check_column(column)
        stmt = sqlbuild.build_increment(
            self.table_name, column, step, condition_key, condition_value
        )
        return await self._exec(stmt.sql, stmt.params)

    async def exists(self, condition_key: str, condition_value: Any) -> bool:
        stmt = sqlbuild.build_exists(self.table_name, condition_key, condition_value)
        return bool(await self._first(stmt.sql, stmt.params))

    async def find_by_id(self, columns: Columns, id_value: Any) -> Optional[Row]:
        return await self.find_one(columns, self.primary_key, id_value)

    async def update_by_id(self, record: Mapping[str, Any], id_value: Any) -> DatabaseResult:
        return await self.update(record, self.primary_key, id_value)

    async def delete_by_id(self, id_value: Any) -> DatabaseResult:
        return await self.delete(self.primary_key, id_value)

    async def increment_by_id(
        self, column: str, step: Union[int, float], id_value: Any
    ) -> DatabaseResult:
        return await self.increment(column, step, self.primary_key, id_value)

    async def exists_by_id(self, id_value: Any) -> bool:
        return await self.exists(self.primary_key, id_value)
