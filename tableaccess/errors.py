from __future__ import annotations

from typing import Any, Sequence


class TableAccessError(Exception):
    """Base exception for tableaccess errors."""


class QueryExecutionError(TableAccessError):
    """A mutating statement was reported as not successful by the database handle."""

    def __init__(self, sql: str, params: Sequence[Any] = ()) -> None:
        super().__init__(f"Query failed: {sql}")
        self.sql = sql
        self.params = list(params)
