from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine

from tableaccess.engines import SqlAlchemyHandle
from tableaccess.handle import RunResult

USERS_SCHEMA = """
    CREATE TABLE users (
        id INTEGER PRIMARY KEY,
        name TEXT,
        email TEXT UNIQUE,
        status TEXT NOT NULL DEFAULT 'active',
        score INTEGER NOT NULL DEFAULT 0
    )
"""


class RecordingStatement:
    def __init__(self, handle: "RecordingHandle", sql: str, params: tuple = ()) -> None:
        self.handle = handle
        self.sql = sql
        self.params = params

    def bind(self, *params: Any) -> "RecordingStatement":
        return RecordingStatement(self.handle, self.sql, params)

    async def run(self) -> RunResult:
        self.handle.calls.append(("run", self.sql, list(self.params)))
        return self.handle.run_result

    async def first(self) -> Optional[dict]:
        self.handle.calls.append(("first", self.sql, list(self.params)))
        return self.handle.first_result

    async def all(self) -> list[dict]:
        self.handle.calls.append(("all", self.sql, list(self.params)))
        return list(self.handle.all_result)


class RecordingHandle:
    """
    In-process handle that records (mode, sql, params) for every execution
    and returns canned results.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, list]] = []
        self.run_result = RunResult(success=True, changes=1)
        self.first_result: Optional[dict] = None
        self.all_result: list[dict] = []

    def prepare(self, sql: str) -> RecordingStatement:
        return RecordingStatement(self, sql)


@pytest.fixture
def recording_handle() -> RecordingHandle:
    return RecordingHandle()


@pytest.fixture
def sqlite_url(tmp_path: Path) -> str:
    """
    File-backed SQLite URL, one database per test.

    A file is used instead of :memory: so every pooled connection sees the same data.
    """
    return f"sqlite+aiosqlite:///{tmp_path / 'tableaccess.db'}"


@pytest_asyncio.fixture
async def handle(sqlite_url: str) -> AsyncIterator[SqlAlchemyHandle]:
    h = SqlAlchemyHandle(create_async_engine(sqlite_url))
    yield h
    await h.close()


@pytest_asyncio.fixture
async def users_table(handle: SqlAlchemyHandle) -> str:
    """
    A `users` table with:
    - PK `id`
    - UNIQUE `email` (constraint-violation tests)
    - `status` / `score` with server defaults (filter and increment tests)
    """
    async with handle.engine.begin() as conn:
        await conn.exec_driver_sql(USERS_SCHEMA)
    return "users"
