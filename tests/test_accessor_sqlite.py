from __future__ import annotations

import asyncio

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from tableaccess import DatabaseResult, QueryExecutionError, TableAccessor


@pytest.fixture
def users(handle, users_table: str) -> TableAccessor:
    return TableAccessor(handle, users_table, "id")


@pytest.mark.asyncio
async def test_users_lifecycle(users) -> None:
    assert await users.insert({"id": 1, "name": "Alice", "score": 10}) == DatabaseResult(
        success=True, changes=1
    )
    assert await users.find_one(["id", "name"], "id", 1) == {"id": 1, "name": "Alice"}

    assert await users.update({"name": "Alicia"}, "id", 1) == DatabaseResult(
        success=True, changes=1
    )
    assert await users.find_by_id("name", 1) == {"name": "Alicia"}

    await users.increment("score", 5, "id", 1)
    assert await users.find_one("score", "id", 1) == {"score": 15}

    assert await users.delete_by_id(1) == DatabaseResult(success=True, changes=1)
    assert await users.exists_by_id(1) is False


@pytest.mark.asyncio
async def test_insert_applies_defaults_and_record_overrides(handle, users_table: str) -> None:
    accessor = TableAccessor(
        handle, users_table, "id", default_properties={"status": "pending", "score": 1}
    )

    await accessor.insert({"id": 1, "name": "a"})
    await accessor.insert({"id": 2, "name": "b", "status": "active"})

    assert await accessor.find_by_id(["status", "score"], 1) == {"status": "pending", "score": 1}
    assert await accessor.find_by_id(["status", "score"], 2) == {"status": "active", "score": 1}


@pytest.mark.asyncio
async def test_reads_return_empty_results_when_no_rows_match(users) -> None:
    assert await users.find_one([], "id", 999) is None
    assert await users.find_all() == []
    assert await users.find_many({"status": "missing"}) == []
    assert await users.exists("id", 999) is False


@pytest.mark.asyncio
async def test_find_many_filters_with_and_conjunction(users) -> None:
    await users.insert({"id": 1, "name": "a", "status": "active", "score": 1})
    await users.insert({"id": 2, "name": "b", "status": "active", "score": 2})
    await users.insert({"id": 3, "name": "c", "status": "banned", "score": 2})

    active = await users.find_many({"status": "active"})
    assert sorted(r["id"] for r in active) == [1, 2]
    assert set(active[0]) == {"id", "name", "email", "status", "score"}

    both = await users.find_many(["name"], {"status": "active", "score": 2})
    assert both == [{"name": "b"}]

    unfiltered = await users.find_many(["id"], {})
    assert sorted(r["id"] for r in unfiltered) == sorted(r["id"] for r in await users.find_all("id"))


@pytest.mark.asyncio
async def test_update_only_touches_given_columns(users) -> None:
    await users.insert({"id": 1, "name": "a", "email": "a@example.com", "score": 4})

    await users.update_by_id({"email": "new@example.com"}, 1)

    row = await users.find_by_id([], 1)
    assert row == {
        "id": 1,
        "name": "a",
        "email": "new@example.com",
        "status": "active",
        "score": 4,
    }


@pytest.mark.asyncio
async def test_update_reports_zero_changes_when_no_row_matches(users) -> None:
    assert await users.update({"name": "x"}, "id", 42) == DatabaseResult(success=True, changes=0)
    assert await users.update({}, "id", 42) == DatabaseResult(success=True, changes=0)


@pytest.mark.asyncio
async def test_increment_accepts_negative_step(users) -> None:
    await users.insert({"id": 1, "score": 10})

    await users.increment_by_id("score", -4, 1)

    assert await users.find_by_id("score", 1) == {"score": 6}


@pytest.mark.asyncio
async def test_delete_by_condition_counts_every_matching_row(users) -> None:
    await users.insert({"id": 1, "status": "banned"})
    await users.insert({"id": 2, "status": "banned"})
    await users.insert({"id": 3})

    result = await users.delete("status", "banned")

    assert result == DatabaseResult(success=True, changes=2)
    assert [r["id"] for r in await users.find_all("id")] == [3]


@pytest.mark.asyncio
async def test_constraint_violation_raises_query_execution_error(users) -> None:
    """
    Engine-level constraint violations on writes surface as QueryExecutionError
    and the failed statement leaves no row behind.
    """
    await users.insert({"id": 1, "email": "a@example.com"})

    with pytest.raises(QueryExecutionError) as excinfo:
        await users.insert({"id": 2, "email": "a@example.com"})

    assert excinfo.value.sql == "INSERT INTO users (id, email) VALUES (?1, ?2)"
    assert isinstance(excinfo.value.__cause__, IntegrityError)
    assert await users.exists_by_id(2) is False


@pytest.mark.asyncio
async def test_malformed_read_propagates_engine_error(users) -> None:
    """
    Reads do not wrap engine errors; the SQLAlchemy exception propagates as-is.
    """
    with pytest.raises(OperationalError):
        await users.find_one("no_such_column", "id", 1)


@pytest.mark.asyncio
async def test_concurrent_operations_share_one_accessor(users) -> None:
    """
    The accessor keeps no per-call state, so many operations can be in flight
    on one instance at once; ordering and isolation are left to the engine.
    """
    await asyncio.gather(*(users.insert({"id": i, "name": f"u{i}"}) for i in range(1, 21)))
    await asyncio.gather(*(users.increment_by_id("score", 1, 1) for _ in range(20)))

    assert len(await users.find_all("id")) == 20
    assert await users.find_by_id("score", 1) == {"score": 20}
