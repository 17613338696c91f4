from __future__ import annotations

import re
from typing import Any, List, Mapping, NamedTuple, Sequence, Tuple, Union

# A single column name, a sequence of names, or "*" / an empty sequence for all columns.
Columns = Union[str, Sequence[str]]

_IDENTIFIER_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")
_MAX_IDENTIFIER_LENGTH = 64

_OPERATION_PATTERNS = (
    ("insert", re.compile(r"^\s*INSERT\s+INTO\s+([^\s(]+)", re.IGNORECASE)),
    ("update", re.compile(r"^\s*UPDATE\s+([^\s]+)", re.IGNORECASE)),
    ("delete", re.compile(r"^\s*DELETE\s+FROM\s+([^\s]+)", re.IGNORECASE)),
    ("select", re.compile(r"^\s*SELECT\s+.+?\s+FROM\s+([^\s]+)", re.IGNORECASE | re.DOTALL)),
)


class Statement(NamedTuple):
    sql: str
    params: List[Any]


def validate_identifier(name: str, identifier_type: str = "identifier") -> str:
    """
    Validate that an identifier (table/column name) is safe for SQL interpolation.

    Identifiers are restricted to letters, digits and underscores, starting with
    a letter or underscore, at most 64 characters long.

    ⚠️ SECURITY CONTRACT ⚠️
    Format validation does NOT make untrusted input safe. Identifiers MUST be
    trusted (hardcoded or checked against a known column set), never raw
    external input.

    Args:
        name: The identifier to validate
        identifier_type: Description of the identifier (for error messages)

    Returns:
        The validated identifier (unchanged if valid)

    Raises:
        TypeError: If identifier is not a string
        ValueError: If identifier contains unsafe characters or is invalid

    Example:
        >>> validate_identifier("score", "column")
        'score'
        >>> validate_identifier("score = 0; --", "column")
        ValueError: Invalid column 'score = 0; --': ...
    """
    if not isinstance(name, str):
        raise TypeError(f"{identifier_type} must be a string, got {type(name).__name__}")

    if not name:
        raise ValueError(f"{identifier_type} cannot be empty")

    if not _IDENTIFIER_RE.match(name):
        raise ValueError(
            f"Invalid {identifier_type} {name!r}: "
            "must start with letter/underscore and contain only alphanumeric characters and underscores"
        )

    if len(name) > _MAX_IDENTIFIER_LENGTH:
        raise ValueError(
            f"{identifier_type} {name!r} exceeds the {_MAX_IDENTIFIER_LENGTH}-character limit"
        )

    return name


def select_list(columns: Columns) -> str:
    """
    Render a column selection as the text between SELECT and FROM.

    A string is used as-is, a sequence is comma-joined, and an empty
    sequence selects every column.
    """
    if isinstance(columns, str):
        return columns or "*"
    names = list(columns)
    if not names:
        return "*"
    return ", ".join(names)


def _placeholder(position: int) -> str:
    return f"?{position}"


def build_insert(table: str, record: Mapping[str, Any]) -> Statement:
    keys = list(record.keys())
    placeholders = ", ".join(_placeholder(i + 1) for i in range(len(keys)))
    sql = f"INSERT INTO {table} ({', '.join(keys)}) VALUES ({placeholders})"
    return Statement(sql, [record[k] for k in keys])


def build_select_one(
    table: str, columns: Columns, condition_key: str, condition_value: Any
) -> Statement:
    sql = (
        f"SELECT {select_list(columns)} FROM {table} "
        f"WHERE {condition_key} = {_placeholder(1)} LIMIT 1"
    )
    return Statement(sql, [condition_value])


def build_select_all(table: str, columns: Columns) -> Statement:
    return Statement(f"SELECT {select_list(columns)} FROM {table}", [])


def build_select_many(table: str, columns: Columns, where: Mapping[str, Any]) -> Statement:
    """
    SELECT with an AND-conjunction of equality clauses.

    Clause i binds to parameter i, in the iteration order of ``where``.
    An empty ``where`` emits no WHERE clause at all.
    """
    keys = list(where.keys())
    clauses = " AND ".join(f"{k} = {_placeholder(i + 1)}" for i, k in enumerate(keys))
    sql = f"SELECT {select_list(columns)} FROM {table}"
    if clauses:
        sql += f" WHERE {clauses}"
    return Statement(sql, [where[k] for k in keys])


def build_update(
    table: str, record: Mapping[str, Any], condition_key: str, condition_value: Any
) -> Statement:
    """
    UPDATE with the condition bound first.

    The WHERE placeholder is ?1, so SET placeholders start at ?2 and the
    params are ``[condition_value, *values]``.
    """
    keys = list(record.keys())
    if not keys:
        raise ValueError("update requires at least one column")
    setters = ", ".join(f"{k} = {_placeholder(i + 2)}" for i, k in enumerate(keys))
    sql = f"UPDATE {table} SET {setters} WHERE {condition_key} = {_placeholder(1)}"
    return Statement(sql, [condition_value, *(record[k] for k in keys)])


def build_delete(table: str, condition_key: str, condition_value: Any) -> Statement:
    sql = f"DELETE FROM {table} WHERE {condition_key} = {_placeholder(1)}"
    return Statement(sql, [condition_value])


def build_increment(
    table: str, column: str, step: Any, condition_key: str, condition_value: Any
) -> Statement:
    # step binds first here, unlike build_update
    sql = (
        f"UPDATE {table} SET {column} = {column} + {_placeholder(1)} "
        f"WHERE {condition_key} = {_placeholder(2)}"
    )
    return Statement(sql, [step, condition_value])


def build_exists(table: str, condition_key: str, condition_value: Any) -> Statement:
    sql = f"SELECT 1 FROM {table} WHERE {condition_key} = {_placeholder(1)} LIMIT 1"
    return Statement(sql, [condition_value])


def parse_sql_operation(sql: str) -> Tuple[str, str]:
    """
    Extract ``(table, op_type)`` from a statement for metric labels.

    Unrecognised statements map to ``("unknown", "unknown")``.
    """
    for op_type, pattern in _OPERATION_PATTERNS:
        match = pattern.match(sql)
        if match:
            return match.group(1).strip("`\""), op_type
    return "unknown", "unknown"
