from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Protocol

from .models import Row


@dataclass(frozen=True)
class RunResult:
    """
    Engine response to a mutating statement.

    ``error`` carries the underlying engine exception when ``success`` is False
    and the engine raised one.
    """
    success: bool
    changes: Optional[int] = None
    error: Optional[BaseException] = None


class PreparedStatement(Protocol):
    """
    Protocol for a prepared SQL statement with positional parameters.
    """

    def bind(self, *params: Any) -> "PreparedStatement":
        """Return a statement with the given positional parameters bound."""
        ...

    async def run(self) -> RunResult:
        """Execute a mutating statement."""
        ...

    async def first(self) -> Optional[Row]:
        """Execute a query and return the first row, or None."""
        ...

    async def all(self) -> list[Row]:
        """Execute a query and return every row."""
        ...


class DatabaseHandle(Protocol):
    """
    Protocol for the database handle a TableAccessor talks to.

    The accessor only prepares statements; connection lifecycle,
    transactions and timeouts belong to the handle.
    """

    def prepare(self, sql: str) -> PreparedStatement:
        """Prepare a statement from SQL text."""
        ...
