from dataclasses import dataclass
from typing import Any, Dict, Optional

# column -> value
Row = Dict[str, Any]


@dataclass(frozen=True)
class DatabaseResult:
    """
    Outcome of a single mutating statement.
    """
    success: bool
    # row-change count as reported by the engine, if it reports one
    changes: Optional[int] = None
