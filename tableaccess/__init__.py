from .accessor import TableAccessor
from .config import EngineConfig, TableConfig
from .errors import QueryExecutionError, TableAccessError
from .handle import DatabaseHandle, PreparedStatement, RunResult
from .models import DatabaseResult, Row

__all__ = [
    "TableAccessor",
    "TableConfig",
    "EngineConfig",
    "DatabaseHandle",
    "PreparedStatement",
    "RunResult",
    "DatabaseResult",
    "Row",
    "QueryExecutionError",
    "TableAccessError",
]
