import os
from dataclasses import dataclass, field
from typing import Any, Collection, Mapping, Optional

DB_URL_ENV = "TABLEACCESS_DB_URL"
DEFAULT_DB_URL = "sqlite+aiosqlite:///:memory:"


@dataclass
class TableConfig:
    table_name: str
    primary_key: str
    default_properties: Mapping[str, Any] = field(default_factory=dict)
    columns: Optional[Collection[str]] = None

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if not isinstance(self.table_name, str) or not self.table_name:
            raise ValueError("table_name must be a non-empty string")
        if not isinstance(self.primary_key, str) or not self.primary_key:
            raise ValueError("primary_key must be a non-empty string")
        if self.columns is not None and self.primary_key not in self.columns:
            raise ValueError(
                f"primary_key {self.primary_key!r} is not one of the known columns"
            )


@dataclass
class EngineConfig:
    url: str = DEFAULT_DB_URL
    echo: bool = False

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """
        Build an EngineConfig from TABLEACCESS_DB_URL, falling back to an
        in-memory SQLite database.
        """
        return cls(url=os.environ.get(DB_URL_ENV, DEFAULT_DB_URL))
