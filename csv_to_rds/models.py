"""Data model shared by the loader components."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator

import pandas as pd

from csv_to_rds.config import Config
from csv_to_rds.errors import ConfigurationError


class DeleteMode(str, Enum):
    TRUNCATE = "TRUNCATE"


class JobState(str, Enum):
    INIT = "Init"
    CREDENTIALS_RESOLVED = "CredentialsResolved"
    TABLE_READY = "TableReady"
    LOADING = "Loading"
    COMPLETED = "Completed"
    FAILED = "Failed"


@dataclass(frozen=True)
class ConnectionProfile:
    """Database credentials resolved from the secret store."""

    host: str
    port: int
    user: str
    password: str = field(repr=False)
    database: str


@dataclass(frozen=True)
class JobConfig:
    """Parameters of one load run, fixed at job start."""

    source_uri: str
    table_name: str
    drop_table: bool = False
    delete_rows: bool = False
    delete_mode: str = Config.DEFAULT_DELETE_MODE
    chunk_size: int = Config.DEFAULT_CHUNK_SIZE

    def __post_init__(self):
        if not self.source_uri or not self.source_uri.strip():
            raise ConfigurationError("source_uri is required")
        if not self.table_name or not self.table_name.strip():
            raise ConfigurationError("table_name is required")
        if isinstance(self.chunk_size, bool) or not isinstance(self.chunk_size, int):
            raise ConfigurationError(f"chunk_size must be an integer, got {self.chunk_size!r}")
        if self.chunk_size < 1:
            raise ConfigurationError(f"chunk_size must be >= 1, got {self.chunk_size}")


@dataclass
class RowBatch:
    """
    One chunk of source rows.

    ``first_row`` is the 1-based file row of the first data row in the batch
    (the header is row 1).
    """

    index: int
    first_row: int
    frame: pd.DataFrame

    def __len__(self) -> int:
        return len(self.frame)

    @property
    def columns(self) -> list:
        return list(self.frame.columns)

    def rows(self) -> Iterator[Dict[str, str]]:
        for record in self.frame.to_dict(orient="records"):
            yield record


@dataclass(frozen=True)
class LifecycleOutcome:
    created: bool = False
    recreated: bool = False
    rows_deleted: bool = False


@dataclass(frozen=True)
class LoadResult:
    rows_processed: int
    chunks_processed: int
    table_recreated: bool
    rows_deleted: bool
