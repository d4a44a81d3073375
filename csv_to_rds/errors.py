"""Exceptions raised by the CSV loader job."""
from enum import Enum


class LoaderError(Exception):
    """Base class for every loader failure."""


class ConfigurationError(LoaderError):
    """Invalid job parameters."""


class SecretAccessError(LoaderError):
    """The secret could not be fetched (denied, missing, unreachable)."""


class SecretFormatError(LoaderError):
    """The secret payload is missing keys or holds mistyped values."""


class SourceAccessError(LoaderError):
    """The source file could not be opened or read."""


class DatabaseConnectionError(LoaderError):
    """The database refused or dropped the connection."""


class LoadTimeoutError(LoaderError, TimeoutError):
    """A network call exceeded its timeout."""

    def __init__(self, operation: str, detail: str = "", indeterminate: bool = False):
        self.operation = operation
        self.indeterminate = indeterminate
        message = f"Timed out during {operation}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class LifecycleFailure(str, Enum):
    DROP_FAILED = "drop-failed"
    CREATE_FAILED = "create-failed"
    TRUNCATE_FAILED = "truncate-failed"
    UNSUPPORTED_DELETE_MODE = "unsupported-delete-mode"
    INSPECT_FAILED = "inspect-failed"


class LifecycleError(LoaderError):
    """
    The destination table could not be prepared.

    ``indeterminate`` is True when the failure happened partway through a
    drop, create or truncate, so the table shape is unknown.
    """

    def __init__(self, table_name: str, kind: LifecycleFailure, detail: str = "", indeterminate: bool = False):
        self.table_name = table_name
        self.kind = kind
        self.indeterminate = indeterminate
        message = f"{kind.value} on table '{table_name}'"
        if detail:
            message = f"{message}: {detail}"
        if indeterminate:
            message = f"{message} (table state is indeterminate)"
        super().__init__(message)


class UnsupportedDeleteModeError(LifecycleError):
    def __init__(self, table_name: str, delete_mode: str):
        self.delete_mode = delete_mode
        super().__init__(
            table_name,
            LifecycleFailure.UNSUPPORTED_DELETE_MODE,
            f"delete mode '{delete_mode}' is not supported",
        )


class RowParseError(LoaderError):
    """A source row could not be parsed; the chunk holding it is never written."""

    def __init__(self, row_number, raw: str, reason: str):
        self.row_number = row_number
        self.raw = raw
        self.reason = reason
        where = f"row {row_number}" if row_number is not None else "unknown row"
        super().__init__(f"Malformed CSV {where}: {reason} (raw: {raw!r})")


class SchemaMismatchError(LoaderError):
    """Batch columns or values do not fit the destination table."""


class WriteError(LoaderError):
    """A batch could not be committed."""


class JobFailedError(LoaderError):
    """
    Final report of a failed run.

    Carries the counts committed before the failure so the caller can decide
    whether a re-run should also request a drop or truncate. Committed chunks
    are not rolled back: re-running an append-only load duplicates them.
    """

    def __init__(
        self,
        state,
        cause: Exception,
        rows_processed: int = 0,
        chunks_processed: int = 0,
        table_recreated: bool = False,
        rows_deleted: bool = False,
        table_indeterminate: bool = False,
    ):
        self.state = state
        self.cause = cause
        self.rows_processed = rows_processed
        self.chunks_processed = chunks_processed
        self.table_recreated = table_recreated
        self.rows_deleted = rows_deleted
        self.table_indeterminate = table_indeterminate
        super().__init__(
            f"Load failed in state {state.value}: {cause} "
            f"(rows_processed={rows_processed}, chunks_processed={chunks_processed}, "
            f"table_indeterminate={table_indeterminate})"
        )
