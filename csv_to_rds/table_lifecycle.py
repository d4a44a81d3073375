"""Prepare the destination table before any row is written."""
import logging

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from csv_to_rds.errors import LifecycleError, LifecycleFailure, LoadTimeoutError, UnsupportedDeleteModeError
from csv_to_rds.models import DeleteMode, LifecycleOutcome
from csv_to_rds.utils import db_utils


class TableLifecycleManager:
    """
    Applies the drop / create / truncate / append policy to one table.

    Tables created here get one nullable TEXT column per CSV header column,
    in header order.
    """

    def __init__(self, engine: Engine, table_name: str):
        self.engine = engine
        self.table_name = table_name

    def _run(self, step, kind: LifecycleFailure, indeterminate: bool):
        try:
            step()
        except SQLAlchemyError as e:
            logging.error(f"{kind.value} on table '{self.table_name}': {e}")
            if db_utils.is_timeout(e):
                raise LoadTimeoutError(kind.value, str(e), indeterminate=indeterminate) from e
            raise LifecycleError(self.table_name, kind, str(e), indeterminate=indeterminate) from e

    def exists(self) -> bool:
        try:
            return db_utils.table_exists(self.engine, self.table_name)
        except SQLAlchemyError as e:
            if db_utils.is_timeout(e):
                raise LoadTimeoutError("table inspection", str(e)) from e
            raise LifecycleError(self.table_name, LifecycleFailure.INSPECT_FAILED, str(e)) from e

    def recreate(self, columns: list):
        self._run(
            lambda: db_utils.drop_table(self.engine, self.table_name),
            LifecycleFailure.DROP_FAILED,
            indeterminate=True,
        )
        self.create(columns)

    def create(self, columns: list):
        self._run(
            lambda: db_utils.create_text_table(self.engine, self.table_name, columns),
            LifecycleFailure.CREATE_FAILED,
            indeterminate=True,
        )

    def delete_rows(self, delete_mode: str):
        mode = (delete_mode or "").strip().upper()
        if mode != DeleteMode.TRUNCATE.value:
            raise UnsupportedDeleteModeError(self.table_name, delete_mode)
        self._run(
            lambda: db_utils.truncate_table(self.engine, self.table_name),
            LifecycleFailure.TRUNCATE_FAILED,
            indeterminate=True,
        )

    def apply(self, columns: list, drop_table: bool = False, delete_rows: bool = False, delete_mode: str = DeleteMode.TRUNCATE.value) -> LifecycleOutcome:
        """Bring the table into the state implied by the flags."""
        if drop_table:
            self.recreate(columns)
            logging.info(f"Table '{self.table_name}' dropped and recreated.")
            return LifecycleOutcome(created=True, recreated=True)

        if not self.exists():
            self.create(columns)
            logging.info(f"Table '{self.table_name}' created.")
            return LifecycleOutcome(created=True)

        if delete_rows:
            self.delete_rows(delete_mode)
            logging.info(f"Rows deleted from table '{self.table_name}' ({delete_mode}).")
            return LifecycleOutcome(rows_deleted=True)

        logging.info(f"Table '{self.table_name}' exists, appending rows.")
        return LifecycleOutcome()
