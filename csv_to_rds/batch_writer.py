"""Append row batches to the destination table, one transaction per batch."""
import logging

import pandas as pd
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DataError, NoSuchTableError, SQLAlchemyError

from csv_to_rds.errors import LoadTimeoutError, SchemaMismatchError, WriteError
from csv_to_rds.models import RowBatch
from csv_to_rds.utils import db_utils


class BatchWriter:
    """Writes each RowBatch atomically: every row commits or none does."""

    def __init__(self, engine: Engine, table_name: str):
        self.engine = engine
        self.table_name = table_name
        self._table_columns = None

    def table_columns(self) -> list:
        if self._table_columns is None:
            try:
                columns = db_utils.table_columns(self.engine, self.table_name)
            except NoSuchTableError as e:
                raise SchemaMismatchError(f"Table '{self.table_name}' does not exist") from e
            except SQLAlchemyError as e:
                if db_utils.is_timeout(e):
                    raise LoadTimeoutError("table inspection", str(e)) from e
                raise WriteError(f"Cannot inspect table '{self.table_name}': {e}") from e
            if not columns:
                raise SchemaMismatchError(f"Table '{self.table_name}' does not exist")
            self._table_columns = columns
        return self._table_columns

    def check_schema(self, batch: RowBatch):
        expected = self.table_columns()
        actual = batch.columns
        missing = [column for column in expected if column not in actual]
        extra = [column for column in actual if column not in expected]
        if missing or extra:
            raise SchemaMismatchError(
                f"Batch {batch.index} does not match table '{self.table_name}': "
                f"{len(actual)} source columns vs {len(expected)} table columns, "
                f"missing={missing}, unexpected={extra}"
            )

    def _write_error(self, batch: RowBatch, e: Exception) -> Exception:
        if isinstance(e, DataError):
            return SchemaMismatchError(f"Batch {batch.index} values do not fit table '{self.table_name}': {e}")
        if db_utils.is_timeout(e):
            return LoadTimeoutError(f"write of batch {batch.index}", str(e))
        return WriteError(f"Batch {batch.index} was not committed: {e}")

    def write(self, batch: RowBatch) -> int:
        """Insert ``batch`` and return the number of rows written."""
        self.check_schema(batch)
        try:
            with self.engine.begin() as connection:
                batch.frame.to_sql(self.table_name, connection, if_exists="append", index=False)
        except pd.errors.DatabaseError as e:
            # pandas 3 wraps the SQLAlchemy error raised by the insert
            cause = e.__cause__ if isinstance(e.__cause__, SQLAlchemyError) else e
            logging.error(f"Failed to write batch {batch.index} into '{self.table_name}': {cause}")
            raise self._write_error(batch, cause) from e
        except SQLAlchemyError as e:
            logging.error(f"Failed to write batch {batch.index} into '{self.table_name}': {e}")
            raise self._write_error(batch, e) from e

        logging.info(f"Batch {batch.index}: {len(batch)} rows committed into '{self.table_name}'.")
        return len(batch)
