"""
Unit tests for the batch writer, against a SQLite file.
"""
import unittest
from unittest.mock import patch

import pandas as pd
from sqlalchemy import text
from sqlalchemy.exc import DataError, IntegrityError, OperationalError

from csv_to_rds.batch_writer import BatchWriter
from csv_to_rds.errors import LoadTimeoutError, SchemaMismatchError, WriteError
from csv_to_rds.models import RowBatch
from csv_to_rds.utils import db_utils
from tests.helpers import HEADER, TempDirMixin, numbered_rows, row_count, sqlite_engine

TABLE = "scores"


def make_batch(rows, columns=HEADER, index=0) -> RowBatch:
    return RowBatch(index=index, first_row=2, frame=pd.DataFrame(rows, columns=columns))


class TestBatchWriter(TempDirMixin, unittest.TestCase):
    """Test cases for BatchWriter."""

    def setUp(self):
        super().setUp()
        self.engine = sqlite_engine(self.tmpdir)

    def tearDown(self):
        self.engine.dispose()
        super().tearDown()

    def test_write_commits_rows(self):
        """All rows of a batch are inserted and counted."""
        db_utils.create_text_table(self.engine, TABLE, HEADER)
        writer = BatchWriter(self.engine, TABLE)

        written = writer.write(make_batch(numbered_rows(4)))

        self.assertEqual(written, 4)
        self.assertEqual(row_count(self.engine, TABLE), 4)
        with self.engine.connect() as connection:
            names = connection.execute(text(f"SELECT name FROM {TABLE} ORDER BY CAST(id AS INTEGER)")).scalars().all()
        self.assertEqual(names, ["name-0", "name-1", "name-2", "name-3"])

    def test_columns_matched_by_name(self):
        """Batch columns in a different order still land in the right columns."""
        db_utils.create_text_table(self.engine, TABLE, HEADER)
        writer = BatchWriter(self.engine, TABLE)

        writer.write(make_batch([["a-name", "1", "9.5"]], columns=["name", "id", "score"]))

        with self.engine.connect() as connection:
            row = connection.execute(text(f"SELECT id, name, score FROM {TABLE}")).one()
        self.assertEqual(tuple(row), ("1", "a-name", "9.5"))

    def test_column_mismatch(self):
        """A batch with different columns raises SchemaMismatchError and writes nothing."""
        db_utils.create_text_table(self.engine, TABLE, ["id", "name"])
        writer = BatchWriter(self.engine, TABLE)

        with self.assertRaises(SchemaMismatchError):
            writer.write(make_batch(numbered_rows(2)))
        self.assertEqual(row_count(self.engine, TABLE), 0)

    def test_missing_table(self):
        """Writing into a table that does not exist is a schema mismatch."""
        writer = BatchWriter(self.engine, TABLE)

        with self.assertRaises(SchemaMismatchError):
            writer.write(make_batch(numbered_rows(1)))

    def test_failed_batch_is_rolled_back(self):
        """A row rejected mid-batch leaves none of the batch's rows behind."""
        with self.engine.begin() as connection:
            connection.execute(
                text(f"CREATE TABLE {TABLE} (id TEXT, name TEXT, score TEXT CHECK (score != 'bad'))")
            )
        writer = BatchWriter(self.engine, TABLE)
        writer.write(make_batch(numbered_rows(2), index=0))

        rows = numbered_rows(3, start=2)
        rows[1][2] = "bad"
        with self.assertRaises(WriteError):
            writer.write(make_batch(rows, index=1))

        self.assertEqual(row_count(self.engine, TABLE), 2)

    def test_wrapped_driver_errors_are_classified(self):
        """Errors pandas wraps in DatabaseError map to the loader's write errors."""
        db_utils.create_text_table(self.engine, TABLE, HEADER)
        cases = [
            (IntegrityError("INSERT", {}, Exception("constraint failed")), WriteError),
            (OperationalError("INSERT", {}, Exception("Lost connection (timed out)")), LoadTimeoutError),
            (DataError("INSERT", {}, Exception("value too long")), SchemaMismatchError),
        ]
        for cause, expected in cases:
            with self.subTest(cause=cause):
                wrapped = pd.errors.DatabaseError("Execution failed on sql 'INSERT'")
                wrapped.__cause__ = cause
                writer = BatchWriter(self.engine, TABLE)
                with patch.object(pd.DataFrame, "to_sql", side_effect=wrapped):
                    with self.assertRaises(expected):
                        writer.write(make_batch(numbered_rows(1)))
        self.assertEqual(row_count(self.engine, TABLE), 0)


if __name__ == "__main__":
    unittest.main()
