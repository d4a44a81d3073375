"""Shared fixtures for the loader tests."""
import json
import os
import tempfile

from sqlalchemy import create_engine, text

from csv_to_rds.models import ConnectionProfile

HEADER = ["id", "name", "score"]

SECRET = {
    "username": "loader",
    "password": 'p"ss',
    "host": "db.example.internal",
    "port": "3306",
    "dbname": "sales",
}

PROFILE = ConnectionProfile(host="db.example.internal", port=3306, user="loader", password='p"ss', database="sales")


def secret_string(**overrides) -> str:
    payload = dict(SECRET)
    payload.update(overrides)
    return json.dumps({k: v for k, v in payload.items() if v is not None})


def write_csv(directory: str, name: str, header, rows) -> str:
    path = os.path.join(directory, name)
    with open(path, "w", encoding="utf-8", newline="") as handle:
        if header is not None:
            handle.write(",".join(header) + "\n")
        for row in rows:
            handle.write(",".join(row) + "\n")
    return path


def numbered_rows(count: int, start: int = 0):
    return [[str(i), f"name-{i}", f"{i * 1.5}"] for i in range(start, start + count)]


def sqlite_engine(directory: str):
    return create_engine(f"sqlite:///{os.path.join(directory, 'target.db')}")


def row_count(engine, table_name: str) -> int:
    with engine.connect() as connection:
        return connection.execute(text(f'SELECT COUNT(*) FROM "{table_name}"')).scalar_one()


class TempDirMixin:
    """Creates a scratch directory per test."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmpdir = self._tmp.name

    def tearDown(self):
        self._tmp.cleanup()
