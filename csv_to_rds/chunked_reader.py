"""Stream a CSV file as bounded row batches."""
import csv
import logging
from contextlib import closing
from typing import Iterator

import fsspec
import pandas as pd
from botocore.exceptions import BotoCoreError

from csv_to_rds.config import Config
from csv_to_rds.errors import LoadTimeoutError, RowParseError, SourceAccessError
from csv_to_rds.models import RowBatch
from csv_to_rds.utils.aws_utils import TIMEOUT_ERRORS, is_s3_uri, parse_s3_uri, s3_filesystem

HEADER_ROW = 1


class _SourceLines:
    """
    Feeds csv.reader one decoded physical line at a time and keeps the raw
    text of the record being parsed.

    ``record_start`` is the physical line number where the current record
    began, so blank lines and quoted newlines are counted like any other line.
    """

    def __init__(self, handle, encoding: str):
        self.handle = iter(handle)
        self.encoding = encoding
        self.line_number = 0
        self.record_start = 1
        self._pending = []

    def __iter__(self):
        return self

    def __next__(self) -> str:
        data = next(self.handle)
        self.line_number += 1
        if not self._pending:
            self.record_start = self.line_number
        try:
            line = data.decode(self.encoding)
        except UnicodeDecodeError as e:
            raw = data.decode(self.encoding, errors="replace").rstrip("\r\n")
            raise RowParseError(self.line_number, raw, f"cannot decode as {self.encoding}: {e}") from e
        if self.line_number == 1:
            line = line.lstrip("\ufeff")
        self._pending.append(line)
        return line

    def take_record(self) -> str:
        raw = "".join(self._pending).rstrip("\r\n")
        self._pending = []
        return raw


class ChunkedCsvReader:
    """
    Lazy, forward-only reader producing RowBatch objects of at most
    ``chunk_size`` rows.

    Every iteration starts over from the beginning of the file. All values
    are read as strings. A row whose field count differs from the header, or
    that cannot be decoded, raises RowParseError and the chunk that holds it
    is never yielded.
    """

    def __init__(
        self,
        source_uri: str,
        chunk_size: int,
        encoding: str = Config.CSV_ENCODING,
        delimiter: str = Config.CSV_DELIMITER,
        timeout: int = Config.NETWORK_TIMEOUT_SECONDS,
    ):
        self.source_uri = source_uri
        self.chunk_size = chunk_size
        self.encoding = encoding
        self.delimiter = delimiter
        if is_s3_uri(source_uri):
            try:
                bucket, key = parse_s3_uri(source_uri)
            except ValueError as e:
                raise SourceAccessError(str(e)) from e
            self.filesystem = s3_filesystem(timeout)
            self.path = f"{bucket}/{key}"
        else:
            self.filesystem = fsspec.filesystem("file")
            self.path = source_uri

    def _open(self):
        return self.filesystem.open(self.path, mode="rb")

    def _row_error(self, row_number: int, raw: str, reason: str) -> RowParseError:
        logging.error(f"Malformed row {row_number} in {self.source_uri}: {reason}")
        return RowParseError(row_number, raw, reason)

    def _source_error(self, e: Exception) -> Exception:
        if isinstance(e, TIMEOUT_ERRORS):
            return LoadTimeoutError("source read", str(e))
        logging.error(f"Error reading {self.source_uri}: {e}")
        return SourceAccessError(f"Cannot read {self.source_uri}: {e}")

    def _records(self):
        """Yield ``(row_number, raw, fields)`` for every non-blank record."""
        try:
            with self._open() as handle:
                lines = _SourceLines(handle, self.encoding)
                reader = csv.reader(lines, delimiter=self.delimiter)
                while True:
                    try:
                        fields = next(reader)
                    except StopIteration:
                        return
                    except csv.Error as e:
                        raise self._row_error(lines.record_start, lines.take_record(), str(e)) from e
                    raw = lines.take_record()
                    if fields:
                        yield lines.record_start, raw, fields
        except (OSError, BotoCoreError) as e:
            raise self._source_error(e) from e

    def _check_header(self, row_number: int, raw: str, columns: list) -> list:
        duplicates = sorted({column for column in columns if columns.count(column) > 1})
        if duplicates:
            raise self._row_error(row_number, raw, f"duplicate column names in header: {duplicates}")
        return columns

    def read_header(self) -> list:
        """Column names from the header row."""
        with closing(self._records()) as records:
            first = next(records, None)
        if first is None:
            raise RowParseError(HEADER_ROW, "", "source file has no header row")
        columns = self._check_header(*first)
        logging.info(f"Source {self.source_uri} has {len(columns)} columns: {columns}")
        return columns

    def _batch(self, index: int, first_row: int, header: list, rows: list) -> RowBatch:
        return RowBatch(index=index, first_row=first_row, frame=pd.DataFrame(rows, columns=header, dtype=object))

    def iter_batches(self) -> Iterator[RowBatch]:
        logging.info(f"Reading CSV: {self.source_uri} (chunk_size={self.chunk_size})")
        header = None
        rows = []
        first_row = None
        index = 0
        with closing(self._records()) as records:
            for row_number, raw, fields in records:
                if header is None:
                    header = self._check_header(row_number, raw, fields)
                    continue
                if len(fields) != len(header):
                    side = "fewer" if len(fields) < len(header) else "more"
                    raise self._row_error(
                        row_number, raw, f"row has {len(fields)} fields, {side} than the {len(header)} header columns"
                    )
                if not rows:
                    first_row = row_number
                rows.append(fields)
                if len(rows) == self.chunk_size:
                    yield self._batch(index, first_row, header, rows)
                    rows = []
                    index += 1

        if header is None:
            raise RowParseError(HEADER_ROW, "", "source file has no header row")
        if rows:
            yield self._batch(index, first_row, header, rows)

    def __iter__(self) -> Iterator[RowBatch]:
        return self.iter_batches()
