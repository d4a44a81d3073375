"""
Load a CSV file from S3 into an RDS table:
1. Resolve database credentials from a Secrets Manager secret
2. Drop/create/truncate the target table according to the job flags
3. Stream the CSV in chunks and insert each chunk in its own transaction

Arguments follow the Glue job's names; extra Glue arguments are ignored.
"""

import argparse
import logging
import sys

from csv_to_rds.config import Config
from csv_to_rds.errors import ConfigurationError, JobFailedError
from csv_to_rds.models import JobConfig
from csv_to_rds.raw_loader import load_csv

FALSE_VALUES = ("false", "0", "no")


def _presence_flag(value) -> bool:
    """A flag given with no value (or ``""``) is set; ``False``/``0``/``no`` unset it."""
    if value is None:
        return False
    return value.strip().lower() not in FALSE_VALUES


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}")
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Load a CSV file into an RDS table in chunks.")
    parser.add_argument("--s3_object", required=True, help="s3://bucket/key of the CSV (or a local path).")
    parser.add_argument("--db_secret_arn", required=True, help="Secrets Manager ARN or name with DB credentials.")
    parser.add_argument("--table_name", required=True, help="Destination table.")
    parser.add_argument("--drop_table", nargs="?", const="", default=None, help="Drop and recreate the table first.")
    parser.add_argument("--delete_rows", nargs="?", const="", default=None, help="Delete existing rows first.")
    parser.add_argument("--delete_mode", default=Config.DEFAULT_DELETE_MODE, help="How rows are deleted (TRUNCATE).")
    parser.add_argument("--chunk_size", type=_positive_int, default=Config.DEFAULT_CHUNK_SIZE, help="Rows per chunk.")
    return parser


def parse_args(argv=None):
    args, unknown = build_parser().parse_known_args(argv)
    if unknown:
        logging.info(f"Ignoring extra job arguments: {unknown}")
    return args


def job_from_args(args) -> JobConfig:
    return JobConfig(
        source_uri=args.s3_object,
        table_name=args.table_name,
        drop_table=_presence_flag(args.drop_table),
        delete_rows=_presence_flag(args.delete_rows),
        delete_mode=args.delete_mode,
        chunk_size=args.chunk_size,
    )


def main(argv=None) -> int:
    logging.basicConfig(
        level=Config.LOG_LEVEL,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
    args = parse_args(argv)

    try:
        job = job_from_args(args)
    except ConfigurationError as e:
        logging.error(f"Invalid job configuration: {e}")
        return 2

    try:
        result = load_csv(job, args.db_secret_arn)
    except JobFailedError as e:
        logging.error(
            f"Load into '{job.table_name}' failed: rows_processed={e.rows_processed}, "
            f"chunks_processed={e.chunks_processed}, table_indeterminate={e.table_indeterminate}"
        )
        return 1

    logging.info(
        f"Load into '{job.table_name}' completed: rows_processed={result.rows_processed}, "
        f"chunks_processed={result.chunks_processed}"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
