import logging

from csv_to_rds.batch_writer import BatchWriter
from csv_to_rds.chunked_reader import ChunkedCsvReader
from csv_to_rds.credentials import CredentialResolver
from csv_to_rds.errors import JobFailedError
from csv_to_rds.models import JobConfig, JobState, LifecycleOutcome, LoadResult
from csv_to_rds.table_lifecycle import TableLifecycleManager
from csv_to_rds.utils import db_utils


class ChunkedCsvLoader:
    """
    Job driver: resolve credentials, prepare the table, stream the CSV and
    write it chunk by chunk.

    The run is per-chunk atomic but not globally transactional: chunks
    committed before a failure stay in the table. There is no retry; a caller
    re-running an append-only load (no drop/delete flag) will duplicate the
    committed rows.
    """

    def __init__(self, job: JobConfig, secret_handle: str, resolver=None, engine_factory=None, reader=None):
        self.job = job
        self.secret_handle = secret_handle
        self.resolver = resolver or CredentialResolver()
        self.engine_factory = engine_factory or db_utils.connect_to_rds
        self.reader = reader
        self.state = JobState.INIT
        self.rows_processed = 0
        self.chunks_processed = 0
        self.outcome = LifecycleOutcome()

    def _transition(self, state: JobState):
        logging.info(f"State {self.state.value} -> {state.value}")
        self.state = state

    def _fail(self, cause: Exception):
        failed_in = self.state
        self._transition(JobState.FAILED)
        error = JobFailedError(
            failed_in,
            cause,
            rows_processed=self.rows_processed,
            chunks_processed=self.chunks_processed,
            table_recreated=self.outcome.recreated,
            rows_deleted=self.outcome.rows_deleted,
            table_indeterminate=getattr(cause, "indeterminate", False),
        )
        logging.error(f"{error}")
        if self.chunks_processed and not (self.job.drop_table or self.job.delete_rows):
            logging.warning(
                f"{self.chunks_processed} chunks were committed in append mode; "
                "re-run with drop_table or delete_rows to avoid duplicate rows."
            )
        raise error from cause

    def prepare_table(self, engine) -> LifecycleOutcome:
        if self.reader is None:
            self.reader = ChunkedCsvReader(self.job.source_uri, self.job.chunk_size)
        columns = self.reader.read_header()
        manager = TableLifecycleManager(engine, self.job.table_name)
        self.outcome = manager.apply(
            columns,
            drop_table=self.job.drop_table,
            delete_rows=self.job.delete_rows,
            delete_mode=self.job.delete_mode,
        )
        return self.outcome

    def load(self, engine):
        writer = BatchWriter(engine, self.job.table_name)
        for batch in self.reader.iter_batches():
            written = writer.write(batch)
            self.rows_processed += written
            self.chunks_processed += 1
            logging.info(f"Progress: {self.chunks_processed} chunks, {self.rows_processed} rows")

    def run(self) -> LoadResult:
        logging.info(f"\n===== CSV LOAD: {self.job.source_uri} -> {self.job.table_name} =====")
        try:
            profile = self.resolver.resolve(self.secret_handle)
            self._transition(JobState.CREDENTIALS_RESOLVED)

            engine = self.engine_factory(profile)
            try:
                self.prepare_table(engine)
                self._transition(JobState.TABLE_READY)

                self._transition(JobState.LOADING)
                self.load(engine)
            finally:
                engine.dispose()
        except Exception as e:
            self._fail(e)

        self._transition(JobState.COMPLETED)
        result = LoadResult(
            rows_processed=self.rows_processed,
            chunks_processed=self.chunks_processed,
            table_recreated=self.outcome.recreated,
            rows_deleted=self.outcome.rows_deleted,
        )
        logging.info(f"{result}")
        logging.info(f"===== END CSV LOAD: {self.job.table_name} =====\n")
        return result


def load_csv(job: JobConfig, secret_handle: str, **kwargs) -> LoadResult:
    """Run one load job with default collaborators."""
    return ChunkedCsvLoader(job, secret_handle, **kwargs).run()
