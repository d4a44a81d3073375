import logging

from sqlalchemy import Column, MetaData, Table, Text, create_engine, inspect, text
from sqlalchemy.engine import URL, Engine
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from csv_to_rds.config import Config
from csv_to_rds.errors import DatabaseConnectionError, LoadTimeoutError
from csv_to_rds.models import ConnectionProfile


# PyMySQL: lost connection during query (read/write timeout), max_execution_time exceeded
MYSQL_TIMEOUT_CODES = (2013, 3024)
# psycopg2: query_canceled, raised by statement_timeout
POSTGRES_QUERY_CANCELED = "57014"
TIMEOUT_PHRASES = ("timed out", "timeout expired", "statement timeout")


def is_timeout(exc: Exception) -> bool:
    """True when the DBAPI error behind ``exc`` reports a timed-out operation."""
    orig = getattr(exc, "orig", None)
    if orig is None:
        return isinstance(exc, TimeoutError)
    if isinstance(orig, TimeoutError):
        return True
    if getattr(orig, "pgcode", None) == POSTGRES_QUERY_CANCELED:
        return True
    args = getattr(orig, "args", ())
    if args and args[0] in MYSQL_TIMEOUT_CODES:
        return True
    message = str(orig).lower()
    return any(phrase in message for phrase in TIMEOUT_PHRASES)


def connect_args_for(drivername: str, timeout: int) -> dict:
    """Driver-specific connect arguments bounding every network call."""
    if drivername.startswith("mysql"):
        return {"connect_timeout": timeout, "read_timeout": timeout, "write_timeout": timeout}
    if drivername.startswith("postgresql"):
        return {"connect_timeout": timeout, "options": f"-c statement_timeout={timeout * 1000}"}
    if drivername.startswith("sqlite"):
        return {"timeout": timeout}
    return {}


def build_url(profile: ConnectionProfile, drivername: str = Config.DB_DRIVER) -> URL:
    return URL.create(
        drivername,
        username=profile.user,
        password=profile.password,
        host=profile.host,
        port=profile.port,
        database=profile.database,
    )


def connect_to_rds(
    profile: ConnectionProfile,
    drivername: str = Config.DB_DRIVER,
    timeout: int = Config.NETWORK_TIMEOUT_SECONDS,
) -> Engine:
    """Creates a SQLAlchemy engine for the RDS instance and opens one test connection."""
    url = build_url(profile, drivername)
    logging.info(f"Connecting to RDS: db_url={url.render_as_string(hide_password=True)}")
    engine = create_engine(url, connect_args=connect_args_for(drivername, timeout), pool_pre_ping=True)
    try:
        conn = engine.connect()
        conn.close()
    except OperationalError as e:
        engine.dispose()
        logging.error(f"Failed to connect to RDS: {e}")
        if is_timeout(e):
            raise LoadTimeoutError("database connect", str(e)) from e
        raise DatabaseConnectionError(f"Could not connect to {profile.host}:{profile.port}: {e}") from e
    except SQLAlchemyError as e:
        engine.dispose()
        logging.error(f"Failed to connect to RDS: {e}")
        raise DatabaseConnectionError(f"Could not connect to {profile.host}:{profile.port}: {e}") from e
    logging.info("Connected to RDS successfully.")
    return engine


def quote_table(engine: Engine, table_name: str) -> str:
    return engine.dialect.identifier_preparer.quote(table_name)


def table_exists(engine: Engine, table_name: str) -> bool:
    return inspect(engine).has_table(table_name)


def table_columns(engine: Engine, table_name: str) -> list:
    """Column names of ``table_name`` in table order."""
    return [column["name"] for column in inspect(engine).get_columns(table_name)]


def text_table(table_name: str, columns: list) -> Table:
    """Table definition with one nullable TEXT column per CSV header column."""
    return Table(table_name, MetaData(), *[Column(name, Text, nullable=True) for name in columns])


def drop_table(engine: Engine, table_name: str):
    logging.info(f"Dropping table '{table_name}' if it exists...")
    with engine.begin() as connection:
        connection.execute(text(f"DROP TABLE IF EXISTS {quote_table(engine, table_name)}"))


def create_text_table(engine: Engine, table_name: str, columns: list):
    logging.info(f"Creating table '{table_name}' with {len(columns)} TEXT columns...")
    with engine.begin() as connection:
        text_table(table_name, columns).create(connection)


def truncate_table(engine: Engine, table_name: str):
    """Remove every row; SQLite has no TRUNCATE so it gets a DELETE."""
    quoted = quote_table(engine, table_name)
    if engine.dialect.name == "sqlite":
        statement = f"DELETE FROM {quoted}"
    else:
        statement = f"TRUNCATE TABLE {quoted}"
    logging.info(f"Truncating table '{table_name}'...")
    with engine.begin() as connection:
        connection.execute(text(statement))

