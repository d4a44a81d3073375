"""Configuration module for loader settings."""
import os

from dotenv import load_dotenv

load_dotenv()

AWS_DEFAULT_REGION = os.getenv("AWS_DEFAULT_REGION", "us-east-1")

# SQLAlchemy drivername, e.g. "mysql+pymysql" or "postgresql+psycopg2"
DB_DRIVER = os.getenv("DB_DRIVER", "mysql+pymysql")
NETWORK_TIMEOUT_SECONDS = int(os.getenv("NETWORK_TIMEOUT_SECONDS", 60))

CSV_ENCODING = os.getenv("CSV_ENCODING", "utf-8")
CSV_DELIMITER = os.getenv("CSV_DELIMITER", ",")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Config:
    """Configuration class for loader settings."""

    ENVIRONMENT = ENVIRONMENT
    LOG_LEVEL = LOG_LEVEL

    AWS_DEFAULT_REGION = AWS_DEFAULT_REGION

    DB_DRIVER = DB_DRIVER
    NETWORK_TIMEOUT_SECONDS = NETWORK_TIMEOUT_SECONDS

    CSV_ENCODING = CSV_ENCODING
    CSV_DELIMITER = CSV_DELIMITER

    DEFAULT_CHUNK_SIZE = 10000
    DEFAULT_DELETE_MODE = "TRUNCATE"
