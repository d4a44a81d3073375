"""Resolve database credentials from an AWS Secrets Manager secret."""
import json
import logging

from botocore.exceptions import BotoCoreError, ClientError

from csv_to_rds.config import Config
from csv_to_rds.errors import LoadTimeoutError, SecretAccessError, SecretFormatError
from csv_to_rds.models import ConnectionProfile
from csv_to_rds.utils.aws_utils import TIMEOUT_ERRORS, get_client, get_secret_string, region_from_arn

REQUIRED_KEYS = ("username", "password", "host", "port", "dbname")


def _require_string(payload: dict, key: str, allow_empty: bool = False) -> str:
    value = payload[key]
    if not isinstance(value, str):
        raise SecretFormatError(f"Secret key '{key}' must be a string, got {type(value).__name__}")
    if not allow_empty and not value.strip():
        raise SecretFormatError(f"Secret key '{key}' is empty")
    return value


def _parse_port(value) -> int:
    if isinstance(value, bool):
        raise SecretFormatError("Secret key 'port' must be numeric, got bool")
    if isinstance(value, int):
        port = value
    elif isinstance(value, str) and value.strip().isdecimal():
        port = int(value.strip())
    else:
        raise SecretFormatError(f"Secret key 'port' must be numeric, got {value!r}")
    if not 0 <= port <= 65535:
        raise SecretFormatError(f"Secret key 'port' out of range: {port}")
    return port


def parse_secret_payload(payload) -> ConnectionProfile:
    """
    Parse a secret payload into a ConnectionProfile.

    The payload is a JSON object with string fields ``username``,
    ``password``, ``host``, ``port`` and ``dbname``. ``port`` may also be
    a JSON number.
    """
    if payload is None:
        raise SecretFormatError("Secret has no SecretString")
    try:
        data = json.loads(payload)
    except (TypeError, ValueError) as e:
        raise SecretFormatError(f"Secret payload is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise SecretFormatError("Secret payload must be a JSON object")

    missing = [key for key in REQUIRED_KEYS if key not in data]
    if missing:
        raise SecretFormatError(f"Secret payload is missing keys: {', '.join(missing)}")

    return ConnectionProfile(
        host=_require_string(data, "host"),
        port=_parse_port(data["port"]),
        user=_require_string(data, "username"),
        password=_require_string(data, "password", allow_empty=True),
        database=_require_string(data, "dbname"),
    )


class CredentialResolver:
    """Fetches a secret by handle and turns it into a ConnectionProfile."""

    def __init__(self, client=None, region: str = None, timeout: int = Config.NETWORK_TIMEOUT_SECONDS):
        self.client = client
        self.region = region
        self.timeout = timeout

    def _client_for(self, secret_handle: str):
        if self.client is None:
            region = self.region or region_from_arn(secret_handle)
            self.client = get_client("secretsmanager", region=region, timeout=self.timeout)
        return self.client

    def resolve(self, secret_handle: str) -> ConnectionProfile:
        if not secret_handle:
            raise SecretAccessError("No secret handle given")
        try:
            payload = get_secret_string(secret_handle, self._client_for(secret_handle))
        except TIMEOUT_ERRORS as e:
            logging.error(f"Timed out fetching secret {secret_handle}: {e}")
            raise LoadTimeoutError("secret fetch", str(e)) from e
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "Unknown")
            logging.error(f"Error fetching secret {secret_handle}: {code}")
            raise SecretAccessError(f"Cannot read secret {secret_handle}: {code}") from e
        except BotoCoreError as e:
            logging.error(f"Error fetching secret {secret_handle}: {e}")
            raise SecretAccessError(f"Cannot read secret {secret_handle}: {e}") from e

        profile = parse_secret_payload(payload)
        logging.info(f"Resolved credentials for {profile.user}@{profile.host}:{profile.port}/{profile.database}")
        return profile
