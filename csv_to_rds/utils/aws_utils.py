"""AWS utility functions: clients with bounded timeouts, S3 URIs, Secrets Manager."""

import logging
from urllib.parse import urlparse

import boto3
import s3fs
from botocore.config import Config as BotoConfig
from botocore.exceptions import ConnectTimeoutError, ReadTimeoutError

from csv_to_rds.config import Config

TIMEOUT_ERRORS = (ConnectTimeoutError, ReadTimeoutError, TimeoutError)
S3_ATTEMPTS = 1


def boto_config(timeout: int = Config.NETWORK_TIMEOUT_SECONDS) -> BotoConfig:
    """Botocore config with connect/read timeouts and no automatic retry."""
    return BotoConfig(
        connect_timeout=timeout,
        read_timeout=timeout,
        retries={"total_max_attempts": 1, "mode": "standard"},
    )


def get_client(service: str, region: str = Config.AWS_DEFAULT_REGION, timeout: int = Config.NETWORK_TIMEOUT_SECONDS):
    """Create a boto3 client for ``service`` with bounded timeouts."""
    logging.info(f"Creating {service} client in region {region}")
    return boto3.client(service, region_name=region, config=boto_config(timeout))


def is_s3_uri(uri: str) -> bool:
    return uri.lower().startswith(("s3://", "s3a://"))


def parse_s3_uri(uri: str) -> tuple:
    """Split ``s3://bucket/key`` into ``(bucket, key)``."""
    parsed = urlparse(uri)
    if parsed.scheme.lower() not in ("s3", "s3a") or not parsed.netloc:
        raise ValueError(f"Not an S3 URI: {uri}")
    key = parsed.path.lstrip("/")
    if not key:
        raise ValueError(f"S3 URI has no object key: {uri}")
    return parsed.netloc, key


def s3_storage_options(timeout: int = Config.NETWORK_TIMEOUT_SECONDS) -> dict:
    """S3FileSystem options with bounded botocore timeouts and a single attempt."""
    return {
        "config_kwargs": {
            "connect_timeout": timeout,
            "read_timeout": timeout,
            "retries": {"total_max_attempts": 1, "mode": "standard"},
        }
    }


def s3_filesystem(timeout: int = Config.NETWORK_TIMEOUT_SECONDS) -> s3fs.S3FileSystem:
    """s3fs filesystem that reports a timeout on the first failed request."""
    fs = s3fs.S3FileSystem(**s3_storage_options(timeout))
    # s3fs runs its own retry loop on top of botocore's
    fs.retries = S3_ATTEMPTS
    return fs


def region_from_arn(arn: str, default: str = Config.AWS_DEFAULT_REGION) -> str:
    """Return the region field of an ARN, or ``default`` for plain names."""
    parts = arn.split(":")
    if len(parts) >= 6 and parts[0] == "arn" and parts[3]:
        return parts[3]
    return default


def get_secret_string(secret_id: str, client) -> str:
    """Fetch the ``SecretString`` of a Secrets Manager secret."""
    logging.info(f"Fetching secret: {secret_id}")
    response = client.get_secret_value(SecretId=secret_id)
    return response.get("SecretString")
