"""Chunked CSV loader: streams a CSV file from S3 into an RDS table."""

__version__ = "0.1.0"
