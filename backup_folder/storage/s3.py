"""S3 object store backed by boto3."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import boto3
from botocore.config import Config as BotoConfig

from backup_folder.exceptions import ValidationError

if TYPE_CHECKING:
    from pathlib import Path

    from backup_folder.config import Settings

logger = logging.getLogger(__name__)

S3_SCHEME = "s3://"
_DESTINATION_RE = re.compile(r"^s3://([a-zA-Z0-9._-]+)(?:/|$)")


@dataclass(frozen=True)
class S3Destination:
    """Bucket and key prefix parsed from an ``s3://bucket/prefix`` URL."""

    bucket: str
    prefix: str = ""

    @property
    def url(self) -> str:
        return f"{S3_SCHEME}{self.bucket}/{self.prefix}"


def is_bucket_url(value: str) -> bool:
    return value.startswith(S3_SCHEME)


def parse_destination(destination: str) -> S3Destination:
    """Parse ``s3://bucket[/prefix]`` into bucket and normalized prefix.

    Raises:
        ValidationError: If the value is not an ``s3://`` URL or the bucket
            name is empty or contains invalid characters.
    """
    if not is_bucket_url(destination):
        raise ValidationError("destination must be an S3 folder (s3://bucket/prefix)")
    match = _DESTINATION_RE.match(destination)
    if match is None:
        raise ValidationError(f"invalid destination: {destination}")
    bucket = match.group(1)
    rest = destination[len(S3_SCHEME) + len(bucket) :]
    prefix = "/".join(part for part in rest.split("/") if part)
    return S3Destination(bucket=bucket, prefix=prefix)


def join_key(prefix: str, key: str) -> str:
    """Join a prefix and a relative key with exactly one slash between them."""
    key = key.replace("\\", "/").lstrip("/")
    prefix = prefix.strip("/")
    return f"{prefix}/{key}" if prefix else key


def create_s3_client(settings: Settings) -> Any:
    """Create an S3 client with bounded timeouts.

    Credentials are resolved by boto3 (environment, shared credentials file,
    ``AWS_SHARED_CREDENTIALS_FILE``, instance profile, ...). Retries are left
    to the backup's own retry wrapper.
    """
    config = BotoConfig(
        connect_timeout=settings.s3_connect_timeout,
        read_timeout=settings.s3_read_timeout,
        retries={"max_attempts": 1, "mode": "standard"},
        max_pool_connections=settings.concurrency,
    )
    kwargs: dict[str, Any] = {"config": config}
    if settings.aws_region:
        kwargs["region_name"] = settings.aws_region
    if settings.s3_endpoint_url:
        kwargs["endpoint_url"] = settings.s3_endpoint_url
    if settings.aws_profile:
        session = boto3.Session(profile_name=settings.aws_profile)
        return session.client("s3", **kwargs)
    return boto3.client("s3", **kwargs)


class S3ObjectStore:
    """ObjectStore that uploads into ``bucket`` under ``prefix``."""

    def __init__(self, bucket: str, prefix: str, client: Any) -> None:
        self.bucket = bucket
        self.prefix = prefix.strip("/")
        self.client = client

    @classmethod
    def from_destination(cls, destination: S3Destination, settings: Settings) -> S3ObjectStore:
        return cls(destination.bucket, destination.prefix, create_s3_client(settings))

    def object_key(self, key: str) -> str:
        return join_key(self.prefix, key)

    def put(self, local_path: Path, key: str) -> None:
        object_key = self.object_key(key)
        logger.debug("PUT s3://%s/%s <- %s", self.bucket, object_key, local_path)
        self.client.upload_file(str(local_path), self.bucket, object_key)
