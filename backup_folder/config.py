"""Backup configuration loaded from environment variables."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_METADATA_FILE = ".backup-folder.json"


class Settings(BaseSettings):
    """backup-folder settings.

    Every field can be set through a ``BACKUP_FOLDER_``-prefixed environment
    variable or a ``.env`` file in the working directory.
    """

    model_config = SettingsConfigDict(
        env_prefix="BACKUP_FOLDER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    debug: bool = False

    # Scheduling
    concurrency: int = Field(default=100, ge=1)
    max_attempts: int = Field(default=3, ge=1)
    progress_interval: int = Field(default=10_000, ge=1)

    # Sidecar
    metadata_file: str = Field(default=DEFAULT_METADATA_FILE, min_length=1)

    # S3; credentials come from the boto3 chain, never from here
    aws_profile: str | None = None
    aws_region: str | None = None
    s3_endpoint_url: str | None = None
    s3_connect_timeout: float = Field(default=5.0, gt=0)
    s3_read_timeout: float = Field(default=60.0, gt=0)

    def validate_metadata_file(self) -> None:
        """Reject sidecar names that would escape the source directory."""
        if "/" in self.metadata_file or "\\" in self.metadata_file:
            raise ValueError(
                f"BACKUP_FOLDER_METADATA_FILE must be a plain file name, got {self.metadata_file!r}"
            )
        if self.metadata_file in {".", ".."}:
            raise ValueError("BACKUP_FOLDER_METADATA_FILE must name a file")
