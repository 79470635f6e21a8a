"""CLI for incremental folder backups to S3."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import ValidationError as PydanticValidationError

from backup_folder.config import Settings
from backup_folder.exceptions import BackupError, ValidationError
from backup_folder.services.backup_service import run_backup
from backup_folder.services.format_service import format_duration, format_size
from backup_folder.storage.s3 import S3ObjectStore, is_bucket_url, parse_destination

if TYPE_CHECKING:
    from collections.abc import Sequence

    from backup_folder.models.upload import BackupSummary
    from backup_folder.storage.base import ObjectStore
    from backup_folder.storage.s3 import S3Destination

logger = logging.getLogger("backup_folder.cli")

_NOISY_LOGGERS = ("boto3", "botocore", "s3transfer", "urllib3")


def _package_version() -> str:
    try:
        return version("backup-folder")
    except PackageNotFoundError:
        return "0.0.0"


def _configure_logging(debug: bool) -> None:
    """Configure CLI logging; progress and errors go to stderr."""
    level = logging.DEBUG if debug else logging.INFO
    fmt = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
    logging.basicConfig(
        level=level,
        format=fmt,
        stream=sys.stderr,
        force=True,
    )
    # Quiet noisy libraries
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def validate_arguments(source: str, destination: str) -> tuple[Path, S3Destination]:
    """Check the source/destination pair before any I/O happens.

    Relative sources are resolved against the current directory.

    Raises:
        ValidationError: If the source is a bucket URL or the destination is
            not a valid ``s3://bucket/prefix`` URL.
    """
    if is_bucket_url(source):
        raise ValidationError("source can't be an S3 bucket")
    parsed = parse_destination(destination)
    source_path = Path(source)
    if not source_path.is_absolute():
        source_path = Path.cwd() / source_path
    return source_path, parsed


def format_summary(summary: BackupSummary) -> list[str]:
    """Render the end-of-run report lines."""
    label = "will upload" if summary.dry_run else "uploaded"
    return [
        f"{label} {summary.uploaded_files} / {summary.total_files} files "
        f"({format_size(summary.uploaded_bytes)} / {format_size(summary.total_bytes)})",
        f"Done in {format_duration(summary.elapsed_seconds)}!",
    ]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="backup-folder",
        description="Backup a local folder to S3, uploading only files changed since the last run",
    )
    parser.add_argument("source", help="local folder to backup")
    parser.add_argument(
        "destination",
        help="S3 address where the backup is uploaded (eg. s3://my-bucket/my-folder/)",
    )
    parser.add_argument(
        "--print",
        "-p",
        dest="print_only",
        action="store_true",
        help="only print files to be uploaded, do not actually upload",
    )
    parser.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="don't print the files being uploaded",
    )
    parser.add_argument("--version", "-V", action="version", version=_package_version())
    return parser


def main(
    argv: Sequence[str] | None = None,
    *,
    settings: Settings | None = None,
    store: ObjectStore | None = None,
) -> int:
    """CLI entry point. Returns the process exit code."""
    args = build_parser().parse_args(argv)
    try:
        settings = settings or Settings()
    except PydanticValidationError as exc:
        _configure_logging(debug=False)
        logger.error("Invalid configuration: %s", exc)
        return 1
    _configure_logging(settings.debug)

    try:
        settings.validate_metadata_file()
        source, destination = validate_arguments(args.source, args.destination)
    except (ValidationError, ValueError) as exc:
        logger.error("%s", exc)
        return 1

    try:
        if store is None:
            store = S3ObjectStore.from_destination(destination, settings)
        logger.info("Backing up %s to %s", source, destination.url)
        summary = asyncio.run(
            run_backup(
                source,
                store,
                settings=settings,
                dry_run=args.print_only,
                quiet=args.quiet,
            )
        )
    except BackupError as exc:
        logger.error("%s", exc)
        if exc.__cause__ is not None:
            logger.error("Caused by: %s", exc.__cause__)
        return 1
    except OSError as exc:
        logger.error("Can't read %s: %s", exc.filename or source, exc.strerror or exc)
        return 1
    except Exception:
        logger.exception("Backup failed")
        return 1

    for line in format_summary(summary):
        print(line)
    return 0


def cli_entry() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli_entry()
