"""Watermark-based change detection."""

from __future__ import annotations

from typing import TYPE_CHECKING

from backup_folder.services.datetime_service import EPOCH_ZERO, to_timestamp

if TYPE_CHECKING:
    from backup_folder.schemas.metadata import RunMetadata


def watermark_from(metadata: RunMetadata | None) -> float:
    """Return the previous run's start time as POSIX seconds, or epoch zero on the first run.

    The start time is used rather than the end time so that files modified
    while the previous run was scanning are picked up again.
    """
    if metadata is None:
        return to_timestamp(EPOCH_ZERO)
    return to_timestamp(metadata.upload_start_time)


def should_upload(mtime: float, watermark: float) -> bool:
    """Return True if a file modified at ``mtime`` is due for upload."""
    return mtime >= watermark
