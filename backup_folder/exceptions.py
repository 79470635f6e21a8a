"""Backup exception types.

Convention:
- ``ValidationError`` — bad command-line input, raised before any I/O.
- ``MetadataError`` — the sidecar exists but cannot be trusted. The run aborts
  before scanning rather than falling back to a full re-upload.
- ``UploadError`` — a file exhausted its retry budget. Raised from
  ``UploadScheduler.drain()`` once every other in-flight upload has finished.
- ``OSError`` — filesystem failures during the walk propagate unchanged.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

    from backup_folder.models.upload import UploadTask


class BackupError(Exception):
    """Base class for errors that abort a backup run."""


class ValidationError(BackupError):
    """Raised for invalid source or destination arguments."""


class MetadataError(BackupError):
    """Raised when the metadata sidecar is unreadable or structurally invalid."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"{reason} ({path})")
        self.path = path
        self.reason = reason


class UploadError(BackupError):
    """Raised when at least one upload permanently failed.

    ``task`` is the first task that failed; ``failed_count`` counts every
    task that exhausted its retries before the drain completed.
    """

    def __init__(self, task: UploadTask, failed_count: int = 1) -> None:
        msg = f"Failed to upload {task.source}"
        if failed_count > 1:
            msg += f" (and {failed_count - 1} other file(s))"
        super().__init__(msg)
        self.task = task
        self.failed_count = failed_count
