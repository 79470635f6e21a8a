"""File and upload records passed between the walker, scheduler and orchestrator."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(frozen=True)
class FileRecord:
    """A regular file found by the walker."""

    path: Path
    size: int
    mtime: float


@dataclass(frozen=True)
class UploadTask:
    """A single file to upload, keyed relative to the source root."""

    source: Path
    key: str
    size: int

    @classmethod
    def for_file(cls, root: Path, path: Path, size: int) -> UploadTask:
        """Build a task whose key is ``path`` relative to ``root`` with forward slashes."""
        key = PurePosixPath(*path.relative_to(root).parts).as_posix()
        return cls(source=path, key=key, size=size)


@dataclass
class UploadStats:
    """Counters for successfully completed uploads."""

    files: int = 0
    bytes: int = 0

    def record(self, task: UploadTask) -> None:
        self.files += 1
        self.bytes += task.size


@dataclass
class BackupSummary:
    """Totals reported at the end of a run."""

    total_files: int
    total_bytes: int
    uploaded_files: int
    uploaded_bytes: int
    started_at: datetime
    finished_at: datetime
    dry_run: bool = False

    @property
    def elapsed_seconds(self) -> float:
        return (self.finished_at - self.started_at).total_seconds()
