"""Plain data records for backup runs."""

from backup_folder.models.upload import BackupSummary, FileRecord, UploadStats, UploadTask

__all__ = [
    "BackupSummary",
    "FileRecord",
    "UploadStats",
    "UploadTask",
]
