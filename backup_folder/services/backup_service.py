"""Backup run: load watermark, scan and upload changes, commit metadata."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from backup_folder.config import Settings
from backup_folder.filesystem.walker import walk_files
from backup_folder.models.upload import BackupSummary, UploadTask
from backup_folder.services.change_filter import should_upload, watermark_from
from backup_folder.services.datetime_service import format_iso, now_utc
from backup_folder.services.metadata_service import (
    load_metadata,
    next_metadata,
    render_metadata,
    save_metadata,
    temp_path_for,
)
from backup_folder.services.scheduler import UploadScheduler

if TYPE_CHECKING:
    from pathlib import Path

    from backup_folder.storage.base import ObjectStore

logger = logging.getLogger(__name__)


async def run_backup(
    source: Path,
    store: ObjectStore,
    *,
    settings: Settings | None = None,
    dry_run: bool = False,
    quiet: bool = False,
) -> BackupSummary:
    """Back up every file under ``source`` modified since the last run.

    Steps: load the sidecar and its watermark, walk ``source`` submitting
    qualifying files to the scheduler, drain, write the new sidecar, upload
    the sidecar itself and drain again. In dry-run mode nothing is uploaded,
    the sidecar is left untouched and not uploaded.

    Raises:
        MetadataError: If the existing sidecar cannot be trusted. Nothing is
            scanned or uploaded.
        OSError: If a directory under ``source`` cannot be read.
        UploadError: If any file exhausted its retries. Raised after all
            other uploads finished; the sidecar is not rewritten.
    """
    settings = settings or Settings()
    metadata_path = source / settings.metadata_file
    scratch_path = temp_path_for(metadata_path)

    started_at = now_utc()
    previous = load_metadata(metadata_path)
    watermark = watermark_from(previous)
    if previous is None:
        logger.info("No previous backup found in %s, uploading everything", source)
    else:
        logger.info(
            "Uploading files modified since %s", format_iso(previous.upload_start_time)
        )

    total_files = 0
    total_bytes = 0

    async with UploadScheduler(
        store,
        concurrency=settings.concurrency,
        max_attempts=settings.max_attempts,
        dry_run=dry_run,
        quiet=quiet,
    ) as scheduler:
        scanned = 0
        for record in walk_files(source):
            if record.path in (metadata_path, scratch_path):
                continue

            scanned += 1
            if scanned % settings.progress_interval == 0:
                logger.info("Done %d files", scanned)

            total_files += 1
            total_bytes += record.size
            if should_upload(record.mtime, watermark):
                await scheduler.submit(UploadTask.for_file(source, record.path, record.size))
            # The walk is synchronous; let started uploads make progress.
            await asyncio.sleep(0)

        queued = scheduler.pending > 0
        if queued:
            logger.info("Waiting for all files to be uploaded")
        await scheduler.drain()
        if queued:
            logger.info("All files uploaded")

        finished_at = now_utc()
        metadata = next_metadata(previous, started_at, finished_at)
        if metadata.history_depth() > 1:
            logger.debug("Metadata history now holds %d runs", metadata.history_depth())

        if dry_run:
            sidecar_size = len(render_metadata(metadata).encode("utf-8"))
        else:
            sidecar_size = save_metadata(metadata_path, metadata)
            await scheduler.submit(UploadTask.for_file(source, metadata_path, sidecar_size))
            await scheduler.drain()
        total_files += 1
        total_bytes += sidecar_size

    return BackupSummary(
        total_files=total_files,
        total_bytes=total_bytes,
        uploaded_files=scheduler.stats.files,
        uploaded_bytes=scheduler.stats.bytes,
        started_at=started_at,
        finished_at=finished_at,
        dry_run=dry_run,
    )
