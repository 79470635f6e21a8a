"""Metadata sidecar: load, build and atomically rewrite the run history."""

from __future__ import annotations

import json
import logging
import os
from typing import TYPE_CHECKING

from pydantic import ValidationError as PydanticValidationError

from backup_folder.exceptions import MetadataError
from backup_folder.schemas.metadata import RunMetadata

if TYPE_CHECKING:
    from datetime import datetime
    from pathlib import Path

logger = logging.getLogger(__name__)


def load_metadata(path: Path) -> RunMetadata | None:
    """Load the sidecar at ``path``.

    Returns None when the file does not exist (first run).

    Raises:
        MetadataError: If the file exists but cannot be read, is not valid
            JSON, or lacks ``uploadStartTime``.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.debug("No metadata file at %s, treating as first run", path)
        return None
    except (OSError, UnicodeDecodeError) as exc:
        raise MetadataError(path, f"Can't read metadata file: {exc}") from exc

    try:
        data = json.loads(raw.strip())
    except json.JSONDecodeError as exc:
        raise MetadataError(path, f"Invalid JSON in metadata file: {exc}") from exc

    if not isinstance(data, dict) or not data.get("uploadStartTime"):
        raise MetadataError(path, "Invalid metadata file: missing uploadStartTime")

    try:
        return RunMetadata.model_validate(data)
    except PydanticValidationError as exc:
        raise MetadataError(path, f"Invalid metadata file: {exc}") from exc


def next_metadata(
    previous: RunMetadata | None, started_at: datetime, finished_at: datetime
) -> RunMetadata:
    """Build the record for the current run, nesting ``previous`` under it.

    History is never pruned, so the sidecar grows by one level every run.
    """
    return RunMetadata(
        upload_start_time=started_at,
        upload_end_time=finished_at,
        previous=previous,
    )


def render_metadata(metadata: RunMetadata) -> str:
    """Serialize metadata exactly as ``save_metadata`` writes it."""
    data = metadata.model_dump(mode="json", by_alias=True, exclude_none=True)
    return json.dumps(data, indent="\t")


def temp_path_for(path: Path) -> Path:
    """Return the scratch file ``save_metadata`` writes before renaming."""
    return path.with_name(path.name + ".tmp")


def save_metadata(path: Path, metadata: RunMetadata) -> int:
    """Atomically overwrite the sidecar at ``path``. Returns the bytes written.

    The content is written to a ``.tmp`` sibling first and then renamed over
    the sidecar, so a crash mid-write never leaves a truncated file. A failed
    write removes the ``.tmp`` sibling before re-raising.
    """
    contents = render_metadata(metadata).encode("utf-8")
    tmp = temp_path_for(path)
    try:
        with open(tmp, "wb") as fh:
            fh.write(contents)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp, path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise
    logger.debug("Wrote metadata file %s (%d bytes)", path, len(contents))
    return len(contents)
