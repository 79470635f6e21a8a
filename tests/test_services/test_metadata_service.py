"""Tests for the metadata sidecar store."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING
from unittest.mock import patch

import pytest

from backup_folder.exceptions import MetadataError
from backup_folder.schemas.metadata import RunMetadata
from backup_folder.services.metadata_service import (
    load_metadata,
    next_metadata,
    render_metadata,
    save_metadata,
    temp_path_for,
)

if TYPE_CHECKING:
    from pathlib import Path

START = datetime(2026, 3, 1, 8, 0, 0, tzinfo=timezone.utc)
END = START + timedelta(minutes=5)


class TestLoadMetadata:
    def test_absent_file_is_first_run(self, tmp_path: Path) -> None:
        assert load_metadata(tmp_path / ".backup-folder.json") is None

    def test_reads_timestamps(self, tmp_path: Path) -> None:
        path = tmp_path / ".backup-folder.json"
        path.write_text(
            json.dumps(
                {
                    "uploadStartTime": "2026-03-01T08:00:00.000Z",
                    "uploadEndTime": "2026-03-01T08:05:00.000Z",
                }
            )
        )

        metadata = load_metadata(path)

        assert metadata is not None
        assert metadata.upload_start_time == START
        assert metadata.upload_end_time == END
        assert metadata.previous is None

    def test_accepts_legacy_history_key(self, tmp_path: Path) -> None:
        path = tmp_path / ".backup-folder.json"
        path.write_text(
            json.dumps(
                {
                    "uploadStartTime": "2026-03-02T08:00:00Z",
                    "lastMetaData": {"uploadStartTime": "2026-03-01T08:00:00Z"},
                }
            )
        )

        metadata = load_metadata(path)

        assert metadata is not None
        assert metadata.previous is not None
        assert metadata.previous.upload_start_time == START

    def test_empty_legacy_history_is_dropped(self, tmp_path: Path) -> None:
        path = tmp_path / ".backup-folder.json"
        path.write_text(json.dumps({"uploadStartTime": "2026-03-01T08:00:00Z", "lastMetaData": {}}))

        metadata = load_metadata(path)

        assert metadata is not None
        assert metadata.previous is None

    @pytest.mark.parametrize(
        "contents",
        ["", "{not json", "[1, 2, 3]", '"2026-03-01"', "{}", '{"uploadEndTime": "2026-03-01"}'],
    )
    def test_invalid_content_is_fatal(self, tmp_path: Path, contents: str) -> None:
        path = tmp_path / ".backup-folder.json"
        path.write_text(contents)

        with pytest.raises(MetadataError) as exc_info:
            load_metadata(path)

        assert exc_info.value.path == path
        assert str(path) in str(exc_info.value)

    def test_unparseable_timestamp_is_fatal(self, tmp_path: Path) -> None:
        path = tmp_path / ".backup-folder.json"
        path.write_text(json.dumps({"uploadStartTime": "yesterday-ish"}))

        with pytest.raises(MetadataError, match="Invalid metadata file"):
            load_metadata(path)

    def test_unreadable_file_is_fatal(self, tmp_path: Path) -> None:
        path = tmp_path / ".backup-folder.json"
        path.mkdir()

        with pytest.raises(MetadataError, match="Can't read metadata file"):
            load_metadata(path)


class TestSaveMetadata:
    def test_roundtrip_preserves_history(self, tmp_path: Path) -> None:
        path = tmp_path / ".backup-folder.json"
        first = next_metadata(None, START, END)
        second = next_metadata(first, START + timedelta(days=1), END + timedelta(days=1))

        save_metadata(path, second)
        loaded = load_metadata(path)

        assert loaded is not None
        assert loaded.model_dump() == second.model_dump()
        assert loaded.history_depth() == 2

    def test_writes_human_readable_json(self, tmp_path: Path) -> None:
        path = tmp_path / ".backup-folder.json"
        size = save_metadata(path, next_metadata(None, START, END))

        raw = path.read_text()
        assert size == len(raw.encode("utf-8"))
        assert "\n\t\"uploadStartTime\"" in raw
        assert json.loads(raw) == {
            "uploadStartTime": "2026-03-01T08:00:00+00:00",
            "uploadEndTime": "2026-03-01T08:05:00+00:00",
        }

    def test_overwrites_existing_file_without_leftovers(self, tmp_path: Path) -> None:
        path = tmp_path / ".backup-folder.json"
        path.write_text("old contents that are much longer than the new ones " * 20)

        save_metadata(path, next_metadata(None, START, END))

        assert load_metadata(path) is not None
        assert sorted(p.name for p in tmp_path.iterdir()) == [".backup-folder.json"]

    def test_failed_write_removes_scratch_file(self, tmp_path: Path) -> None:
        path = tmp_path / ".backup-folder.json"
        path.write_text(json.dumps({"uploadStartTime": "2026-02-01T00:00:00Z"}))
        before = path.read_bytes()

        with (
            patch(
                "backup_folder.services.metadata_service.os.fsync",
                side_effect=OSError(28, "No space left on device"),
            ),
            pytest.raises(OSError, match="No space left"),
        ):
            save_metadata(path, next_metadata(None, START, END))

        assert not temp_path_for(path).exists()
        assert sorted(p.name for p in tmp_path.iterdir()) == [".backup-folder.json"]
        assert path.read_bytes() == before

    def test_render_matches_saved_bytes(self, tmp_path: Path) -> None:
        path = tmp_path / ".backup-folder.json"
        metadata = next_metadata(next_metadata(None, START, END), END, END)

        save_metadata(path, metadata)

        assert path.read_text() == render_metadata(metadata)


class TestNextMetadata:
    def test_history_grows_by_one_level_per_run(self) -> None:
        metadata: RunMetadata | None = None
        for day in range(4):
            started = START + timedelta(days=day)
            metadata = next_metadata(metadata, started, started + timedelta(minutes=1))

        assert metadata is not None
        assert metadata.history_depth() == 4
        assert metadata.upload_start_time == START + timedelta(days=3)
        assert metadata.previous is not None
        assert metadata.previous.upload_start_time == START + timedelta(days=2)
