"""Shared test fixtures for backup-folder."""

from __future__ import annotations

import os
import threading
import time
from typing import TYPE_CHECKING

import pytest

from backup_folder.config import Settings

if TYPE_CHECKING:
    from pathlib import Path


class RecordingStore:
    """ObjectStore fake that records every put and can fail on demand.

    ``failures`` maps a key to the number of times its put should raise
    before succeeding; a negative count fails forever.
    """

    def __init__(self, failures: dict[str, int] | None = None, delay: float = 0.0) -> None:
        self.calls: list[tuple[Path, str]] = []
        self.contents: dict[str, bytes] = {}
        self.active = 0
        self.peak = 0
        self._failures = dict(failures or {})
        self._delay = delay
        self._lock = threading.Lock()

    @property
    def keys(self) -> list[str]:
        return [key for _, key in self.calls]

    def attempts(self, key: str) -> int:
        return self.keys.count(key)

    def put(self, local_path: Path, key: str) -> None:
        with self._lock:
            self.calls.append((local_path, key))
            self.active += 1
            self.peak = max(self.peak, self.active)
            remaining = self._failures.get(key, 0)
            if remaining > 0:
                self._failures[key] = remaining - 1
        try:
            if self._delay:
                time.sleep(self._delay)
            if remaining != 0:
                raise ConnectionError(f"simulated failure uploading {key}")
            with self._lock:
                self.contents[key] = local_path.read_bytes()
        finally:
            with self._lock:
                self.active -= 1


def write_file(root: Path, rel: str, content: str = "data", mtime: float | None = None) -> Path:
    """Create ``root/rel`` (with parents) and optionally set its mtime."""
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path


@pytest.fixture
def store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(_env_file=None, concurrency=4, max_attempts=3)  # type: ignore[call-arg]


@pytest.fixture
def source_dir(tmp_path: Path) -> Path:
    source = tmp_path / "source"
    source.mkdir()
    return source
