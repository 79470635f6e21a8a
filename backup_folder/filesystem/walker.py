"""Lazy depth-first directory walk."""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING

from backup_folder.models.upload import FileRecord

if TYPE_CHECKING:
    from collections.abc import Iterator


def walk_files(root: Path) -> Iterator[FileRecord]:
    """Yield a FileRecord for every regular file under ``root``.

    Subdirectories are descended into as soon as they are met, so the order
    matches a recursive walk. Symlinks (to files or directories), sockets,
    FIFOs and device nodes are skipped.

    Raises:
        OSError: If ``root`` or any subdirectory cannot be opened. The walk
            does not skip unreadable directories.
    """
    stack = [os.scandir(root)]
    try:
        while stack:
            entry = next(stack[-1], None)
            if entry is None:
                stack.pop().close()
                continue
            if entry.is_dir(follow_symlinks=False):
                stack.append(os.scandir(entry.path))
            elif entry.is_file(follow_symlinks=False):
                st = entry.stat(follow_symlinks=False)
                yield FileRecord(path=Path(entry.path), size=st.st_size, mtime=st.st_mtime)
    finally:
        for it in stack:
            it.close()
