"""Object store protocol used by the upload scheduler."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from pathlib import Path


@runtime_checkable
class ObjectStore(Protocol):
    """Destination for uploaded files.

    ``put`` is blocking and is called from worker threads; it must raise on
    failure so the retry wrapper can see it.
    """

    def put(self, local_path: Path, key: str) -> None:
        """Upload ``local_path`` under ``key`` (relative, forward slashes)."""
        ...
