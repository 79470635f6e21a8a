"""Fixed-budget retry for a single operation."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 3


async def with_retries(
    operation: Callable[[], Awaitable[T]],
    *,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    description: str | None = None,
) -> T:
    """Await ``operation()`` up to ``max_attempts`` times.

    Each failure is logged before the next attempt. There is no delay between
    attempts. When the last attempt fails its exception is re-raised as is.

    Args:
        operation: Zero-argument coroutine function; called once per attempt.
        max_attempts: Total number of attempts, at least 1.
        description: Label used in log messages (e.g. the file being uploaded).

    Raises:
        ValueError: If ``max_attempts`` is less than 1.
    """
    if max_attempts < 1:
        msg = f"max_attempts must be >= 1, got {max_attempts}"
        raise ValueError(msg)

    label = description or getattr(operation, "__name__", "operation")
    attempt = 0
    while True:
        attempt += 1
        try:
            return await operation()
        except Exception as exc:
            logger.warning(
                "%s failed (attempt %d/%d): %s", label, attempt, max_attempts, exc
            )
            if attempt >= max_attempts:
                raise
