"""Human-readable sizes and durations for progress and summary lines."""

from __future__ import annotations

_SIZE_UNITS = ("kB", "MB", "GB", "TB", "PB", "EB", "ZB", "YB")


def format_size(num_bytes: float, decimals: int = 1) -> str:
    """Format a byte count using 1024-based units, e.g. ``1.5 MB``."""
    if abs(num_bytes) < 1024:
        return f"{int(num_bytes)} B"

    value = float(num_bytes)
    unit = -1
    scale = 10**decimals
    while True:
        value /= 1024
        unit += 1
        if round(abs(value) * scale) / scale < 1024 or unit == len(_SIZE_UNITS) - 1:
            break
    return f"{value:.{decimals}f} {_SIZE_UNITS[unit]}"


def format_duration(seconds: float) -> str:
    """Format elapsed seconds as e.g. ``1h 2m 3.40s``; zero components are omitted."""
    years, rest = divmod(seconds, 31_536_000)
    days, rest = divmod(rest, 86_400)
    hours, rest = divmod(rest, 3_600)
    minutes, secs = divmod(rest, 60)

    parts = [
        f"{int(value)}{suffix}"
        for value, suffix in ((years, "y"), (days, "d"), (hours, "h"), (minutes, "m"))
        if value
    ]
    parts.append(f"{secs:.2f}s")
    return " ".join(parts)
