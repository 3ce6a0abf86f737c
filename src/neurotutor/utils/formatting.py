"""Human-readable durations for CLI output."""

from __future__ import annotations


def format_duration(seconds: float) -> str:
    """43 -> "43 seconds", 720 -> "12 minutes", 4680 -> "1.3 hours"."""
    if seconds < 60:
        return f"{round(seconds)} seconds"
    minutes = seconds / 60
    if minutes < 60:
        return f"{round(minutes)} minutes"
    return f"{minutes / 60:.1f} hours"


def format_average_time(seconds: float) -> str:
    if seconds < 60:
        return f"{round(seconds)}s"
    minutes = seconds / 60
    if minutes < 60:
        return f"{round(minutes)}m"
    return f"{minutes / 60:.1f}h"
