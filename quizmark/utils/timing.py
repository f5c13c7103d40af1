"""
Stopwatch and duration formatting for engine and pipeline logs.
"""

from __future__ import annotations

import time


class Timer:
    """Elapsed-time stopwatch started on creation."""

    def __init__(self):
        self._start = time.perf_counter()

    def reset(self) -> None:
        self._start = time.perf_counter()

    @property
    def elapsed(self) -> float:
        return time.perf_counter() - self._start

    def __str__(self) -> str:
        return format_duration(self.elapsed)


def format_duration(seconds: float) -> str:
    """350ms, 4.20s, 2m 5.0s"""
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    if seconds < 60:
        return f"{seconds:.2f}s"
    minutes = int(seconds // 60)
    return f"{minutes}m {seconds % 60:.1f}s"
