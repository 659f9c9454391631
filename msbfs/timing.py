"""Millisecond clock relative to process start, and a simple time frame."""

from __future__ import annotations

import time
from dataclasses import dataclass

_START_NS = time.perf_counter_ns()


def now() -> int:
    """Return whole milliseconds elapsed since the module was first loaded."""
    return (time.perf_counter_ns() - _START_NS) // 1_000_000


@dataclass
class TimeFrame:
    """Start and end stamps of a measured interval, in milliseconds."""

    start_time: int = 0
    end_time: int = 0
    duration: int = 0

    def start(self) -> None:
        """Record the start of the interval."""
        self.start_time = now()

    def end(self) -> None:
        """Record the end of the interval and compute its duration."""
        self.end_time = now()
        self.duration = self.end_time - self.start_time