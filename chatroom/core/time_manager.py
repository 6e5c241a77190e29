"""
TimeManager - lightweight time utilities for consistent timing across modules.
"""

import time
from datetime import datetime
from typing import Callable, Optional

# Clock returning epoch milliseconds; injectable so services can be driven in tests
Clock = Callable[[], int]


def now_ms() -> int:
    """Return system time in epoch milliseconds."""
    return int(time.time() * 1000)


def clock_time(timestamp_ms: Optional[int] = None) -> str:
    """Format a timestamp as zero-padded local HH:MM:SS (defaults to now)."""
    ts = now_ms() if timestamp_ms is None else timestamp_ms
    return datetime.fromtimestamp(ts / 1000).strftime("%H:%M:%S")


def is_stale(last_status_ms: int, current_ms: int, threshold_ms: int) -> bool:
    """True once more than threshold_ms has elapsed since last_status_ms."""
    return (current_ms - last_status_ms) > threshold_ms
