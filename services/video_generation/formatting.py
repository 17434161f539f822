"""Display formatting for costs, durations and timestamps."""

import time
from datetime import datetime
from typing import Optional


def format_cost(cost: Optional[float]) -> str:
    """USD with 4 decimals, e.g. "$0.1234"."""
    if cost is None:
        return "$0.0000"
    return f"${cost:.4f}"


def format_duration(seconds: Optional[float]) -> str:
    """MM:SS, e.g. "01:30"."""
    if seconds is None:
        return "00:00"
    minutes = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{minutes:02d}:{secs:02d}"


def format_timestamp(timestamp: Optional[float]) -> str:
    if timestamp is None:
        return "—"
    return datetime.fromtimestamp(timestamp).strftime("%Y-%m-%d %H:%M:%S")


def format_elapsed_time(start_time: Optional[float], now: Optional[float] = None) -> str:
    """Whole seconds since start_time, e.g. "5s"."""
    if start_time is None:
        return "—"
    current = time.time() if now is None else now
    return f"{max(0, int(current - start_time))}s"
