"""
Wall-clock time helpers.

Every timestamp handled by the runtime is an integer count of epoch
milliseconds. The state machine never reads the clock itself; only the
periodic sampler calls ``now_ms``.
"""

from datetime import datetime, timezone
from typing import Optional


def now_ms() -> int:
    """Current wall-clock time as epoch milliseconds."""
    return int(datetime.now(timezone.utc).timestamp() * 1000)


def elapsed_whole_seconds(start_ms: int, end_ms: int) -> int:
    """
    Whole seconds elapsed between two timestamps.

    Negative spans (clock stepped backwards) count as zero.

    Args:
        start_ms: Earlier timestamp in epoch milliseconds
        end_ms: Later timestamp in epoch milliseconds

    Returns:
        Floored elapsed seconds, never negative
    """
    return max(0, end_ms - start_ms) // 1000


def ms_to_datetime(timestamp_ms: int) -> datetime:
    """Convert epoch milliseconds to an aware UTC datetime."""
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)


def format_timestamp_ms(timestamp_ms: Optional[int]) -> Optional[str]:
    """Format epoch milliseconds as ISO8601 for logging."""
    if timestamp_ms is None:
        return None
    return ms_to_datetime(timestamp_ms).isoformat()


def format_seconds(value: int) -> str:
    """Two-digit zero padded seconds for countdown display."""
    return str(value).rjust(2, "0")
