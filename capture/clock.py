"""Time sources shared by providers and message streams.

All time stamps are integer microseconds.
"""

from __future__ import annotations

import time


def get_time_stamp() -> int:
    """Monotonic clock used to stamp live frames [us]."""
    return time.monotonic_ns() // 1000


def get_wall_time_stamp() -> int:
    """System clock, microseconds since epoch."""
    return time.time_ns() // 1000


def steady_to_system_offset() -> int:
    """Offset to add to a monotonic stamp to obtain a system stamp [us]."""
    return get_wall_time_stamp() - get_time_stamp()


__all__ = ["get_time_stamp", "get_wall_time_stamp", "steady_to_system_offset"]
