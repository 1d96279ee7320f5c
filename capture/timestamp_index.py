"""Ordered mapping from time stamps to frame indices."""

from __future__ import annotations

from bisect import bisect_right
from typing import Iterator, List, Tuple

from exceptions import StateError


class TimestampIndex:
    """Append-only index of ``(time_stamp, frame_index)`` pairs.

    Keys never decrease. Several entries may share a key, in which case
    lookups resolve to the most recently appended one.
    """

    def __init__(self) -> None:
        self._stamps: List[int] = []
        self._indices: List[int] = []

    def __len__(self) -> int:
        return len(self._stamps)

    def __iter__(self) -> Iterator[Tuple[int, int]]:
        return iter(zip(self._stamps, self._indices))

    def append(self, time_stamp: int, frame_index: int) -> None:
        """Register a frame.

        Raises:
            StateError: If ``time_stamp`` is older than the last registered one
        """
        time_stamp = int(time_stamp)
        if self._stamps and time_stamp < self._stamps[-1]:
            raise StateError(
                f"Time stamps must not decrease: {time_stamp} < {self._stamps[-1]}"
            )
        self._stamps.append(time_stamp)
        self._indices.append(int(frame_index))

    def first(self) -> int:
        if not self._stamps:
            raise StateError("Timestamp index is empty")
        return self._stamps[0]

    def last(self) -> int:
        if not self._stamps:
            raise StateError("Timestamp index is empty")
        return self._stamps[-1]

    def position(self, time_stamp: int) -> int:
        """Position of the greatest key lower or equal to ``time_stamp``."""
        if not self._stamps:
            raise StateError("No frames found in the stream")
        pos = bisect_right(self._stamps, time_stamp) - 1
        if pos < 0:
            raise StateError(
                f"Asking for frames in the past is not supported "
                f"({time_stamp} < {self._stamps[0]})"
            )
        return pos

    def lookup(self, time_stamp: int) -> int:
        """Frame index of the greatest key lower or equal to ``time_stamp``.

        Raises:
            StateError: If the index is empty or ``time_stamp`` is before the
                first key
        """
        return self._indices[self.position(time_stamp)]

    def time_stamp_at(self, position: int) -> int:
        return self._stamps[position]

    def frame_index_at(self, position: int) -> int:
        return self._indices[position]

    def clear(self) -> None:
        self._stamps.clear()
        self._indices.clear()


__all__ = ["TimestampIndex"]
