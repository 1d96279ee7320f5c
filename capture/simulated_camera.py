"""Simulated camera backend for running sessions without hardware."""

from __future__ import annotations

import time
from typing import Optional

import numpy as np

from contracts import Frame
from exceptions import CameraConnectionError

from .camera_device import CameraDevice, CameraStats
from .clock import get_time_stamp


class SimulatedCamera(CameraDevice):
    """Produces BGR frames whose pixels all hold ``frame_index % 256``.

    With ``fps`` set, reads are paced to the requested rate.
    """

    def __init__(self, width: int = 640, height: int = 480, fps: float = 0.0) -> None:
        self._source: Optional[str] = None
        self._width = width
        self._height = height
        self._fps = fps
        self._frame_index = 0
        self._last_frame_time = time.monotonic()
        self._opened = False

    @property
    def is_open(self) -> bool:
        return self._opened

    def open(self, source: str) -> None:
        self._source = str(source)
        self._opened = True

    def set_mode(self, width: int, height: int, fps: float) -> None:
        self._width = width
        self._height = height
        self._fps = fps

    def read_frame(self, timeout_ms: int) -> Frame:
        if not self._opened:
            raise CameraConnectionError("Camera not opened", camera_id=self._source)
        if self._fps > 0:
            target_delay = 1.0 / self._fps
            elapsed = time.monotonic() - self._last_frame_time
            if elapsed < target_delay:
                time.sleep(target_delay - elapsed)
        self._last_frame_time = time.monotonic()
        self._frame_index += 1

        image = np.full((self._height, self._width, 3), self._frame_index % 256, dtype=np.uint8)
        return Frame(
            camera_id=self._source or "sim",
            frame_index=self._frame_index,
            t_capture_us=get_time_stamp(),
            image=image,
            width=self._width,
            height=self._height,
        )

    def get_stats(self) -> CameraStats:
        return CameraStats(
            fps_avg=float(self._fps),
            fps_instant=float(self._fps),
            frames=self._frame_index,
            dropped_frames=0,
        )

    def close(self) -> None:
        self._opened = False
