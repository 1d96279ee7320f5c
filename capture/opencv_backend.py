"""OpenCV-based camera backend."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Optional

import cv2

from contracts import Frame
from exceptions import CameraConnectionError, CameraTimeoutError
from log_config.logger import get_logger

from .camera_device import CameraDevice, CameraStats
from .clock import get_time_stamp
from .timeout_utils import RetryPolicy, retry_on_failure, run_with_timeout

logger = get_logger(__name__)


@dataclass
class _Stats:
    last_frame_us: int = 0
    frames: int = 0
    dropped: int = 0
    fps_avg: float = 0.0
    fps_instant: float = 0.0


class OpenCVCamera(CameraDevice):
    """Camera read through ``cv2.VideoCapture``.

    The source is either a device index ("0", "1") or anything OpenCV can
    open as a stream (file path, URL).
    """

    def __init__(self, open_timeout_s: float = 5.0) -> None:
        self._source: Optional[str] = None
        self._capture: Optional[cv2.VideoCapture] = None
        self._stats = _Stats()
        self._open_timeout_s = open_timeout_s

    @property
    def is_open(self) -> bool:
        return self._capture is not None

    @retry_on_failure(
        policy=RetryPolicy(
            max_attempts=3,
            base_delay=0.5,
            max_delay=2.0,
            retry_on=(CameraConnectionError,),
        )
    )
    def open(self, source: str) -> None:
        """Open camera by index or path.

        Raises:
            CameraConnectionError: If the stream fails to open within timeout
        """
        source_str = str(source)
        self._source = source_str
        target = int(source_str) if source_str.isdigit() else source_str
        logger.info(f"Opening OpenCV stream '{source_str}'")

        def _open_capture() -> cv2.VideoCapture:
            capture = cv2.VideoCapture(target)
            if not capture.isOpened():
                capture.release()
                raise CameraConnectionError(
                    f"Failed to open device '{source_str}' - it may be in use or not found",
                    camera_id=source_str,
                )
            return capture

        try:
            self._capture = run_with_timeout(
                _open_capture,
                timeout_seconds=self._open_timeout_s,
                error_message=f"OpenCV stream '{source_str}' open timed out",
                camera_id=source_str,
            )
        except CameraConnectionError:
            self._capture = None
            raise
        logger.info(f"Successfully opened OpenCV stream '{source_str}'")

    def set_mode(self, width: int, height: int, fps: float) -> None:
        """Configure resolution and frame rate.

        Devices may silently ignore the request, a warning is logged when the
        applied values differ.
        """
        if self._capture is None:
            raise CameraConnectionError("Camera not opened", camera_id=self._source)

        logger.info(f"Stream '{self._source}': configuring {width}x{height} @ {fps}fps")
        self._capture.set(cv2.CAP_PROP_FRAME_WIDTH, width)
        self._capture.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
        self._capture.set(cv2.CAP_PROP_FPS, fps)

        actual_width, actual_height = self.get_size()
        if actual_width != width or actual_height != height:
            logger.warning(
                f"Stream '{self._source}': requested {width}x{height} "
                f"but got {actual_width}x{actual_height}"
            )

    def get_size(self) -> tuple[int, int]:
        if self._capture is None:
            return 0, 0
        return (
            int(self._capture.get(cv2.CAP_PROP_FRAME_WIDTH)),
            int(self._capture.get(cv2.CAP_PROP_FRAME_HEIGHT)),
        )

    def get_fps(self) -> float:
        if self._capture is None:
            return 0.0
        return float(self._capture.get(cv2.CAP_PROP_FPS))

    def read_frame(self, timeout_ms: int) -> Frame:
        if self._capture is None:
            raise CameraConnectionError("Camera not opened", camera_id=self._source)
        ok, image = self._capture.read()
        if not ok or image is None:
            self._stats.dropped += 1
            raise CameraTimeoutError(
                f"Failed to read frame from '{self._source}'", camera_id=self._source
            )

        now_us = get_time_stamp()
        if self._stats.last_frame_us:
            delta_s = (now_us - self._stats.last_frame_us) / 1e6
            if delta_s > 0:
                self._stats.fps_instant = 1.0 / delta_s
                self._stats.fps_avg = (
                    (self._stats.fps_avg * self._stats.frames) + self._stats.fps_instant
                ) / (self._stats.frames + 1)
        self._stats.frames += 1
        self._stats.last_frame_us = now_us
        return Frame(
            camera_id=self._source or "0",
            frame_index=self._stats.frames,
            t_capture_us=now_us,
            image=image,
            width=image.shape[1],
            height=image.shape[0],
        )

    def get_stats(self) -> CameraStats:
        return CameraStats(
            fps_avg=self._stats.fps_avg,
            fps_instant=self._stats.fps_instant,
            frames=self._stats.frames,
            dropped_frames=self._stats.dropped,
        )

    def close(self) -> None:
        """Close camera and release resources. Safe to call multiple times."""
        if self._capture is None:
            logger.debug(f"Stream '{self._source}': already closed")
            return

        logger.info(f"Stream '{self._source}': closing")
        capture = self._capture
        self._capture = None
        try:
            run_with_timeout(
                capture.release,
                timeout_seconds=2.0,
                error_message=f"Stream '{self._source}' release timed out",
                camera_id=self._source,
            )
        except CameraConnectionError as e:
            # The device is unusable either way, keep closing the session
            logger.error(f"Stream '{self._source}': error during close: {e}")
            return
        time.sleep(0.05)
        logger.info(f"Stream '{self._source}': closed successfully")
