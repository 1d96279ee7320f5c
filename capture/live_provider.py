"""Live acquisition from a camera device."""

from __future__ import annotations

from collections import deque
from dataclasses import replace
from pathlib import Path
from typing import Callable, Deque, List, Optional, Tuple

import cv2
import numpy as np

from contracts import Frame, FrameEntry, VideoMetaInformation
from exceptions import CameraConnectionError, CameraTimeoutError, FormatError, StateError
from log_config.logger import get_logger
from record.meta_information import save_meta_information
from record.video_writer import open_video_writer

from .camera_device import CameraDevice
from .clock import get_time_stamp, steady_to_system_offset
from .stream_provider import StreamProvider
from .timeout_utils import RetryPolicy

logger = get_logger(__name__)

DEFAULT_HISTORY_SIZE = 8


class LiveStreamProvider(StreamProvider):
    """Frames read from a camera device and stamped on reception.

    Only the latest ``history_size`` images are kept in memory. When
    ``output_prefix`` is provided, every frame is also written to
    ``<output_prefix>.avi`` and the meta information to
    ``<output_prefix>.json`` on close.
    """

    def __init__(
        self,
        device: CameraDevice,
        source: str,
        name: str = "",
        output_prefix: Optional[str] = None,
        history_size: int = DEFAULT_HISTORY_SIZE,
        timeout_ms: int = 1000,
        retry_policy: Optional[RetryPolicy] = None,
        fps: Optional[float] = None,
        clock: Callable[[], int] = get_time_stamp,
    ) -> None:
        super().__init__(name or str(source))
        if history_size < 1:
            raise ValueError(f"history_size must be at least 1 (got {history_size})")
        self._device = device
        self._source = str(source)
        self._output_prefix = output_prefix
        self._timeout_ms = timeout_ms
        self._retry_policy = retry_policy or RetryPolicy(
            max_attempts=5, base_delay=0.01, max_delay=0.1, retry_on=(CameraTimeoutError,)
        )
        self._fps = fps
        self._clock = clock
        self._history: Deque[Tuple[int, np.ndarray]] = deque(maxlen=history_size)
        # Appended per frame, the frozen meta information is built on demand
        self._frames: List[FrameEntry] = []
        self._writer: Optional[cv2.VideoWriter] = None
        self._disconnected = False
        self._closed = False

        if not self._device.is_open:
            self._device.open(self._source)
        logger.info(f"Live stream '{self.name}' started on '{self._source}'")

    @property
    def history_size(self) -> int:
        return self._history.maxlen or 0

    def restart_stream(self) -> None:
        raise StateError(f"Restarting live stream '{self.name}' makes no sense")

    def update(self) -> None:
        self._acquire()

    def get_next_img(self) -> np.ndarray:
        return self._acquire()

    def is_stream_finished(self) -> bool:
        return self._disconnected

    def is_live(self) -> bool:
        return True

    def reconnect(self) -> None:
        """Close and reopen the device.

        Raises:
            CameraConnectionError: If the device cannot be opened again, the
                stream is then finished
        """
        logger.warning(f"Live stream '{self.name}': reconnecting to '{self._source}'")
        self._device.close()
        try:
            self._device.open(self._source)
        except CameraConnectionError:
            self._disconnected = True
            logger.error(f"Live stream '{self.name}': device '{self._source}' is lost")
            raise
        logger.info(f"Live stream '{self.name}': reconnected")

    def _read_frame(self) -> Frame:
        try:
            return self._retry_policy.run(self._device.read_frame, self._timeout_ms)
        except CameraConnectionError as e:
            logger.warning(f"Live stream '{self.name}': connection error: {e}")
            self.reconnect()
            return self._retry_policy.run(self._device.read_frame, self._timeout_ms)

    def _acquire(self) -> np.ndarray:
        if self._closed or self._disconnected:
            raise StateError(f"Live stream '{self.name}' is finished")
        frame = self._read_frame()
        image = frame.image
        self._check_size(image)

        time_stamp = int(self._clock())
        if len(self._index) and time_stamp <= self.get_end():
            # Recorded stamps must stay strictly increasing to be replayed
            time_stamp = self.get_end() + 1
        frame_index = len(self._frames)
        self._frames.append(FrameEntry(time_stamp=time_stamp))
        self._index.append(time_stamp, frame_index)
        self._history.append((frame_index, image))

        if self._output_prefix is not None:
            self._write(image)
        return image

    def get_meta_information(self) -> VideoMetaInformation:
        return replace(self._meta, frames=tuple(self._frames))

    def _check_size(self, image: np.ndarray) -> None:
        params = self._meta.camera_parameters
        if params is None:
            return
        height, width = image.shape[:2]
        if (params.img_width, params.img_height) != (width, height):
            raise FormatError(
                f"Mismatch of sizes for '{self.name}': expecting "
                f"{params.img_width}*{params.img_height}, stream size {width}*{height}"
            )

    def _write(self, image: np.ndarray) -> None:
        if self._writer is None:
            height, width = image.shape[:2]
            fps = self._fps or self._device.get_stats().fps_avg or 30.0
            self._writer = open_video_writer(
                Path(f"{self._output_prefix}.avi"), width, height, fps
            )
        if image.ndim == 2:
            image = cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
        self._writer.write(image)

    def _read_image(self, index: int) -> np.ndarray:
        for frame_index, image in self._history:
            if frame_index == index:
                return image
        raise StateError(
            f"Frame {index} of '{self.name}' is no longer available, "
            f"only the last {self.history_size} frames are kept"
        )

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._writer is not None:
            self._writer.release()
            self._writer = None
        if self._output_prefix is not None:
            if self._meta.time_offset is None:
                self._meta = replace(self._meta, time_offset=steady_to_system_offset())
            save_meta_information(Path(f"{self._output_prefix}.json"), self.get_meta_information())
        self._device.close()
        logger.info(f"Live stream '{self.name}' closed after {len(self._index)} frames")


__all__ = ["DEFAULT_HISTORY_SIZE", "LiveStreamProvider"]
