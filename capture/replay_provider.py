"""Replay of recorded videos along with their meta information."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import cv2
import numpy as np

from contracts import FrameEntry, VideoMetaInformation
from exceptions import FormatError, StateError, StreamIOError
from log_config.logger import get_logger
from record.meta_information import load_meta_information

from .stream_provider import StreamProvider

logger = get_logger(__name__)

DEFAULT_FRAME_PERIOD_US = 30000


class ReplayStreamProvider(StreamProvider):
    """Serves frames of a video file by time stamp.

    Time stamps come from the meta information file when there is one,
    otherwise frames are spaced by ``frame_period_us`` starting at 0.

    Example:
        >>> with ReplayStreamProvider("match.avi", "match.json") as provider:
        ...     img = provider.get_calibrated_image(provider.get_start())
    """

    def __init__(
        self,
        video_path: Path,
        meta_information_path: Optional[Path] = None,
        frame_period_us: int = DEFAULT_FRAME_PERIOD_US,
        name: str = "",
    ) -> None:
        super().__init__(name or Path(video_path).stem)
        if frame_period_us <= 0:
            raise FormatError(f"Frame period must be positive (got {frame_period_us})")
        self._frame_period_us = int(frame_period_us)
        self._capture: Optional[cv2.VideoCapture] = None
        self._video_path = Path(video_path)
        self._cursor = 0
        # Index of the frame the decoder delivers on next read
        self._decoder_pos = 0
        self.load(video_path, meta_information_path)

    def load(self, video_path: Path, meta_information_path: Optional[Path] = None) -> None:
        """Open a video and build the index of its frames.

        Raises:
            StreamIOError: If the video or the meta information cannot be read
            FormatError: If time stamps are duplicated or decreasing, or if the
                meta information lists more frames than the video holds
        """
        self.close()
        video_path = Path(video_path)
        logger.info(f"Opening video: {video_path}")
        capture = cv2.VideoCapture(str(video_path))
        if not capture.isOpened():
            raise StreamIOError(f"Failed to open video '{video_path}'")

        try:
            nb_video_frames = self._count_frames(capture)
            if meta_information_path is not None:
                meta = load_meta_information(Path(meta_information_path))
                if len(meta.frames) > nb_video_frames:
                    raise FormatError(
                        f"Meta information has {len(meta.frames)} frames while "
                        f"'{video_path}' has {nb_video_frames}"
                    )
            else:
                meta = VideoMetaInformation(
                    frames=tuple(
                        FrameEntry(time_stamp=i * self._frame_period_us) for i in range(nb_video_frames)
                    )
                )
            self._build_index(meta)
        except (FormatError, StreamIOError):
            capture.release()
            raise

        self._video_path = video_path
        self._capture = capture
        self._meta = meta
        self._cursor = 0
        self._decoder_pos = 0
        logger.info(
            f"Loaded {len(self._index)} frames from {video_path} "
            f"[{self.get_start()}, {self.get_end()}] us"
        )

    @staticmethod
    def _count_frames(capture: cv2.VideoCapture) -> int:
        count = int(capture.get(cv2.CAP_PROP_FRAME_COUNT))
        if count > 0:
            return count
        count = 0
        while capture.grab():
            count += 1
        capture.set(cv2.CAP_PROP_POS_FRAMES, 0)
        return count

    def _build_index(self, meta: VideoMetaInformation) -> None:
        self._index.clear()
        previous: Optional[int] = None
        for i, entry in enumerate(meta.frames):
            if previous is not None:
                if entry.time_stamp == previous:
                    raise FormatError(f"Duplicated time stamp {entry.time_stamp} at frame {i}")
                if entry.time_stamp < previous:
                    raise FormatError(
                        f"Time stamps are decreasing at frame {i}: {entry.time_stamp} < {previous}"
                    )
            self._index.append(entry.time_stamp, i)
            previous = entry.time_stamp

    def restart_stream(self) -> None:
        self._cursor = 0

    def update(self) -> None:
        # Every frame is indexed at load time
        return None

    def get_next_img(self) -> np.ndarray:
        if self.is_stream_finished():
            raise StateError(f"Stream '{self.name}' is finished")
        return self._read_image(self._cursor)

    def is_stream_finished(self) -> bool:
        return self._cursor >= len(self._index)

    def is_live(self) -> bool:
        return False

    def _read_image(self, index: int) -> np.ndarray:
        if self._capture is None:
            raise StreamIOError(f"Video '{self._video_path}' is not open")
        if index != self._decoder_pos:
            if not self._capture.set(cv2.CAP_PROP_POS_FRAMES, index):
                raise StreamIOError(f"Failed to set index to {index} in video '{self._video_path}'")
        ok, image = self._capture.read()
        if not ok or image is None:
            self._decoder_pos = -1
            raise StreamIOError(f"Blank frame has been read at index {index} in '{self._video_path}'")
        self._decoder_pos = index + 1
        self._cursor = index + 1
        return image

    def close(self) -> None:
        if self._capture is not None:
            self._capture.release()
            self._capture = None
            logger.debug(f"Closed video {self._video_path}")


__all__ = ["DEFAULT_FRAME_PERIOD_US", "ReplayStreamProvider"]
