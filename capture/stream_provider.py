"""Common contract of live and replayed image streams."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Any

import numpy as np

from contracts import (
    CalibratedImage,
    CameraMetaInformation,
    IntrinsicParameters,
    Pose,
    VideoMetaInformation,
)
from log_config.logger import get_logger

from .timestamp_index import TimestampIndex

logger = get_logger(__name__)


def resolve_camera_information(meta: VideoMetaInformation, index: int) -> CameraMetaInformation:
    """Calibration of frame ``index``.

    The frame's own pose wins over the stream default pose. Intrinsic
    parameters are stream-wide.
    """
    pose = None
    if 0 <= index < len(meta.frames):
        pose = meta.frames[index].pose
    if pose is None:
        pose = meta.default_pose
    return CameraMetaInformation(camera_parameters=meta.camera_parameters, pose=pose)


class StreamProvider(ABC):
    """Source of timestamped images along with their calibration.

    Subclasses register every frame in ``self._index`` (time stamp to frame
    index) and keep ``self._meta`` up to date. Per-frame poses are read from
    ``self._meta.frames``, subclasses that acquire frames without poses may
    keep their entries elsewhere and override :meth:`get_meta_information`.
    """

    def __init__(self, name: str = "") -> None:
        self._name = name
        self._meta = VideoMetaInformation()
        self._index = TimestampIndex()

    @property
    def name(self) -> str:
        return self._name

    @abstractmethod
    def restart_stream(self) -> None:
        """Go back to the first frame of the stream."""

    @abstractmethod
    def update(self) -> None:
        """Acquire pending frames, if any."""

    @abstractmethod
    def get_next_img(self) -> np.ndarray:
        """Advance by exactly one frame and return its image."""

    @abstractmethod
    def is_stream_finished(self) -> bool:
        """Whether no more frames can be obtained."""

    @abstractmethod
    def is_live(self) -> bool:
        """Whether frames come from a device in real time."""

    @abstractmethod
    def _read_image(self, index: int) -> np.ndarray:
        """Image of frame ``index``."""

    def get_calibrated_image(self, time_stamp: int, system_clock: bool = False) -> CalibratedImage:
        """Image captured at ``time_stamp`` with its calibration.

        The most recent frame captured at or before ``time_stamp`` is used.

        Args:
            time_stamp: Query time [us]
            system_clock: Query is expressed on the system clock, the stream
                offset is removed before lookup

        Raises:
            StateError: If the stream is empty or ``time_stamp`` is before the
                first frame
        """
        if system_clock:
            time_stamp -= self.get_offset()
        index = self._index.lookup(time_stamp)
        image = self._read_image(index)
        return CalibratedImage(image=image, camera_information=resolve_camera_information(self._meta, index))

    def get_start(self) -> int:
        return self._index.first() if len(self._index) else 0

    def get_end(self) -> int:
        return self._index.last() if len(self._index) else 0

    def get_nb_frames(self) -> int:
        return len(self._index)

    def set_intrinsic(self, params: IntrinsicParameters) -> None:
        self._meta = replace(self._meta, camera_parameters=params)

    def set_default_pose(self, pose: Pose) -> None:
        self._meta = replace(self._meta, default_pose=pose)

    def set_offset(self, offset: int) -> None:
        self._meta = replace(self._meta, time_offset=int(offset))

    def get_offset(self) -> int:
        if self._meta.time_offset is None:
            return 0
        return self._meta.time_offset

    def get_meta_information(self) -> VideoMetaInformation:
        return self._meta

    def close(self) -> None:
        return None

    def __enter__(self) -> "StreamProvider":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self._name!r}, frames={len(self._index)})"


__all__ = ["StreamProvider", "resolve_camera_information"]
