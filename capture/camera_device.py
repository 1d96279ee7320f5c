"""Camera abstraction for live capture backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from contracts import Frame


@dataclass(frozen=True)
class CameraStats:
    fps_avg: float
    fps_instant: float
    frames: int
    dropped_frames: int


class CameraDevice(ABC):
    @abstractmethod
    def open(self, source: str) -> None:
        """Open a camera by index, file path or stream URL."""

    @abstractmethod
    def set_mode(self, width: int, height: int, fps: float) -> None:
        """Configure resolution and frame rate."""

    @abstractmethod
    def read_frame(self, timeout_ms: int) -> Frame:
        """Read a frame or raise CameraTimeoutError."""

    @abstractmethod
    def get_stats(self) -> CameraStats:
        """Return capture diagnostics."""

    @abstractmethod
    def close(self) -> None:
        """Close the camera."""

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """Whether frames can currently be read."""
