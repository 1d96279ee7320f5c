"""Shared data contracts for calibrated stream monitoring."""

from .types import (
    CalibratedImage,
    CameraMetaInformation,
    Frame,
    FrameEntry,
    IntrinsicParameters,
    Pose,
    VideoMetaInformation,
)

__all__ = [
    "CalibratedImage",
    "CameraMetaInformation",
    "Frame",
    "FrameEntry",
    "IntrinsicParameters",
    "Pose",
    "VideoMetaInformation",
]
