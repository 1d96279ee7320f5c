"""Capture module."""

from .camera_device import CameraDevice, CameraStats
from .live_provider import LiveStreamProvider
from .opencv_backend import OpenCVCamera
from .replay_provider import ReplayStreamProvider
from .simulated_camera import SimulatedCamera
from .stream_provider import StreamProvider, resolve_camera_information
from .timestamp_index import TimestampIndex

__all__ = [
    "CameraDevice",
    "CameraStats",
    "LiveStreamProvider",
    "OpenCVCamera",
    "ReplayStreamProvider",
    "SimulatedCamera",
    "StreamProvider",
    "TimestampIndex",
    "resolve_camera_information",
]
