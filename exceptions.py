"""Custom exception classes for field monitoring."""

from __future__ import annotations

from typing import Optional


class MonitoringError(Exception):
    """Base exception for all monitoring errors."""

    pass


class FormatError(MonitoringError):
    """Raised when data does not have the expected structure.

    Malformed poses or intrinsics, duplicated timestamps and missing
    configuration keys all end up here. Never retried.
    """

    pass


class ConfigError(FormatError):
    """Base exception for configuration errors."""

    pass


class InvalidConfigError(ConfigError):
    """Raised when configuration file is invalid or corrupted."""

    pass


class ConfigValidationError(ConfigError):
    """Raised when configuration fails schema validation."""

    def __init__(self, message: str, validation_errors: Optional[list] = None):
        self.validation_errors = validation_errors or []
        super().__init__(message)


class StateError(MonitoringError):
    """Raised when an operation is not allowed in the current state.

    Typical causes are asking for frames in the past, restarting a live
    stream or advancing a finished stream.
    """

    pass


class NotFoundError(MonitoringError, KeyError):
    """Raised when a named element (point, provider) does not exist."""

    def __str__(self) -> str:
        # KeyError quotes its argument, keep the message readable
        return str(self.args[0]) if self.args else ""


class StreamIOError(MonitoringError, IOError):
    """Raised when a file or video stream cannot be opened, read or written."""

    pass


class FileWriteError(StreamIOError):
    """Raised when file write operation fails."""

    pass


class HardwareError(MonitoringError):
    """Base exception for acquisition hardware errors."""

    pass


class CameraError(HardwareError):
    """Base exception for camera-related errors."""

    def __init__(self, message: str, camera_id: Optional[str] = None):
        self.camera_id = camera_id
        super().__init__(message)


class CameraConnectionError(CameraError):
    """Raised when camera connection fails or is lost."""

    pass


class CameraTimeoutError(CameraError):
    """Raised when a frame could not be retrieved in time."""

    pass


class CameraNotFoundError(CameraError):
    """Raised when a specified camera is not found."""

    pass
