"""Core data contracts for capture, calibration and replay."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Optional, Tuple


@dataclass(frozen=True)
class Frame:
    camera_id: str
    frame_index: int
    t_capture_us: int
    image: Any
    width: int
    height: int


@dataclass(frozen=True)
class IntrinsicParameters:
    """Optics and sensor properties of a camera.

    Attributes:
        focal_x: Focal length along x [px]
        focal_y: Focal length along y [px]
        center_x: Principal point x [px]
        center_y: Principal point y [px]
        img_width: Image width [px]
        img_height: Image height [px]
        distortion: Distortion coefficients in OpenCV order (k1, k2, p1, p2, k3, ...)
    """

    focal_x: float
    focal_y: float
    center_x: float
    center_y: float
    img_width: int
    img_height: int
    distortion: Tuple[float, ...] = ()


@dataclass(frozen=True)
class Pose:
    """Camera pose in the field referential.

    Attributes:
        rotation: Rodrigues rotation vector
        translation: Translation vector
    """

    rotation: Tuple[float, ...]
    translation: Tuple[float, ...]


@dataclass(frozen=True)
class CameraMetaInformation:
    camera_parameters: Optional[IntrinsicParameters] = None
    pose: Optional[Pose] = None

    def has_camera_parameters(self) -> bool:
        return self.camera_parameters is not None

    def has_pose(self) -> bool:
        return self.pose is not None

    def is_fully_specified(self) -> bool:
        return self.has_camera_parameters() and self.has_pose()


@dataclass(frozen=True)
class FrameEntry:
    time_stamp: int
    pose: Optional[Pose] = None


@dataclass(frozen=True)
class VideoMetaInformation:
    """Everything known about a stream apart from the images themselves.

    Attributes:
        camera_parameters: Stream-wide intrinsic parameters
        default_pose: Pose used by frames without their own pose
        frames: One entry per frame, ordered by capture
        time_offset: Offset from the stream clock to the wall clock [us]
    """

    camera_parameters: Optional[IntrinsicParameters] = None
    default_pose: Optional[Pose] = None
    frames: Tuple[FrameEntry, ...] = field(default_factory=tuple)
    time_offset: Optional[int] = None

    def with_frame(self, entry: FrameEntry) -> "VideoMetaInformation":
        return replace(self, frames=self.frames + (entry,))


@dataclass(frozen=True)
class CalibratedImage:
    """An image along with the calibration valid when it was captured."""

    image: Any
    camera_information: CameraMetaInformation = field(default_factory=CameraMetaInformation)

    def has_camera_parameters(self) -> bool:
        return self.camera_information.has_camera_parameters()

    def has_pose(self) -> bool:
        return self.camera_information.has_pose()

    def is_fully_specified(self) -> bool:
        return self.camera_information.is_fully_specified()

    def export_camera_parameters(self):
        """Return (camera_matrix, distortion, size) or None without intrinsics."""
        if not self.has_camera_parameters():
            return None
        from calib.camera_model import to_projection_model

        return to_projection_model(self.camera_information.camera_parameters)

    def export_pose(self):
        """Return (rvec, tvec) or None without pose."""
        if not self.has_pose():
            return None
        from calib.camera_model import to_rodrigues_pose

        return to_rodrigues_pose(self.camera_information.pose)
