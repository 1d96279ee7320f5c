"""Conversions between calibration contracts and OpenCV projection inputs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import cv2
import numpy as np

from contracts import CameraMetaInformation, IntrinsicParameters, Pose
from exceptions import FormatError, StateError

ImageSize = Tuple[int, int]


def to_projection_model(
    intrinsics: IntrinsicParameters,
) -> Tuple[np.ndarray, np.ndarray, ImageSize]:
    """Build the camera matrix, distortion row and image size.

    Args:
        intrinsics: Intrinsic parameters of the camera

    Returns:
        Tuple of (3x3 camera matrix, 1xN distortion coefficients, (width, height))
    """
    camera_matrix = np.zeros((3, 3), dtype=np.float64)
    camera_matrix[0, 0] = intrinsics.focal_x
    camera_matrix[1, 1] = intrinsics.focal_y
    camera_matrix[0, 2] = intrinsics.center_x
    camera_matrix[1, 2] = intrinsics.center_y
    camera_matrix[2, 2] = 1.0
    distortion = np.array(intrinsics.distortion, dtype=np.float64).reshape(1, -1)
    size = (int(intrinsics.img_width), int(intrinsics.img_height))
    return camera_matrix, distortion, size


def from_projection_model(
    camera_matrix: np.ndarray,
    distortion: Optional[np.ndarray],
    size: ImageSize,
) -> IntrinsicParameters:
    """Inverse of :func:`to_projection_model`."""
    camera_matrix = np.asarray(camera_matrix, dtype=np.float64)
    coeffs: Tuple[float, ...] = ()
    if distortion is not None:
        coeffs = tuple(float(c) for c in np.asarray(distortion, dtype=np.float64).ravel())
    return IntrinsicParameters(
        focal_x=float(camera_matrix[0, 0]),
        focal_y=float(camera_matrix[1, 1]),
        center_x=float(camera_matrix[0, 2]),
        center_y=float(camera_matrix[1, 2]),
        img_width=int(size[0]),
        img_height=int(size[1]),
        distortion=coeffs,
    )


def to_rodrigues_pose(pose: Pose) -> Tuple[np.ndarray, np.ndarray]:
    """Convert a pose to OpenCV (rvec, tvec) column vectors.

    Raises:
        FormatError: If rotation or translation does not have 3 components
    """
    if len(pose.rotation) != 3:
        raise FormatError(
            f"Only Rodrigues rotation vectors are supported (got {len(pose.rotation)} components)"
        )
    if len(pose.translation) != 3:
        raise FormatError(
            f"Size of translation in pose is not valid (got {len(pose.translation)}, only 3 is accepted)"
        )
    rvec = np.array(pose.rotation, dtype=np.float64).reshape(3, 1)
    tvec = np.array(pose.translation, dtype=np.float64).reshape(3, 1)
    return rvec, tvec


def from_rodrigues_pose(rvec: np.ndarray, tvec: np.ndarray) -> Pose:
    rvec = np.asarray(rvec, dtype=np.float64).ravel()
    tvec = np.asarray(tvec, dtype=np.float64).ravel()
    if rvec.size != 3 or tvec.size != 3:
        raise FormatError(f"Expecting 3 components for rvec and tvec (got {rvec.size}, {tvec.size})")
    return Pose(
        rotation=tuple(float(v) for v in rvec),
        translation=tuple(float(v) for v in tvec),
    )


def project_points(
    points: Sequence[Sequence[float]] | np.ndarray,
    rvec: np.ndarray,
    tvec: np.ndarray,
    camera_matrix: np.ndarray,
    distortion: Optional[np.ndarray],
) -> np.ndarray:
    """Project 3D field points on the image, returns an (N, 2) array."""
    object_points = np.asarray(points, dtype=np.float64).reshape(-1, 1, 3)
    if object_points.shape[0] == 0:
        return np.zeros((0, 2), dtype=np.float64)
    dist = None
    if distortion is not None and np.asarray(distortion).size > 0:
        dist = np.asarray(distortion, dtype=np.float64)
    img_points, _ = cv2.projectPoints(
        object_points,
        np.asarray(rvec, dtype=np.float64),
        np.asarray(tvec, dtype=np.float64),
        np.asarray(camera_matrix, dtype=np.float64),
        dist,
    )
    return img_points.reshape(-1, 2)


def project_point(
    point: Sequence[float],
    rvec: np.ndarray,
    tvec: np.ndarray,
    camera_matrix: np.ndarray,
    distortion: Optional[np.ndarray],
) -> Tuple[float, float]:
    u, v = project_points([point], rvec, tvec, camera_matrix, distortion)[0]
    return float(u), float(v)


@dataclass(frozen=True)
class CameraModel:
    """Pinhole camera with distortion placed in the field referential."""

    camera_matrix: np.ndarray
    distortion: np.ndarray
    rvec: np.ndarray
    tvec: np.ndarray
    img_size: ImageSize

    @classmethod
    def from_camera_information(cls, camera_information: CameraMetaInformation) -> "CameraModel":
        if not camera_information.is_fully_specified():
            raise StateError("Camera information is not fully specified (intrinsics and pose required)")
        camera_matrix, distortion, size = to_projection_model(camera_information.camera_parameters)
        rvec, tvec = to_rodrigues_pose(camera_information.pose)
        return cls(camera_matrix, distortion, rvec, tvec, size)

    def project(self, xyz: Sequence[float]) -> np.ndarray:
        return np.array(
            project_point(xyz, self.rvec, self.tvec, self.camera_matrix, self.distortion),
            dtype=float,
        )

    def project_many(self, points: Sequence[Sequence[float]] | np.ndarray) -> np.ndarray:
        return project_points(points, self.rvec, self.tvec, self.camera_matrix, self.distortion)

    def depths(self, points: Sequence[Sequence[float]] | np.ndarray) -> np.ndarray:
        """Depth of field points along the optical axis [m].

        Points with a non-positive depth are behind the camera, their
        projection is mirrored into the image and must not be used.
        """
        rotation, _ = cv2.Rodrigues(np.asarray(self.rvec, dtype=np.float64))
        object_points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        camera_points = object_points @ rotation.T + np.asarray(self.tvec, dtype=np.float64).reshape(1, 3)
        return camera_points[:, 2]

    def contains(self, uv: Sequence[float]) -> bool:
        """Strict containment, points on the image border are outside."""
        width, height = self.img_size
        u, v = float(uv[0]), float(uv[1])
        return 0 < u < width and 0 < v < height


def field_to_img(point: Sequence[float], camera_information: CameraMetaInformation) -> Tuple[float, float]:
    """Project a point of the field referential using full camera information.

    Raises:
        StateError: If intrinsics or pose are missing
    """
    model = CameraModel.from_camera_information(camera_information)
    u, v = model.project(point)
    return float(u), float(v)
