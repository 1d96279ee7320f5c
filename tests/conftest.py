"""Shared fixtures for the test-suite."""

from __future__ import annotations

from pathlib import Path

import cv2
import numpy as np
import pytest

from contracts import CameraMetaInformation, IntrinsicParameters, Pose


def write_test_video(path: Path, nb_frames: int, width: int = 64, height: int = 48) -> Path:
    """Write an MJPG video whose frame ``i`` is filled with ``10 * i``."""
    writer = cv2.VideoWriter(str(path), cv2.VideoWriter_fourcc(*"MJPG"), 25.0, (width, height), True)
    assert writer.isOpened(), "MJPG writer is not available"
    for i in range(nb_frames):
        writer.write(np.full((height, width, 3), 10 * i, dtype=np.uint8))
    writer.release()
    return path


@pytest.fixture
def make_video():
    return write_test_video


@pytest.fixture
def video_path(tmp_path: Path) -> Path:
    return write_test_video(tmp_path / "stream.avi", nb_frames=5)


@pytest.fixture
def intrinsics() -> IntrinsicParameters:
    return IntrinsicParameters(
        focal_x=100.0,
        focal_y=100.0,
        center_x=50.0,
        center_y=50.0,
        img_width=100,
        img_height=100,
    )


@pytest.fixture
def overhead_pose() -> Pose:
    """Camera 10 m above the field center, looking down."""
    return Pose(rotation=(0.0, 0.0, 0.0), translation=(0.0, 0.0, 10.0))


@pytest.fixture
def camera_information(intrinsics, overhead_pose) -> CameraMetaInformation:
    return CameraMetaInformation(camera_parameters=intrinsics, pose=overhead_pose)


@pytest.fixture
def horizontal_camera(intrinsics) -> CameraMetaInformation:
    """Camera 1 m above the field center looking along +x, the -x half is behind it."""
    # Rows are the camera axes (right, down, forward) in the field referential
    rotation = np.array([[0.0, -1.0, 0.0], [0.0, 0.0, -1.0], [1.0, 0.0, 0.0]])
    rvec, _ = cv2.Rodrigues(rotation)
    tvec = -rotation @ np.array([0.0, 0.0, 1.0])
    pose = Pose(rotation=tuple(float(v) for v in rvec.ravel()), translation=tuple(float(v) for v in tvec))
    return CameraMetaInformation(camera_parameters=intrinsics, pose=pose)
