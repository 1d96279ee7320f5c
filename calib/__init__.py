"""Calibration module."""

from .camera_model import (
    CameraModel,
    field_to_img,
    from_projection_model,
    from_rodrigues_pose,
    project_point,
    project_points,
    to_projection_model,
    to_rodrigues_pose,
)

__all__ = [
    "CameraModel",
    "field_to_img",
    "from_projection_model",
    "from_rodrigues_pose",
    "project_point",
    "project_points",
    "to_projection_model",
    "to_rodrigues_pose",
]
