"""Drawing functions for rendering frames with overlays."""

from __future__ import annotations

import math
from typing import Any, List, Optional, Sequence, Tuple

import cv2
import numpy as np

from calib.camera_model import CameraModel
from contracts import CameraMetaInformation
from log_config.logger import get_logger

logger = get_logger(__name__)

Color = Tuple[int, int, int]


def _parse_position(position: Any) -> Optional[Tuple[float, float, float]]:
    """(x, y, z) from a 2 or 3 number sequence, None when malformed."""
    if isinstance(position, (str, bytes)) or not isinstance(position, Sequence):
        return None
    if len(position) not in (2, 3):
        return None
    coords = []
    for value in position:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        if not math.isfinite(value):
            return None
        coords.append(float(value))
    if len(coords) == 2:
        coords.append(0.0)
    return coords[0], coords[1], coords[2]


class PositionOverlay:
    """Draws field positions received in messages on calibrated images.

    Positions are (x, y) on the ground or (x, y, z). They come from the
    network, malformed entries are logged, counted and skipped. Points behind
    the camera or projected outside of the image are not drawn.
    """

    def __init__(self, radius: int = 10) -> None:
        self.radius = radius
        self._invalid_count = 0

    @property
    def invalid_count(self) -> int:
        return self._invalid_count

    def _parse(self, positions: Any) -> List[Tuple[float, float, float]]:
        if isinstance(positions, (str, bytes)) or not isinstance(positions, Sequence):
            self._invalid_count += 1
            logger.warning(f"Ignoring positions: expecting a list, got {type(positions).__name__}")
            return []
        points = []
        for position in positions:
            point = _parse_position(position)
            if point is None:
                self._invalid_count += 1
                logger.warning(f"Ignoring invalid position: {position!r}")
                continue
            points.append(point)
        return points

    def draw(
        self,
        image: np.ndarray,
        positions: Any,
        camera_information: CameraMetaInformation,
        color: Color,
    ) -> int:
        """Draw ``positions`` on ``image`` in place.

        Returns:
            Number of positions drawn

        Raises:
            StateError: If the calibration is incomplete
        """
        model = CameraModel.from_camera_information(camera_information)
        points = self._parse(positions)
        if not points:
            return 0

        height, width = image.shape[:2]
        object_points = np.array(points, dtype=np.float64)
        drawn = 0
        for (u, v), depth in zip(model.project_many(object_points), model.depths(object_points)):
            if depth <= 0 or not (0 <= u < width and 0 <= v < height):
                continue
            cv2.circle(image, (int(round(u)), int(round(v))), self.radius, color, cv2.FILLED)
            drawn += 1
        return drawn


def draw_positions(
    image: np.ndarray,
    positions: Any,
    camera_information: CameraMetaInformation,
    color: Color,
    radius: int = 10,
) -> int:
    """Draw field positions on a calibrated image, see :class:`PositionOverlay`.

    Returns:
        Number of positions drawn
    """
    return PositionOverlay(radius).draw(image, positions, camera_information, color)


def label_image(image: np.ndarray, text: str, color: Color = (255, 255, 255)) -> None:
    """Write ``text`` in the top left corner of ``image``."""
    cv2.putText(image, text, (10, 25), cv2.FONT_HERSHEY_SIMPLEX, 0.7, color, 2, cv2.LINE_AA)


__all__ = ["PositionOverlay", "draw_positions", "label_image"]
