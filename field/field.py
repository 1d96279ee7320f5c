"""Playing field geometry and projection of its lines on images.

Referential:

- Zero: center of the field at ground level
- X-axis goes from the center toward the center of the goal on the right side
  of the team area
- Y-axis goes from the center toward the side line opposite to the team area
- Z-axis points toward the roof

Point names use one sign per axis, ``field_corner+-`` is the corner with
positive x and negative y. All dimensions are in meters.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Tuple

import cv2
import numpy as np

from calib.camera_model import CameraModel, to_projection_model, to_rodrigues_pose
from configs.settings import read_config_file
from configs.validator import FIELD_KEYS, validate_field_config
from contracts import CameraMetaInformation
from exceptions import NotFoundError, StateError
from log_config.logger import get_logger

logger = get_logger(__name__)

Point3 = Tuple[float, float, float]
Segment = Tuple[Point3, Point3]

_SIGNS = (("+", 1.0), ("-", -1.0))


@dataclass(frozen=True)
class FieldDimensions:
    """Sizes of the field.

    Attributes:
        ball_radius: Radius of the ball
        line_width: Width of the white lines
        center_radius: Radius of the central circle (lines included)
        border_strip_width_x: Distance from field border to arena border along x (line excluded)
        border_strip_width_y: Distance from field border to arena border along y (line excluded)
        penalty_mark_dist: Distance from center of penalty mark to goal line (line included)
        penalty_mark_length: Length of the penalty mark
        goal_width: Distance between the two posts (posts excluded)
        goal_depth: From goal line to the back of the goal (goal line included)
        goal_area_length: From goal line to goal area line (lines included)
        goal_area_width: From one side of goal area to the other (lines included)
        field_length: From one goal line to the other (lines included)
        field_width: From one side line to the other (lines included)
    """

    ball_radius: float = 0.075
    line_width: float = 0.05
    center_radius: float = 0.75
    border_strip_width_x: float = 0.70
    border_strip_width_y: float = 0.70
    penalty_mark_dist: float = 2.10
    penalty_mark_length: float = 0.10
    goal_width: float = 2.60
    goal_depth: float = 0.60
    goal_area_length: float = 1.00
    goal_area_width: float = 5.00
    field_length: float = 9.00
    field_width: float = 6.00


class Field:
    """Field geometry derived from a set of dimensions.

    A Field never changes after construction, use :meth:`with_dimensions` to
    get a field with other sizes.
    """

    def __init__(self, dimensions: FieldDimensions | None = None):
        self._dimensions = dimensions or FieldDimensions()
        self._points = self._build_points_of_interest()
        self._white_lines = self._build_white_lines()
        self._arena_borders = self._build_arena_borders()
        self._goals, self._goal_posts = self._build_goals()
        self._penalty_marks = [self._points["penalty_mark+"], self._points["penalty_mark-"]]

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "Field":
        """Build a field from a mapping holding every dimension.

        Raises:
            ConfigValidationError: If a key is missing or is not a number
        """
        data = dict(config) if isinstance(config, Mapping) else config
        validate_field_config(data)
        return cls(FieldDimensions(**{key: float(data[key]) for key in FIELD_KEYS}))

    def to_config(self) -> Dict[str, float]:
        return asdict(self._dimensions)

    def with_dimensions(self, **changes: float) -> "Field":
        return Field(replace(self._dimensions, **changes))

    @property
    def dimensions(self) -> FieldDimensions:
        return self._dimensions

    def __getattr__(self, name: str) -> Any:
        # Dimensions are readable as attributes, e.g. field.line_width
        if name in FIELD_KEYS:
            return getattr(self._dimensions, name)
        raise AttributeError(f"'{type(self).__name__}' object has no attribute '{name}'")

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Field) and other._dimensions == self._dimensions

    def __hash__(self) -> int:
        return hash(self._dimensions)

    def __repr__(self) -> str:
        d = self._dimensions
        return f"Field({d.field_length}x{d.field_width})"

    @property
    def arena_length(self) -> float:
        d = self._dimensions
        return d.field_length + 2 * d.border_strip_width_x

    @property
    def arena_width(self) -> float:
        d = self._dimensions
        return d.field_width + 2 * d.border_strip_width_y

    def is_in_arena(self, pos_in_field: Tuple[float, float]) -> bool:
        x, y = float(pos_in_field[0]), float(pos_in_field[1])
        return abs(x) <= self.arena_length / 2 and abs(y) <= self.arena_width / 2

    def get_point(self, name: str) -> Point3:
        try:
            return self._points[name]
        except KeyError:
            raise NotFoundError(f"Unknown point of interest: '{name}'") from None

    def get_points_of_interest(self) -> Dict[str, Point3]:
        return dict(self._points)

    def get_white_lines(self) -> List[Segment]:
        return list(self._white_lines)

    def get_arena_borders(self) -> List[Segment]:
        return list(self._arena_borders)

    def get_goals(self) -> List[Segment]:
        return list(self._goals)

    def get_goal_posts(self) -> List[Point3]:
        return list(self._goal_posts)

    def get_penalty_marks(self) -> List[Point3]:
        return list(self._penalty_marks)

    def _build_points_of_interest(self) -> Dict[str, Point3]:
        d = self._dimensions
        half_length = d.field_length / 2
        half_width = d.field_width / 2
        points: Dict[str, Point3] = {"center": (0.0, 0.0, 0.0)}

        def add(prefix: str, x: float, y: float) -> None:
            for sx_name, sx in _SIGNS:
                for sy_name, sy in _SIGNS:
                    points[f"{prefix}{sx_name}{sy_name}"] = (sx * x, sy * y, 0.0)

        add("field_corner", half_length, half_width)
        add("goal_area_corner", half_length - d.goal_area_length, d.goal_area_width / 2)
        add("goal_area_t", half_length, d.goal_area_width / 2)
        add(
            "arena_corner",
            half_length + d.border_strip_width_x,
            half_width + d.border_strip_width_y,
        )
        add("goal_post", half_length, d.goal_width / 2)
        add("goal_back", half_length + d.goal_depth, d.goal_width / 2)
        for s_name, s in _SIGNS:
            points[f"penalty_mark{s_name}"] = (s * (half_length - d.penalty_mark_dist), 0.0, 0.0)
            points[f"middle_line_t{s_name}"] = (0.0, s * half_width, 0.0)
        return points

    def _chain(self, *names: str) -> List[Segment]:
        return [(self._points[a], self._points[b]) for a, b in zip(names, names[1:])]

    def _build_white_lines(self) -> List[Segment]:
        lines = self._chain(
            "field_corner++", "field_corner+-", "field_corner--", "field_corner-+", "field_corner++"
        )
        lines += self._chain("middle_line_t-", "middle_line_t+")
        for s in ("+", "-"):
            lines += self._chain(
                f"goal_area_t{s}-", f"goal_area_corner{s}-", f"goal_area_corner{s}+", f"goal_area_t{s}+"
            )
        return lines

    def _build_arena_borders(self) -> List[Segment]:
        return self._chain(
            "arena_corner++", "arena_corner+-", "arena_corner--", "arena_corner-+", "arena_corner++"
        )

    def _build_goals(self) -> Tuple[List[Segment], List[Point3]]:
        goals: List[Segment] = []
        posts: List[Point3] = []
        for s in ("+", "-"):
            goals += self._chain(f"goal_post{s}-", f"goal_back{s}-", f"goal_back{s}+", f"goal_post{s}+")
            posts += [self._points[f"goal_post{s}-"], self._points[f"goal_post{s}+"]]
        return goals, posts

    def tag_lines(
        self,
        camera_information: CameraMetaInformation,
        tag_img: np.ndarray,
        line_color: Tuple[int, ...],
        line_thickness: int,
        segments_per_line: int = 1,
    ) -> int:
        """Draw the white lines of the field on ``tag_img``.

        Raises:
            StateError: If the camera information is not fully specified
        """
        if not camera_information.is_fully_specified():
            raise StateError("Cannot tag lines: camera information is not fully specified")
        camera_matrix, distortion, _ = to_projection_model(camera_information.camera_parameters)
        rvec, tvec = to_rodrigues_pose(camera_information.pose)
        return self.tag_lines_cv(
            camera_matrix,
            distortion,
            rvec,
            tvec,
            tag_img,
            line_color,
            line_thickness,
            segments_per_line,
        )

    def tag_lines_cv(
        self,
        camera_matrix: np.ndarray,
        distortion: np.ndarray,
        rvec: np.ndarray,
        tvec: np.ndarray,
        tag_img: np.ndarray,
        line_color: Tuple[int, ...],
        line_thickness: int,
        segments_per_line: int = 1,
    ) -> int:
        """Same as :meth:`tag_lines` with OpenCV calibration inputs.

        Each line is cut in ``segments_per_line`` pieces so that distortion
        bends the drawing. A piece is drawn only when both of its projected
        ends are strictly inside the image and in front of the camera, pieces
        are never clipped.

        Returns:
            Number of pieces drawn
        """
        if segments_per_line < 1:
            raise ValueError(f"segments_per_line must be at least 1 (got {segments_per_line})")
        height, width = tag_img.shape[:2]
        model = CameraModel(
            np.asarray(camera_matrix, dtype=np.float64),
            np.asarray(distortion, dtype=np.float64),
            np.asarray(rvec, dtype=np.float64),
            np.asarray(tvec, dtype=np.float64),
            (width, height),
        )

        steps = np.linspace(0.0, 1.0, segments_per_line + 1).reshape(-1, 1)
        drawn = 0
        for start, end in self._white_lines:
            p1 = np.asarray(start, dtype=np.float64)
            p2 = np.asarray(end, dtype=np.float64)
            pieces = p1 + steps * (p2 - p1)
            img_points = model.project_many(pieces)
            in_front = model.depths(pieces) > 0
            for i, (a, b) in enumerate(zip(img_points[:-1], img_points[1:])):
                if not (in_front[i] and in_front[i + 1]):
                    continue
                if not (model.contains(a) and model.contains(b)):
                    continue
                cv2.line(
                    tag_img,
                    (int(round(a[0])), int(round(a[1]))),
                    (int(round(b[0])), int(round(b[1]))),
                    line_color,
                    int(line_thickness),
                )
                drawn += 1
        logger.debug(f"Tagged {drawn} line segments")
        return drawn


def load_field(path: Path) -> Field:
    """Load a field description file (YAML or JSON)."""
    logger.info(f"Loading field description from {path}")
    return Field.from_config(read_config_file(Path(path)))
