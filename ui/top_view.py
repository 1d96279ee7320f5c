"""Top view rendering of the field."""

from __future__ import annotations

from typing import Sequence, Tuple

import cv2
import numpy as np

from field import Field

Color = Tuple[int, int, int]


class TopViewDrawer:
    """Draws the field seen from above, centered in an image.

    The x axis of the field goes right and its y axis goes up.
    """

    def __init__(self, img_size: Tuple[int, int] = (600, 400)):
        """
        Args:
            img_size: Size of generated images (width, height)
        """
        self.img_size = img_size
        self.background_color: Color = (0, 0, 0)
        self.lines_color: Color = (255, 255, 255)
        self.goals_color: Color = (255, 0, 255)

    def get_img(self, field: Field) -> np.ndarray:
        """Return a BGR image with the field drawn on it."""
        width, height = self.img_size
        img = np.zeros((height, width, 3), dtype=np.uint8)
        img[:] = self.background_color
        self._draw_lines(field, img)
        self._draw_center(field, img)
        self._draw_penalty_marks(field, img)
        self._draw_goals(field, img)
        return img

    def get_scale(self, field: Field) -> float:
        """Scale of the drawing [px/m], the whole arena fits in the image."""
        width, height = self.img_size
        return min(width / field.arena_length, height / field.arena_width)

    def get_img_from_field(self, field: Field, pos_in_field: Sequence[float]) -> Tuple[int, int]:
        width, height = self.img_size
        scale = self.get_scale(field)
        u = width / 2 + pos_in_field[0] * scale
        v = height / 2 - pos_in_field[1] * scale
        return int(round(u)), int(round(v))

    def _line_width(self, field: Field) -> int:
        return max(1, int(field.line_width * self.get_scale(field)))

    def _draw_lines(self, field: Field, img: np.ndarray) -> None:
        thickness = self._line_width(field)
        for start, end in field.get_white_lines():
            cv2.line(
                img,
                self.get_img_from_field(field, start),
                self.get_img_from_field(field, end),
                self.lines_color,
                thickness,
            )

    def _draw_goals(self, field: Field, img: np.ndarray) -> None:
        thickness = max(1, int(2 * field.line_width * self.get_scale(field)))
        for start, end in field.get_goals():
            cv2.line(
                img,
                self.get_img_from_field(field, start),
                self.get_img_from_field(field, end),
                self.goals_color,
                thickness,
            )

    def _draw_center(self, field: Field, img: np.ndarray) -> None:
        center = field.get_point("center")
        self._draw_mark(field, center, img)
        radius = int(field.center_radius * self.get_scale(field))
        cv2.circle(
            img, self.get_img_from_field(field, center), radius, self.lines_color, self._line_width(field)
        )

    def _draw_penalty_marks(self, field: Field, img: np.ndarray) -> None:
        for mark in field.get_penalty_marks():
            self._draw_mark(field, mark, img)

    def _draw_mark(self, field: Field, pos_in_field: Sequence[float], img: np.ndarray) -> None:
        half_length = int(field.penalty_mark_length * self.get_scale(field)) // 2
        u, v = self.get_img_from_field(field, pos_in_field)
        thickness = self._line_width(field)
        cv2.line(img, (u - half_length, v), (u + half_length, v), self.lines_color, thickness)
        cv2.line(img, (u, v - half_length), (u, v + half_length), self.lines_color, thickness)


__all__ = ["TopViewDrawer"]
