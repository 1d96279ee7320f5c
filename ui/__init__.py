"""OpenCV diagnostics views."""

from .drawing import PositionOverlay, draw_positions, label_image
from .top_view import TopViewDrawer

__all__ = ["PositionOverlay", "TopViewDrawer", "draw_positions", "label_image"]
