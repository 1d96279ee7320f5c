import numpy as np
import pytest

from contracts import CameraMetaInformation
from exceptions import StateError
from ui.drawing import PositionOverlay, draw_positions, label_image


def test_draw_positions_skips_points_outside(camera_information) -> None:
    image = np.zeros((100, 100, 3), dtype=np.uint8)

    positions = [(0.0, 0.0), (1.0, 0.0, 0.0), (100.0, 0.0)]
    drawn = draw_positions(image, positions, camera_information, (0, 0, 255), radius=2)

    assert drawn == 2
    assert tuple(image[50, 50]) == (0, 0, 255)
    assert tuple(image[50, 60]) == (0, 0, 255)
    assert not image[10, 10].any()


def test_draw_nothing(camera_information) -> None:
    image = np.zeros((100, 100, 3), dtype=np.uint8)

    assert draw_positions(image, [], camera_information, (255, 0, 0)) == 0
    assert not image.any()


def test_draw_requires_calibration(intrinsics) -> None:
    image = np.zeros((100, 100, 3), dtype=np.uint8)

    with pytest.raises(StateError):
        draw_positions(image, [(0.0, 0.0)], CameraMetaInformation(camera_parameters=intrinsics), (0, 0, 255))


def test_label_image() -> None:
    image = np.zeros((60, 200, 3), dtype=np.uint8)

    label_image(image, "cam0")

    assert image.any()


def test_positions_behind_the_camera_are_skipped(horizontal_camera) -> None:
    image = np.zeros((100, 100, 3), dtype=np.uint8)

    drawn = draw_positions(image, [(4.0, 0.0), (-4.0, 0.0)], horizontal_camera, (0, 255, 0), radius=1)

    assert drawn == 1
    assert not image[:50].any()


@pytest.mark.parametrize(
    "positions",
    [
        [5],
        "ab",
        [[1.0]],
        [[1.0, 2.0, 3.0, 4.0]],
        [["a", "b"]],
        [[True, 0.0]],
        [[float("nan"), 0.0]],
        {"x": 1.0},
        7,
    ],
)
def test_malformed_positions_are_counted(camera_information, positions) -> None:
    image = np.zeros((100, 100, 3), dtype=np.uint8)
    overlay = PositionOverlay(radius=2)

    assert overlay.draw(image, positions, camera_information, (0, 0, 255)) == 0
    assert overlay.invalid_count == 1
    assert not image.any()


def test_valid_positions_drawn_next_to_malformed_ones(camera_information) -> None:
    image = np.zeros((100, 100, 3), dtype=np.uint8)
    overlay = PositionOverlay(radius=2)

    drawn = overlay.draw(image, [[0.0, 0.0], 5, "ab", [1.0, 0.0, 0.0]], camera_information, (0, 0, 255))

    assert drawn == 2
    assert overlay.invalid_count == 2
    assert tuple(image[50, 50]) == (0, 0, 255)
