"""Acquire and display one or several streams along with received messages.

Depending on the configuration of the image providers, videos and meta
information are written while running.

Messages carrying a ``positions`` list ([x, y] in the field referential) are
drawn on every fully calibrated image.
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Dict, Tuple

import cv2

from capture.clock import get_time_stamp
from field import Field, load_field
from log_config.logger import get_logger, setup_file_logging
from monitoring import MessageStatus, MonitoringManager
from ui.drawing import PositionOverlay, label_image
from ui.top_view import TopViewDrawer

logger = get_logger(__name__)

SOURCE_COLORS = [(255, 0, 255), (255, 255, 0), (0, 165, 255), (0, 0, 255)]
DEFAULT_DT_US = 30 * 1000


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Acquire and display one or multiple streams along with meta-information."
    )
    parser.add_argument("-c", "--config", type=Path, required=True, help="Session configuration (YAML)")
    parser.add_argument("-f", "--field", type=Path, default=None, help="Field description (YAML/JSON)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every message received")
    parser.add_argument("--dt-us", type=int, default=DEFAULT_DT_US, help="Replay step [us]")
    parser.add_argument("--logs-dir", type=Path, default=Path("logs"))
    parser.add_argument("--top-view", action="store_true", help="Also display a top view of the field")
    return parser.parse_args()


def _colors_by_source(status: MessageStatus, colors: Dict[str, Tuple[int, int, int]]) -> None:
    for source in sorted(status.messages):
        if source not in colors:
            colors[source] = SOURCE_COLORS[len(colors) % len(SOURCE_COLORS)]


def run(manager: MonitoringManager, field: Field, dt_us: int, verbose: bool, top_view: bool) -> None:
    colors: Dict[str, Tuple[int, int, int]] = {}
    drawer = TopViewDrawer() if top_view else None
    overlay = PositionOverlay()
    now = 0 if manager.is_live() else manager.get_start()
    while manager.is_good():
        manager.update()
        if manager.is_live():
            now = get_time_stamp()
        else:
            now += dt_us

        status = manager.get_status(now)
        _colors_by_source(status, colors)
        if verbose:
            logger.info(f"Time: {now}")
            for source in status.messages:
                logger.info(f"-> Message from {source}")

        for name, calibrated in manager.get_calibrated_images(now).items():
            display_img = calibrated.image.copy()
            if calibrated.is_fully_specified():
                field.tag_lines(calibrated.camera_information, display_img, (0, 0, 0), 2)
                for source, message in status.messages.items():
                    positions = message.payload.get("positions")
                    if positions is not None:
                        overlay.draw(display_img, positions, calibrated.camera_information, colors[source])
            label_image(display_img, f"{name} t={now}")
            cv2.imshow(name, display_img)

        if drawer is not None:
            cv2.imshow("top_view", drawer.get_img(field))

        key = cv2.waitKey(10) & 0xFF
        if key in (ord("q"), ord("Q")):
            break

    if overlay.invalid_count:
        logger.warning(f"Skipped {overlay.invalid_count} invalid positions during the session")


def main() -> None:
    args = parse_args()
    setup_file_logging(args.logs_dir)
    field = load_field(args.field) if args.field is not None else Field()
    with MonitoringManager.from_config(args.config) as manager:
        try:
            run(manager, field, args.dt_us, args.verbose, args.top_view)
        finally:
            cv2.destroyAllWindows()


if __name__ == "__main__":
    main()
