"""Record a video from an OpenCV input along with its meta information."""

from __future__ import annotations

import argparse
from pathlib import Path

import cv2

from capture.live_provider import LiveStreamProvider
from capture.opencv_backend import OpenCVCamera
from capture.simulated_camera import SimulatedCamera
from exceptions import CameraTimeoutError
from log_config.logger import get_logger, setup_file_logging

logger = get_logger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Record a video based on OpenCV input.")
    parser.add_argument("-i", "--input", type=str, default="0", help="Device index, file or URL")
    parser.add_argument(
        "-o", "--output", type=str, default="output",
        help="Output prefix, '<prefix>.avi' and '<prefix>.json' are written",
    )
    parser.add_argument("--backend", default="opencv", choices=("opencv", "sim"))
    parser.add_argument("--max-frames", type=int, default=0, help="Stop after this many frames (0: no limit)")
    parser.add_argument("--no-display", action="store_true")
    parser.add_argument("--logs-dir", type=Path, default=Path("logs"))
    return parser.parse_args(argv)


def main(argv=None) -> None:
    args = parse_args(argv)
    setup_file_logging(args.logs_dir)
    device = OpenCVCamera() if args.backend == "opencv" else SimulatedCamera(fps=30.0)

    with LiveStreamProvider(device, args.input, output_prefix=args.output) as provider:
        nb_frames = 0
        while args.max_frames <= 0 or nb_frames < args.max_frames:
            try:
                img = provider.get_next_img()
            except CameraTimeoutError as e:
                # File inputs stop delivering frames once read entirely
                logger.info(f"End of stream on '{args.input}': {e}")
                break
            nb_frames += 1
            if args.no_display:
                continue
            cv2.imshow("Display", img)
            key = cv2.waitKey(10) & 0xFF
            if key == ord("q"):
                break
        logger.info(f"Recorded {nb_frames} frames to {args.output}.avi")
    if not args.no_display:
        cv2.destroyAllWindows()


if __name__ == "__main__":
    main()
