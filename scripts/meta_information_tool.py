"""Combine several kinds of files to create meta information for a video."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from calib.calibration_io import load_intrinsics, load_pose
from exceptions import MonitoringError
from log_config.logger import get_logger
from record.meta_information import (
    build_meta_information,
    load_meta_information,
    save_meta_information,
)

logger = get_logger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Combine multiple type of files to create meta information for a video."
    )
    parser.add_argument(
        "-v", "--video", type=Path, default=None,
        help="Video used to create the time stamps of each frame",
    )
    parser.add_argument("-i", "--intrinsic", type=Path, default=None, help="Intrinsic parameters file")
    parser.add_argument("-m", "--meta-information", type=Path, default=None, help="Initial meta information")
    parser.add_argument("-p", "--pose", type=Path, default=None, help="Default pose file")
    parser.add_argument("-o", "--output", type=Path, default=Path("meta_information.json"))
    parser.add_argument(
        "-t", "--step-time", type=float, default=0.03,
        help="Interval between two frames when a video is provided [s]",
    )
    parser.add_argument(
        "-f", "--force", action="store_true", help="Allow overwriting existing meta information data"
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    try:
        base = None
        if args.meta_information is not None:
            base = load_meta_information(args.meta_information)
        meta = build_meta_information(
            base=base,
            video_path=args.video,
            intrinsic=None if args.intrinsic is None else load_intrinsics(args.intrinsic),
            pose=None if args.pose is None else load_pose(args.pose),
            frame_period_s=args.step_time,
            force=args.force,
        )
        save_meta_information(args.output, meta)
    except MonitoringError as e:
        logger.error(f"Failed to build meta information: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
