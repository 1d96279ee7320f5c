"""Video file output with codec fallback."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

import cv2

from exceptions import StreamIOError
from log_config.logger import get_logger

logger = get_logger(__name__)

DEFAULT_CODECS = ("MJPG", "XVID")


def open_video_writer(
    path: Path,
    width: int,
    height: int,
    fps: float,
    codecs: Sequence[str] = DEFAULT_CODECS,
) -> cv2.VideoWriter:
    """Open video writer with codec fallback.

    Args:
        path: Output video file path
        width: Frame width
        height: Frame height
        fps: Frames per second
        codecs: FourCC codes tried in order

    Returns:
        Opened VideoWriter

    Raises:
        StreamIOError: If no codec works
    """
    path = Path(path)
    for codec_name in codecs:
        fourcc = cv2.VideoWriter_fourcc(*codec_name)
        writer = cv2.VideoWriter(str(path), fourcc, float(fps), (int(width), int(height)), True)
        if writer.isOpened():
            logger.info(f"Video writer opened successfully: {path.name} with {codec_name} codec")
            return writer
        writer.release()
        logger.debug(f"Codec {codec_name} failed for {path.name}, trying next...")

    raise StreamIOError(
        f"Failed to open video writer for {path.name}. "
        f"Tried codecs: {list(codecs)}. Check that ffmpeg or system codecs are installed."
    )


__all__ = ["DEFAULT_CODECS", "open_video_writer"]
