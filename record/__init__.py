"""Recording helpers: stream meta information and video output."""

from .meta_information import (
    build_meta_information,
    count_video_frames,
    load_meta_information,
    save_meta_information,
)
from .video_writer import open_video_writer

__all__ = [
    "build_meta_information",
    "count_video_frames",
    "load_meta_information",
    "open_video_writer",
    "save_meta_information",
]
