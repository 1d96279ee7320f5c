"""Persistence and assembly of per-stream meta information."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, Optional

import cv2

from calib.calibration_io import (
    intrinsics_from_dict,
    intrinsics_to_dict,
    optional_pose_from_dict,
    optional_pose_to_dict,
    read_document,
    write_document,
)
from contracts import FrameEntry, IntrinsicParameters, Pose, VideoMetaInformation
from exceptions import FormatError, StateError, StreamIOError
from log_config.logger import get_logger

logger = get_logger(__name__)

META_INFORMATION_KIND = "video_meta_information"


def meta_information_to_dict(meta: VideoMetaInformation) -> Dict[str, Any]:
    return {
        "camera_parameters": (
            None if meta.camera_parameters is None else intrinsics_to_dict(meta.camera_parameters)
        ),
        "default_pose": optional_pose_to_dict(meta.default_pose),
        "time_offset": meta.time_offset,
        "frames": [
            {"time_stamp": entry.time_stamp, "pose": optional_pose_to_dict(entry.pose)}
            for entry in meta.frames
        ],
    }


def meta_information_from_dict(data: Any) -> VideoMetaInformation:
    if not isinstance(data, dict):
        raise FormatError("Meta information must be an object")
    frames_data = data.get("frames") or []
    if not isinstance(frames_data, list):
        raise FormatError("Meta information 'frames' must be a list")

    frames = []
    for i, entry in enumerate(frames_data):
        if not isinstance(entry, dict) or "time_stamp" not in entry:
            raise FormatError(f"Frame entry {i} has no 'time_stamp'")
        try:
            time_stamp = int(entry["time_stamp"])
        except (TypeError, ValueError) as e:
            raise FormatError(f"Frame entry {i}: invalid time stamp: {e}") from e
        frames.append(FrameEntry(time_stamp=time_stamp, pose=optional_pose_from_dict(entry.get("pose"))))

    camera_parameters = data.get("camera_parameters")
    time_offset = data.get("time_offset")
    if time_offset is not None:
        try:
            time_offset = int(time_offset)
        except (TypeError, ValueError) as e:
            raise FormatError(f"Invalid time offset: {e}") from e
    return VideoMetaInformation(
        camera_parameters=None if camera_parameters is None else intrinsics_from_dict(camera_parameters),
        default_pose=optional_pose_from_dict(data.get("default_pose")),
        frames=tuple(frames),
        time_offset=time_offset,
    )


def load_meta_information(path: Path) -> VideoMetaInformation:
    """Read meta information written by :func:`save_meta_information`.

    Raises:
        StreamIOError: If the file cannot be read
        FormatError: If the content is not valid meta information
    """
    meta = meta_information_from_dict(read_document(Path(path), META_INFORMATION_KIND))
    logger.debug(f"Loaded meta information with {len(meta.frames)} frames from {path}")
    return meta


def save_meta_information(path: Path, meta: VideoMetaInformation) -> None:
    write_document(Path(path), META_INFORMATION_KIND, meta_information_to_dict(meta))
    logger.info(f"Saved meta information with {len(meta.frames)} frames to {path}")


def count_video_frames(video_path: Path) -> int:
    """Number of frames in a video file.

    Containers do not always report a frame count, frames are decoded one by
    one when they don't.

    Raises:
        StreamIOError: If the video cannot be opened
    """
    capture = cv2.VideoCapture(str(video_path))
    if not capture.isOpened():
        raise StreamIOError(f"Failed to open video '{video_path}'")
    try:
        count = int(capture.get(cv2.CAP_PROP_FRAME_COUNT))
        if count > 0:
            return count
        count = 0
        while capture.grab():
            count += 1
        return count
    finally:
        capture.release()


def build_meta_information(
    base: Optional[VideoMetaInformation] = None,
    video_path: Optional[Path] = None,
    intrinsic: Optional[IntrinsicParameters] = None,
    pose: Optional[Pose] = None,
    frame_period_s: float = 0.03,
    force: bool = False,
) -> VideoMetaInformation:
    """Combine several sources into a single meta information.

    Args:
        base: Initial meta information
        video_path: Video used to create one frame entry per frame, stamped
            every ``frame_period_s`` seconds from 0
        intrinsic: Intrinsic parameters of the camera
        pose: Default pose of the camera
        frame_period_s: Interval between two frames when a video is provided
        force: Allow overwriting data already present in ``base``

    Raises:
        StateError: If a source would overwrite existing data without force
    """
    meta = base or VideoMetaInformation()

    if pose is not None:
        if not force and meta.default_pose is not None:
            raise StateError("Meta information already contains a default pose, use force to overwrite")
        meta = replace(meta, default_pose=pose)

    if intrinsic is not None:
        if not force and meta.camera_parameters is not None:
            raise StateError(
                "Meta information already contains camera parameters, use force to overwrite"
            )
        meta = replace(meta, camera_parameters=intrinsic)

    if video_path is not None:
        if not force and meta.frames:
            raise StateError("Meta information already contains frame entries, use force to overwrite")
        if frame_period_s <= 0:
            raise FormatError(f"Frame period must be positive (got {frame_period_s})")
        nb_frames = count_video_frames(Path(video_path))
        period_us = frame_period_s * 1_000_000
        meta = replace(
            meta,
            frames=tuple(FrameEntry(time_stamp=int(round(i * period_us))) for i in range(nb_frames)),
        )
        logger.info(f"Created {nb_frames} frame entries from {video_path}")

    return meta


__all__ = [
    "META_INFORMATION_KIND",
    "build_meta_information",
    "count_video_frames",
    "load_meta_information",
    "meta_information_from_dict",
    "meta_information_to_dict",
    "save_meta_information",
]
