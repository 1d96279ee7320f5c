"""Persist intrinsic parameters and camera poses."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional

from contracts import IntrinsicParameters, Pose
from contracts.versioning import make_envelope, open_envelope
from exceptions import FileWriteError, FormatError, StreamIOError
from log_config.logger import get_logger

logger = get_logger(__name__)

_INTRINSIC_KEYS = ("focal_x", "focal_y", "center_x", "center_y", "img_width", "img_height")


def intrinsics_to_dict(params: IntrinsicParameters) -> Dict[str, Any]:
    return {
        "focal_x": params.focal_x,
        "focal_y": params.focal_y,
        "center_x": params.center_x,
        "center_y": params.center_y,
        "img_width": params.img_width,
        "img_height": params.img_height,
        "distortion": list(params.distortion),
    }


def intrinsics_from_dict(data: Any) -> IntrinsicParameters:
    if not isinstance(data, dict):
        raise FormatError("Intrinsic parameters must be an object")
    missing = [key for key in _INTRINSIC_KEYS if key not in data]
    if missing:
        raise FormatError(f"Intrinsic parameters are missing keys: {', '.join(missing)}")
    try:
        return IntrinsicParameters(
            focal_x=float(data["focal_x"]),
            focal_y=float(data["focal_y"]),
            center_x=float(data["center_x"]),
            center_y=float(data["center_y"]),
            img_width=int(data["img_width"]),
            img_height=int(data["img_height"]),
            distortion=tuple(float(c) for c in data.get("distortion", [])),
        )
    except (TypeError, ValueError) as e:
        raise FormatError(f"Invalid intrinsic parameters: {e}") from e


def pose_to_dict(pose: Pose) -> Dict[str, Any]:
    return {"rotation": list(pose.rotation), "translation": list(pose.translation)}


def pose_from_dict(data: Any) -> Pose:
    if not isinstance(data, dict) or "rotation" not in data or "translation" not in data:
        raise FormatError("Pose must be an object with 'rotation' and 'translation'")
    try:
        return Pose(
            rotation=tuple(float(v) for v in data["rotation"]),
            translation=tuple(float(v) for v in data["translation"]),
        )
    except (TypeError, ValueError) as e:
        raise FormatError(f"Invalid pose: {e}") from e


def optional_pose_to_dict(pose: Optional[Pose]) -> Optional[Dict[str, Any]]:
    return None if pose is None else pose_to_dict(pose)


def optional_pose_from_dict(data: Any) -> Optional[Pose]:
    return None if data is None else pose_from_dict(data)


def read_document(path: Path, kind: str) -> Dict[str, Any]:
    """Read a versioned JSON document from disk."""
    try:
        data = json.loads(Path(path).read_text())
    except OSError as e:
        raise StreamIOError(f"Failed to open file '{path}': {e}") from e
    except json.JSONDecodeError as e:
        raise FormatError(f"Failed to parse '{path}': {e}") from e
    return open_envelope(kind, data)


def write_document(path: Path, kind: str, payload: Dict[str, Any]) -> None:
    """Write a versioned JSON document to disk."""
    try:
        Path(path).write_text(json.dumps(make_envelope(kind, payload), indent=2))
    except OSError as e:
        raise FileWriteError(f"Failed to write to file '{path}': {e}") from e
    logger.debug(f"Wrote {kind} to {path}")


def load_intrinsics(path: Path) -> IntrinsicParameters:
    return intrinsics_from_dict(read_document(path, "intrinsic_parameters"))


def save_intrinsics(path: Path, params: IntrinsicParameters) -> None:
    write_document(path, "intrinsic_parameters", intrinsics_to_dict(params))


def load_pose(path: Path) -> Pose:
    return pose_from_dict(read_document(path, "pose"))


def save_pose(path: Path, pose: Pose) -> None:
    write_document(path, "pose", pose_to_dict(pose))
