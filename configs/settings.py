"""Configuration loading for monitoring sessions."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from configs.validator import validate_session_config
from exceptions import ConfigError, InvalidConfigError
from log_config.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ProviderConfig:
    name: str
    class_name: str
    input_path: Optional[str] = None
    meta_information_path: Optional[str] = None
    output_prefix: Optional[str] = None
    frame_period_us: int = 30000
    source: Optional[str] = None
    history_size: int = 8
    timeout_ms: int = 1000
    max_read_attempts: int = 5
    width: Optional[int] = None
    height: Optional[int] = None
    fps: Optional[float] = None
    intrinsic_path: Optional[str] = None
    default_pose_path: Optional[str] = None


@dataclass(frozen=True)
class MessageStreamConfig:
    file_path: Optional[str] = None
    ports: Tuple[int, ...] = ()


@dataclass(frozen=True)
class SessionConfig:
    image_providers: Tuple[ProviderConfig, ...]
    message_manager: MessageStreamConfig
    live: bool
    msg_collection_path: Optional[str] = None


def read_config_file(path: Path) -> Any:
    """Read a YAML (or JSON) configuration file.

    Raises:
        InvalidConfigError: If the file is missing or cannot be parsed
    """
    path = Path(path)
    if not path.exists():
        raise InvalidConfigError(f"Configuration file not found: {path}")
    try:
        return yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse YAML configuration: {e}")
        raise InvalidConfigError(f"Failed to parse configuration file '{path}': {e}")
    except OSError as e:
        raise InvalidConfigError(f"Failed to open file '{path}': {e}")


def _resolve(base_dir: Optional[Path], value: Optional[str]) -> Optional[str]:
    if value is None or value == "":
        return None
    if base_dir is None or Path(value).is_absolute():
        return value
    return str(base_dir / value)


def _parse_provider(name: str, data: Dict[str, Any], base_dir: Optional[Path]) -> ProviderConfig:
    class_name = data["class_name"]
    if class_name == "replay" and not data.get("input_path"):
        raise InvalidConfigError(f"Provider '{name}': 'input_path' is required for replay")
    if class_name == "live" and data.get("source") is None and not data.get("input_path"):
        raise InvalidConfigError(f"Provider '{name}': 'source' is required for live capture")
    if class_name == "simulated" and (data.get("width") is None or data.get("height") is None):
        raise InvalidConfigError(f"Provider '{name}': 'width' and 'height' are required for simulated")

    source = data.get("source")
    if source is None and class_name == "live":
        source = data.get("input_path")

    return ProviderConfig(
        name=name,
        class_name=class_name,
        input_path=_resolve(base_dir, data.get("input_path")),
        meta_information_path=_resolve(base_dir, data.get("meta_information_path")),
        output_prefix=_resolve(base_dir, data.get("output_prefix")),
        frame_period_us=int(data.get("frame_period_us", 30000)),
        source=None if source is None else str(source),
        history_size=int(data.get("history_size", 8)),
        timeout_ms=int(data.get("timeout_ms", 1000)),
        max_read_attempts=int(data.get("max_read_attempts", 5)),
        width=data.get("width"),
        height=data.get("height"),
        fps=data.get("fps"),
        intrinsic_path=_resolve(base_dir, data.get("intrinsic_path")),
        default_pose_path=_resolve(base_dir, data.get("default_pose_path")),
    )


def _parse_message_stream(data: Dict[str, Any], base_dir: Optional[Path]) -> MessageStreamConfig:
    file_path = _resolve(base_dir, data.get("file_path"))
    ports = tuple(int(p) for p in data.get("ports", []))
    if not ports and file_path is None:
        raise ConfigError("Message stream: neither 'ports' nor 'file_path' provided")
    if ports and file_path is not None:
        raise ConfigError("Message stream: both 'ports' and 'file_path' provided")
    return MessageStreamConfig(file_path=file_path, ports=ports)


def parse_session_config(data: Any, base_dir: Optional[Path] = None) -> SessionConfig:
    """Validate and convert a parsed session document.

    Args:
        data: Parsed configuration document
        base_dir: Directory used to resolve relative paths

    Returns:
        Validated SessionConfig instance

    Raises:
        ConfigError: If configuration is invalid
    """
    validate_session_config(data)

    providers = tuple(
        _parse_provider(name, spec, base_dir) for name, spec in data["image_providers"].items()
    )
    config = SessionConfig(
        image_providers=providers,
        message_manager=_parse_message_stream(data["message_manager"], base_dir),
        live=bool(data["live"]),
        msg_collection_path=_resolve(base_dir, data.get("msg_collection_path")),
    )
    logger.info(
        f"Session configuration: {len(providers)} provider(s), "
        f"{'live' if config.live else 'replay'} session"
    )
    return config


def load_session_config(path: Path) -> SessionConfig:
    """Load and validate a session configuration from a YAML file.

    Relative paths inside the file are resolved against its directory.
    """
    path = Path(path)
    logger.info(f"Loading session configuration from {path}")
    data = read_config_file(path)
    return parse_session_config(data, base_dir=path.parent)
