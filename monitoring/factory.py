"""Build providers and message streams from session configuration."""

from __future__ import annotations

from pathlib import Path

from calib.calibration_io import load_intrinsics, load_pose
from capture.camera_device import CameraDevice
from capture.live_provider import LiveStreamProvider
from capture.opencv_backend import OpenCVCamera
from capture.replay_provider import ReplayStreamProvider
from capture.simulated_camera import SimulatedCamera
from capture.stream_provider import StreamProvider
from capture.timeout_utils import RetryPolicy
from configs.settings import MessageStreamConfig, ProviderConfig
from exceptions import CameraTimeoutError, ConfigError, MonitoringError
from log_config.logger import get_logger

from .message_stream import MessageStream, ReplayMessageStream, UdpMessageStream

logger = get_logger(__name__)


def _live_provider(spec: ProviderConfig, device: CameraDevice) -> LiveStreamProvider:
    if spec.width is not None and spec.height is not None:
        device.open(spec.source or spec.name)
        device.set_mode(spec.width, spec.height, spec.fps or 0.0)
    return LiveStreamProvider(
        device,
        spec.source or spec.name,
        name=spec.name,
        output_prefix=spec.output_prefix,
        history_size=spec.history_size,
        timeout_ms=spec.timeout_ms,
        retry_policy=RetryPolicy(
            max_attempts=spec.max_read_attempts,
            base_delay=0.01,
            max_delay=0.1,
            retry_on=(CameraTimeoutError,),
        ),
        fps=spec.fps,
    )


def build_stream_provider(spec: ProviderConfig) -> StreamProvider:
    """Create the provider described by ``spec``.

    Intrinsic parameters and default pose files are loaded into the provider
    when their paths are set.

    Raises:
        ConfigError: If the provider class is unknown
    """
    logger.info(f"Building '{spec.class_name}' provider '{spec.name}'")
    if spec.class_name == "replay":
        provider: StreamProvider = ReplayStreamProvider(
            Path(spec.input_path),
            None if spec.meta_information_path is None else Path(spec.meta_information_path),
            frame_period_us=spec.frame_period_us,
            name=spec.name,
        )
    elif spec.class_name == "live":
        provider = _live_provider(spec, OpenCVCamera())
    elif spec.class_name == "simulated":
        provider = _live_provider(spec, SimulatedCamera(spec.width, spec.height, spec.fps or 0.0))
    else:
        raise ConfigError(f"Unknown provider class: '{spec.class_name}'")

    try:
        if spec.intrinsic_path is not None:
            provider.set_intrinsic(load_intrinsics(Path(spec.intrinsic_path)))
        if spec.default_pose_path is not None:
            provider.set_default_pose(load_pose(Path(spec.default_pose_path)))
    except MonitoringError:
        provider.close()
        raise
    return provider


def build_message_stream(spec: MessageStreamConfig) -> MessageStream:
    """Replay a message file or listen on UDP ports, exactly one of both.

    Raises:
        ConfigError: If both or none of ``file_path`` and ``ports`` are set
    """
    if spec.file_path is not None and spec.ports:
        raise ConfigError("Message stream: both 'ports' and 'file_path' provided")
    if spec.file_path is not None:
        return ReplayMessageStream(Path(spec.file_path))
    if spec.ports:
        return UdpMessageStream(spec.ports)
    raise ConfigError("Message stream: neither 'ports' nor 'file_path' provided")


__all__ = ["build_message_stream", "build_stream_provider"]
