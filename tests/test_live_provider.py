"""Tests for live acquisition on top of camera devices."""

from __future__ import annotations

import itertools
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from capture.camera_device import CameraDevice
from capture.live_provider import LiveStreamProvider
from capture.replay_provider import ReplayStreamProvider
from capture.simulated_camera import SimulatedCamera
from capture.timeout_utils import RetryPolicy
from contracts import Frame, IntrinsicParameters, VideoMetaInformation
from exceptions import CameraConnectionError, CameraTimeoutError, FormatError, StateError
from record.meta_information import load_meta_information


def _clock(start: int = 1000, step: int = 100):
    counter = itertools.count(start, step)
    return lambda: next(counter)


def _frame(value: int = 0) -> Frame:
    return Frame(
        camera_id="mock",
        frame_index=value,
        t_capture_us=0,
        image=np.full((4, 4, 3), value, dtype=np.uint8),
        width=4,
        height=4,
    )


@pytest.fixture
def fast_retry() -> RetryPolicy:
    return RetryPolicy(max_attempts=3, base_delay=0.0, max_delay=0.0, retry_on=(CameraTimeoutError,))


@pytest.fixture
def provider():
    camera = SimulatedCamera(width=32, height=24)
    with LiveStreamProvider(camera, "sim", name="cam", history_size=3, clock=_clock()) as p:
        yield p


def test_update_registers_frames(provider) -> None:
    for _ in range(3):
        provider.update()

    assert provider.get_nb_frames() == 3
    assert provider.get_start() == 1000
    assert provider.get_end() == 1200
    assert len(provider.get_meta_information().frames) == 3
    assert provider.is_live()


def test_calibrated_image_from_history(provider) -> None:
    for _ in range(3):
        provider.update()

    # Simulated frames are filled with their 1-based index
    assert provider.get_calibrated_image(1150).image[0, 0, 0] == 2
    assert provider.get_calibrated_image(5000).image[0, 0, 0] == 3


def test_frames_older_than_history_are_unavailable(provider) -> None:
    for _ in range(5):
        provider.update()

    assert provider.get_calibrated_image(1200).image[0, 0, 0] == 3
    with pytest.raises(StateError, match="no longer available"):
        provider.get_calibrated_image(1000)


def test_empty_stream_has_no_image(provider) -> None:
    assert provider.get_start() == 0
    with pytest.raises(StateError):
        provider.get_calibrated_image(10_000)


def test_restart_is_not_supported(provider) -> None:
    with pytest.raises(StateError):
        provider.restart_stream()
    assert not provider.is_stream_finished()


def test_next_img_returns_image(provider) -> None:
    img = provider.get_next_img()
    assert img.shape == (24, 32, 3)


def test_intrinsics_must_match_stream_size(provider) -> None:
    provider.set_intrinsic(IntrinsicParameters(100.0, 100.0, 50.0, 50.0, 640, 480))

    with pytest.raises(FormatError, match="Mismatch of sizes"):
        provider.update()


def test_read_timeouts_are_retried(fast_retry) -> None:
    device = MagicMock(spec=CameraDevice)
    device.is_open = True
    device.read_frame.side_effect = [CameraTimeoutError("late"), _frame(7)]

    provider = LiveStreamProvider(device, "0", retry_policy=fast_retry, clock=_clock())
    image = provider.get_next_img()

    assert image[0, 0, 0] == 7
    assert device.read_frame.call_count == 2
    device.open.assert_not_called()


def test_persistent_timeouts_propagate(fast_retry) -> None:
    device = MagicMock(spec=CameraDevice)
    device.is_open = True
    device.read_frame.side_effect = CameraTimeoutError("late")

    provider = LiveStreamProvider(device, "0", retry_policy=fast_retry, clock=_clock())

    with pytest.raises(CameraTimeoutError):
        provider.update()
    assert device.read_frame.call_count == 3
    assert not provider.is_stream_finished()


def test_connection_loss_triggers_reconnect(fast_retry) -> None:
    device = MagicMock(spec=CameraDevice)
    device.is_open = True
    device.read_frame.side_effect = [CameraConnectionError("unplugged"), _frame(3)]

    provider = LiveStreamProvider(device, "0", retry_policy=fast_retry, clock=_clock())
    provider.update()

    device.close.assert_called_once()
    device.open.assert_called_once_with("0")
    assert provider.get_nb_frames() == 1


def test_failed_reconnect_finishes_stream(fast_retry) -> None:
    device = MagicMock(spec=CameraDevice)
    device.is_open = True
    device.read_frame.side_effect = CameraConnectionError("unplugged")
    device.open.side_effect = CameraConnectionError("gone")

    provider = LiveStreamProvider(device, "0", retry_policy=fast_retry, clock=_clock())

    with pytest.raises(CameraConnectionError):
        provider.update()
    assert provider.is_stream_finished()
    with pytest.raises(StateError):
        provider.get_next_img()


def test_output_prefix_records_video_and_meta(tmp_path) -> None:
    prefix = tmp_path / "record"
    camera = SimulatedCamera(width=32, height=24)

    with LiveStreamProvider(camera, "sim", output_prefix=str(prefix), fps=25.0, clock=_clock()) as provider:
        for _ in range(4):
            provider.update()

    assert (tmp_path / "record.avi").stat().st_size > 0
    meta = load_meta_information(tmp_path / "record.json")
    assert [entry.time_stamp for entry in meta.frames] == [1000, 1100, 1200, 1300]
    assert meta.time_offset is not None
    assert not camera.is_open


def test_clock_ties_give_increasing_stamps() -> None:
    camera = SimulatedCamera(width=8, height=8)

    with LiveStreamProvider(camera, "sim", clock=lambda: 500) as provider:
        for _ in range(3):
            provider.update()

        stamps = [entry.time_stamp for entry in provider.get_meta_information().frames]
        assert stamps == [500, 501, 502]


def test_tied_recording_replays(tmp_path) -> None:
    prefix = tmp_path / "tied"
    camera = SimulatedCamera(width=32, height=24)

    with LiveStreamProvider(camera, "sim", output_prefix=str(prefix), fps=25.0, clock=lambda: 7) as provider:
        for _ in range(3):
            provider.update()

    with ReplayStreamProvider(tmp_path / "tied.avi", tmp_path / "tied.json") as replay:
        assert replay.get_nb_frames() == 3
        assert replay.get_end() == 9


def test_meta_information_is_not_rebuilt_per_frame(provider) -> None:
    with patch.object(VideoMetaInformation, "with_frame") as with_frame:
        for _ in range(50):
            provider.update()

    with_frame.assert_not_called()
    snapshot = provider.get_meta_information()
    assert len(snapshot.frames) == 50
    provider.update()
    # Snapshots are frozen, later frames do not leak into them
    assert len(snapshot.frames) == 50
    assert len(provider.get_meta_information().frames) == 51
