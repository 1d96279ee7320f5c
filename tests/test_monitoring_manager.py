"""Tests for the monitoring manager."""

from __future__ import annotations

from unittest.mock import MagicMock

import numpy as np
import pytest
import yaml

from capture.replay_provider import ReplayStreamProvider
from capture.stream_provider import StreamProvider
from exceptions import ConfigError, NotFoundError, StateError
from monitoring import MonitoringManager
from monitoring.message_stream import Message, MessageStream, ReplayMessageStream


class FakeProvider(StreamProvider):
    """Provider serving frames stamped in memory."""

    def __init__(self, stamps, name: str = "") -> None:
        super().__init__(name)
        for i, ts in enumerate(stamps):
            self._index.append(ts, i)
        self.closed = False

    def restart_stream(self) -> None:
        return None

    def update(self) -> None:
        return None

    def get_next_img(self) -> np.ndarray:
        return self._read_image(0)

    def is_stream_finished(self) -> bool:
        return False

    def is_live(self) -> bool:
        return False

    def _read_image(self, index: int) -> np.ndarray:
        return np.full((2, 2, 3), index, dtype=np.uint8)

    def close(self) -> None:
        self.closed = True


class FakeMessageStream(MessageStream):
    def update(self) -> None:
        return None


@pytest.fixture
def manager() -> MonitoringManager:
    manager = MonitoringManager()
    manager.add_image_provider("early", FakeProvider([0, 10, 20], "early"))
    manager.add_image_provider("late", FakeProvider([100, 110], "late"))
    return manager


def test_providers_not_started_are_omitted(manager) -> None:
    assert list(manager.get_calibrated_images(50)) == ["early"]
    assert list(manager.get_calibrated_images(150)) == ["early", "late"]
    assert manager.get_calibrated_images(150)["late"].image[0, 0, 0] == 1


def test_duplicated_provider_name(manager) -> None:
    with pytest.raises(StateError, match="already in collection"):
        manager.add_image_provider("early", FakeProvider([0]))


def test_unknown_provider(manager) -> None:
    with pytest.raises(NotFoundError):
        manager.get_image_provider("center")
    assert manager.get_image_providers_names() == ["early", "late"]


def test_bounds_cover_every_stream(manager) -> None:
    stream = FakeMessageStream()
    stream.add_message(Message(5, "referee"))
    stream.add_message(Message(500, "referee"))
    manager.set_message_stream(stream)

    assert manager.get_start() == 0
    assert manager.get_end() == 500


def test_bounds_ignore_empty_streams() -> None:
    manager = MonitoringManager()
    manager.add_image_provider("empty", FakeProvider([]))
    manager.add_image_provider("cam", FakeProvider([40, 60]))
    manager.set_message_stream(FakeMessageStream())

    assert manager.get_start() == 40
    assert manager.get_end() == 60


def test_bounds_of_empty_manager() -> None:
    manager = MonitoringManager()

    assert manager.get_start() == 0
    assert manager.get_end() == 0
    assert manager.get_offset() == 0
    assert manager.get_status(10).messages == {}


def test_offset_is_truncated_mean(manager) -> None:
    manager.set_message_stream(FakeMessageStream())
    manager.get_image_provider("early").set_offset(10)
    manager.get_image_provider("late").set_offset(11)

    assert manager.get_offset() == 7

    manager.set_offset(-4)
    assert manager.get_offset() == -4
    assert manager.get_message_stream().get_offset() == -4


def test_status_comes_from_message_stream(manager) -> None:
    stream = FakeMessageStream()
    stream.add_message(Message(5, "robot_1", {"positions": [[0.0, 1.0]]}))
    manager.set_message_stream(stream)

    assert manager.get_status(10).messages["robot_1"].payload == {"positions": [[0.0, 1.0]]}


def test_is_good_until_a_stream_finishes(manager) -> None:
    assert manager.is_good()

    finished = MagicMock(spec=StreamProvider)
    finished.is_stream_finished.return_value = True
    manager.add_image_provider("done", finished)

    assert not manager.is_good()


def test_close_saves_messages_once(tmp_path) -> None:
    stream = MagicMock(spec=MessageStream)
    provider = FakeProvider([0])
    manager = MonitoringManager(msg_collection_path=tmp_path / "messages.jsonl")
    manager.add_image_provider("cam", provider)
    manager.set_message_stream(stream)

    with manager:
        manager.update()

    manager.close()

    stream.save_messages.assert_called_once_with(tmp_path / "messages.jsonl")
    stream.update.assert_called_once()
    stream.close.assert_called_once()
    assert provider.closed


def test_close_releases_streams_when_save_fails(tmp_path) -> None:
    stream = MagicMock(spec=MessageStream)
    stream.save_messages.side_effect = OSError("disk full")
    provider = FakeProvider([0])
    manager = MonitoringManager(msg_collection_path=tmp_path / "messages.jsonl")
    manager.add_image_provider("cam", provider)
    manager.set_message_stream(stream)

    with pytest.raises(OSError):
        manager.close()
    assert provider.closed
    stream.close.assert_called_once()


def _write_session(tmp_path, document) -> str:
    path = tmp_path / "session.yaml"
    path.write_text(yaml.safe_dump(document))
    return str(path)


@pytest.fixture
def message_file(tmp_path):
    stream = FakeMessageStream()
    stream.add_message(Message(1500, "robot_1", {"positions": [[0.5, 0.5]]}))
    stream.save_messages(tmp_path / "messages.jsonl")
    return tmp_path / "messages.jsonl"


def test_from_config(tmp_path, make_video, message_file) -> None:
    make_video(tmp_path / "left.avi", 4)
    path = _write_session(
        tmp_path,
        {
            "image_providers": {
                "left": {"class_name": "replay", "input_path": "left.avi", "frame_period_us": 1000}
            },
            "message_manager": {"file_path": "messages.jsonl"},
            "live": False,
        },
    )

    with MonitoringManager.from_config(path) as manager:
        assert manager.get_image_providers_names() == ["left"]
        assert isinstance(manager.get_image_provider("left"), ReplayStreamProvider)
        assert isinstance(manager.get_message_stream(), ReplayMessageStream)
        assert not manager.is_live()
        assert manager.get_start() == 0
        assert manager.get_end() == 3000
        assert "robot_1" in manager.get_status(2000).messages


def test_from_config_unknown_file(tmp_path) -> None:
    with pytest.raises(ConfigError):
        MonitoringManager.from_config(tmp_path / "missing.yaml")


def test_from_config_rejects_unknown_class(tmp_path, message_file) -> None:
    path = _write_session(
        tmp_path,
        {
            "image_providers": {"left": {"class_name": "network"}},
            "message_manager": {"file_path": "messages.jsonl"},
            "live": False,
        },
    )

    with pytest.raises(ConfigError):
        MonitoringManager.from_config(path)


@pytest.mark.parametrize(
    "message_manager",
    [
        {},
        {"file_path": "messages.jsonl", "ports": [4000]},
    ],
)
def test_from_config_requires_exactly_one_message_source(tmp_path, message_file, message_manager) -> None:
    path = _write_session(
        tmp_path,
        {"image_providers": {}, "message_manager": message_manager, "live": True},
    )

    with pytest.raises(ConfigError, match="ports"):
        MonitoringManager.from_config(path)


def test_load_config_closes_built_providers_on_failure(tmp_path, make_video, monkeypatch) -> None:
    from monitoring import manager as manager_module

    built = []

    def fake_build(spec):
        provider = FakeProvider([0], spec.name)
        built.append(provider)
        return provider

    def failing_stream(spec):
        raise ConfigError("no stream")

    monkeypatch.setattr(manager_module, "build_stream_provider", fake_build)
    monkeypatch.setattr(manager_module, "build_message_stream", failing_stream)
    path = _write_session(
        tmp_path,
        {
            "image_providers": {"a": {"class_name": "simulated", "width": 4, "height": 4}},
            "message_manager": {"ports": [4000]},
            "live": True,
        },
    )

    with pytest.raises(ConfigError):
        MonitoringManager.from_config(path)
    assert [p.closed for p in built] == [True]
