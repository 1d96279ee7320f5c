"""Tests for message streams."""

from __future__ import annotations

import json
import socket
import time

import pytest

from exceptions import FormatError, StreamIOError
from monitoring.message_stream import Message, MessageStream, ReplayMessageStream, UdpMessageStream


class ListMessageStream(MessageStream):
    """Stream filled in memory."""

    def __init__(self, messages):
        super().__init__()
        for message in messages:
            self.add_message(message)

    def update(self) -> None:
        return None


@pytest.fixture
def stream() -> ListMessageStream:
    return ListMessageStream(
        [
            Message(30, "robot_1", {"positions": [[1.0, 0.0]]}),
            Message(10, "robot_1", {"positions": [[0.0, 0.0]]}),
            Message(20, "referee", {"state": "playing"}),
        ]
    )


def test_messages_are_ordered(stream) -> None:
    assert [m.time_stamp for m in stream.get_messages()] == [10, 20, 30]
    assert stream.get_start() == 10
    assert stream.get_end() == 30


def test_status_keeps_latest_message_per_source(stream) -> None:
    status = stream.get_status(25)

    assert status.time_stamp == 25
    assert set(status.messages) == {"robot_1", "referee"}
    assert status.messages["robot_1"].payload == {"positions": [[0.0, 0.0]]}


def test_status_before_any_message(stream) -> None:
    assert stream.get_status(5).messages == {}


def test_status_with_many_sources() -> None:
    messages = [
        Message(time_stamp=(i * 7919) % 5000, source=f"robot_{i % 12}", payload={"seq": i})
        for i in range(3000)
    ]
    stream = ListMessageStream(messages)

    for query in (-1, 0, 1234, 2500, 4999, 10_000):
        expected = {}
        for message in sorted(messages, key=lambda m: m.time_stamp):
            if message.time_stamp <= query:
                expected[message.source] = message
        assert stream.get_status(query).messages == expected


def test_status_with_equal_stamps_keeps_last_received() -> None:
    stream = ListMessageStream(
        [Message(10, "robot_1", {"seq": 1}), Message(10, "robot_1", {"seq": 2}), Message(10, "referee")]
    )

    status = stream.get_status(10)

    assert status.messages["robot_1"].payload == {"seq": 2}
    assert set(status.messages) == {"robot_1", "referee"}


def test_offset_defaults_to_zero(stream) -> None:
    assert stream.get_offset() == 0
    stream.set_offset(12)
    assert stream.get_offset() == 12


def test_save_and_replay(tmp_path, stream) -> None:
    stream.set_offset(7)
    stream.save_messages(tmp_path / "messages.jsonl")

    replayed = ReplayMessageStream(tmp_path / "messages.jsonl")
    replayed.update()

    assert replayed.get_messages() == stream.get_messages()
    assert replayed.get_offset() == 7


def test_replay_missing_file(tmp_path) -> None:
    with pytest.raises(StreamIOError):
        ReplayMessageStream(tmp_path / "missing.jsonl")


def test_replay_invalid_line(tmp_path) -> None:
    path = tmp_path / "messages.jsonl"
    path.write_text(json.dumps({"time_stamp": 1, "source": "a"}) + "\n{not json\n")

    with pytest.raises(FormatError, match=":2:"):
        ReplayMessageStream(path)


def test_message_requires_source() -> None:
    with pytest.raises(FormatError):
        Message.from_dict({"time_stamp": 3})


class TestUdpMessageStream:
    def _send(self, port: int, data: bytes) -> None:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.sendto(data, ("127.0.0.1", port))

    def _update_until(self, stream, count: int) -> None:
        deadline = time.monotonic() + 2.0
        while len(stream.get_messages()) < count and time.monotonic() < deadline:
            stream.update()
            time.sleep(0.01)

    def test_receives_json_datagrams(self) -> None:
        stamps = iter(range(100, 200, 10))
        stream = UdpMessageStream([0], host="127.0.0.1", clock=lambda: next(stamps))
        try:
            port = stream.ports[0]
            self._send(port, json.dumps({"source": "robot_2", "positions": [[1, 2]]}).encode())
            self._send(port, b"garbage")
            self._send(port, json.dumps({"state": "ready"}).encode())
            self._update_until(stream, 2)

            messages = stream.get_messages()
            assert len(messages) == 2
            assert messages[0].source == "robot_2"
            assert messages[0].payload == {"positions": [[1, 2]]}
            assert messages[1].source.startswith("127.0.0.1:")
            assert stream.invalid_count == 1
        finally:
            stream.close()

    def test_update_without_data_does_not_block(self) -> None:
        stream = UdpMessageStream([0], host="127.0.0.1")
        try:
            stream.update()
            assert stream.get_messages() == []
        finally:
            stream.close()
