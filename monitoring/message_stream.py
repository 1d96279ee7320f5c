"""Timestamped messages received alongside the video streams.

Messages are JSON objects, the content of ``payload`` is opaque here. Files
are written as JSON lines: a header line followed by one line per message.
"""

from __future__ import annotations

import json
import socket
from abc import ABC, abstractmethod
from bisect import bisect_right, insort
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from capture.clock import get_time_stamp
from contracts.versioning import SCHEMA_VERSION
from exceptions import FileWriteError, FormatError, StreamIOError
from log_config.logger import get_logger

logger = get_logger(__name__)


def _time_stamp(message: "Message") -> int:
    return message.time_stamp


@dataclass(frozen=True)
class Message:
    time_stamp: int
    source: str
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"time_stamp": self.time_stamp, "source": self.source, "payload": self.payload}

    @classmethod
    def from_dict(cls, data: Any) -> "Message":
        if not isinstance(data, dict) or "time_stamp" not in data or "source" not in data:
            raise FormatError("Message must be an object with 'time_stamp' and 'source'")
        payload = data.get("payload") or {}
        if not isinstance(payload, dict):
            raise FormatError("Message payload must be an object")
        try:
            return cls(time_stamp=int(data["time_stamp"]), source=str(data["source"]), payload=payload)
        except (TypeError, ValueError) as e:
            raise FormatError(f"Invalid message: {e}") from e


@dataclass(frozen=True)
class MessageStatus:
    """Latest message of every source at a given time.

    Attributes:
        time_stamp: Time of the query [us]
        messages: Source name to its most recent message
    """

    time_stamp: int
    messages: Dict[str, Message] = field(default_factory=dict)


class MessageStream(ABC):
    """Ordered collection of messages queried by time."""

    def __init__(self) -> None:
        self._messages: List[Message] = []
        # Same messages split by source, status lookups do not scan the history
        self._by_source: Dict[str, List[Message]] = {}
        self._offset: Optional[int] = None

    @abstractmethod
    def update(self) -> None:
        """Collect pending messages."""

    def add_message(self, message: Message) -> None:
        insort(self._messages, message, key=_time_stamp)
        insort(self._by_source.setdefault(message.source, []), message, key=_time_stamp)

    def get_messages(self) -> List[Message]:
        return list(self._messages)

    def get_status(self, time_stamp: int) -> MessageStatus:
        """Most recent message of each source received at or before ``time_stamp``."""
        latest: Dict[str, Message] = {}
        for source, messages in self._by_source.items():
            end = bisect_right(messages, time_stamp, key=_time_stamp)
            if end:
                latest[source] = messages[end - 1]
        return MessageStatus(time_stamp=time_stamp, messages=latest)

    def get_start(self) -> int:
        return self._messages[0].time_stamp if self._messages else 0

    def get_end(self) -> int:
        return self._messages[-1].time_stamp if self._messages else 0

    def set_offset(self, offset: int) -> None:
        self._offset = int(offset)

    def get_offset(self) -> int:
        return 0 if self._offset is None else self._offset

    def save_messages(self, path: Path) -> None:
        """Write every message collected so far as JSON lines.

        Raises:
            FileWriteError: If the file cannot be written
        """
        path = Path(path)
        header = {"_type": "header", "schema_version": SCHEMA_VERSION, "time_offset": self._offset}
        try:
            with open(path, "w", encoding="utf-8") as f:
                f.write(json.dumps(header) + "\n")
                for message in self._messages:
                    f.write(json.dumps(message.to_dict()) + "\n")
        except OSError as e:
            raise FileWriteError(f"Failed to write messages to '{path}': {e}") from e
        logger.info(f"Saved {len(self._messages)} messages to {path}")

    def close(self) -> None:
        return None


class ReplayMessageStream(MessageStream):
    """Messages read from a file written by :meth:`MessageStream.save_messages`."""

    def __init__(self, path: Path) -> None:
        super().__init__()
        self._path = Path(path)
        self._load()

    def _load(self) -> None:
        if not self._path.exists():
            raise StreamIOError(f"Message file not found: {self._path}")
        messages = []
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                for line_number, line in enumerate(f, start=1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        entry = json.loads(line)
                    except json.JSONDecodeError as e:
                        raise FormatError(f"{self._path}:{line_number}: invalid JSON: {e}") from e
                    if isinstance(entry, dict) and entry.get("_type") == "header":
                        if entry.get("time_offset") is not None:
                            self._offset = int(entry["time_offset"])
                        continue
                    messages.append(Message.from_dict(entry))
        except OSError as e:
            raise StreamIOError(f"Failed to read '{self._path}': {e}") from e

        for message in sorted(messages, key=_time_stamp):
            self.add_message(message)
        logger.info(f"Loaded {len(messages)} messages from {self._path}")

    def update(self) -> None:
        # The whole file is loaded at construction
        return None


class UdpMessageStream(MessageStream):
    """Messages received as JSON datagrams on one or several UDP ports.

    Messages are stamped on reception with ``clock``. The datagram may carry
    its ``source``, the sender address is used otherwise.
    """

    def __init__(
        self,
        ports: Sequence[int],
        host: str = "0.0.0.0",
        clock: Callable[[], int] = get_time_stamp,
        buffer_size: int = 65536,
    ) -> None:
        super().__init__()
        self._clock = clock
        self._buffer_size = buffer_size
        self._sockets: List[socket.socket] = []
        self._invalid_count = 0
        try:
            for port in ports:
                sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
                self._sockets.append(sock)
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
                sock.bind((host, int(port)))
                sock.setblocking(False)
                logger.info(f"Listening for messages on {host}:{port}")
        except OSError as e:
            self.close()
            raise StreamIOError(f"Failed to bind message socket: {e}") from e

    @property
    def ports(self) -> List[int]:
        return [sock.getsockname()[1] for sock in self._sockets]

    @property
    def invalid_count(self) -> int:
        return self._invalid_count

    def update(self) -> None:
        for sock in self._sockets:
            for data, addr in self._drain(sock):
                self._handle_datagram(data, addr)

    def _drain(self, sock: socket.socket) -> Iterable[tuple]:
        while True:
            try:
                yield sock.recvfrom(self._buffer_size)
            except BlockingIOError:
                return

    def _handle_datagram(self, data: bytes, addr: tuple) -> None:
        time_stamp = self._clock()
        try:
            content = json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            self._invalid_count += 1
            logger.warning(f"Ignoring invalid datagram from {addr[0]}:{addr[1]}: {e}")
            return
        if not isinstance(content, dict):
            self._invalid_count += 1
            logger.warning(f"Ignoring datagram from {addr[0]}:{addr[1]}: not a JSON object")
            return
        source = str(content.pop("source", f"{addr[0]}:{addr[1]}"))
        self.add_message(Message(time_stamp=time_stamp, source=source, payload=content))

    def close(self) -> None:
        for sock in self._sockets:
            sock.close()
        self._sockets = []


__all__ = [
    "Message",
    "MessageStatus",
    "MessageStream",
    "ReplayMessageStream",
    "UdpMessageStream",
]
