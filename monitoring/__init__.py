"""Monitoring sessions: image providers synchronized with messages."""

from .factory import build_message_stream, build_stream_provider
from .manager import MonitoringManager
from .message_stream import (
    Message,
    MessageStatus,
    MessageStream,
    ReplayMessageStream,
    UdpMessageStream,
)

__all__ = [
    "Message",
    "MessageStatus",
    "MessageStream",
    "MonitoringManager",
    "ReplayMessageStream",
    "UdpMessageStream",
    "build_message_stream",
    "build_stream_provider",
]
