"""Synchronized access to several image streams and a message stream."""

from __future__ import annotations

import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from capture.stream_provider import StreamProvider
from configs.settings import SessionConfig, load_session_config
from contracts import CalibratedImage
from exceptions import MonitoringError, NotFoundError, StateError
from log_config.logger import get_logger, log_performance

from .factory import build_message_stream, build_stream_provider
from .message_stream import MessageStatus, MessageStream

logger = get_logger(__name__)


class MonitoringManager:
    """Owns the image providers and the message stream of a session.

    All queries use a single time axis, the one of the streams. Providers are
    kept in insertion order.

    Example:
        >>> with MonitoringManager.from_config("session.yaml") as manager:
        ...     now = manager.get_start()
        ...     while manager.is_good():
        ...         manager.update()
        ...         images = manager.get_calibrated_images(now)
        ...         now += 30000
    """

    def __init__(self, live: bool = False, msg_collection_path: Optional[Path] = None) -> None:
        self._providers: Dict[str, StreamProvider] = {}
        self._message_stream: Optional[MessageStream] = None
        self._live = live
        self._msg_collection_path = None if msg_collection_path is None else Path(msg_collection_path)
        self._closed = False

    @classmethod
    def from_config(cls, path: Path) -> "MonitoringManager":
        """Create a manager from a session configuration file."""
        manager = cls()
        manager.load_config(load_session_config(Path(path)))
        return manager

    def load_config(self, config: SessionConfig) -> None:
        """Build providers and message stream described by ``config``.

        Raises:
            ConfigError: If a provider class is unknown or the message stream
                is ambiguous
            StateError: If two providers share a name
        """
        try:
            for spec in config.image_providers:
                self.add_image_provider(spec.name, build_stream_provider(spec))
            self.set_message_stream(build_message_stream(config.message_manager))
        except MonitoringError:
            self._close_constituents()
            raise
        self._live = config.live
        if config.msg_collection_path is not None:
            self._msg_collection_path = Path(config.msg_collection_path)
        logger.info(
            f"Monitoring manager ready: providers={self.get_image_providers_names()}, live={self._live}"
        )

    def add_image_provider(self, name: str, provider: StreamProvider) -> None:
        if name in self._providers:
            raise StateError(f"Failed to add image provider: '{name}' already in collection")
        self._providers[name] = provider

    def set_message_stream(self, stream: MessageStream) -> None:
        if self._message_stream is not None and self._message_stream is not stream:
            self._message_stream.close()
        self._message_stream = stream

    def get_message_stream(self) -> Optional[MessageStream]:
        return self._message_stream

    def get_image_provider(self, name: str) -> StreamProvider:
        try:
            return self._providers[name]
        except KeyError:
            raise NotFoundError(f"No image provider named '{name}'") from None

    def get_image_providers_names(self) -> List[str]:
        return list(self._providers)

    def update(self) -> None:
        start = time.perf_counter()
        for provider in self._providers.values():
            provider.update()
        if self._message_stream is not None:
            self._message_stream.update()
        log_performance(
            f"update of {len(self._providers)} providers", (time.perf_counter() - start) * 1000.0
        )

    def get_calibrated_images(self, time_stamp: int) -> Dict[str, CalibratedImage]:
        """Images of every provider that has started at ``time_stamp``."""
        images = {}
        for name, provider in self._providers.items():
            if provider.get_start() <= time_stamp:
                images[name] = provider.get_calibrated_image(time_stamp)
        return images

    def get_status(self, time_stamp: int) -> MessageStatus:
        if self._message_stream is None:
            return MessageStatus(time_stamp=time_stamp)
        return self._message_stream.get_status(time_stamp)

    def _stream_bounds(self) -> List[tuple]:
        bounds = [
            (provider.get_start(), provider.get_end())
            for provider in self._providers.values()
            if provider.get_nb_frames() > 0
        ]
        if self._message_stream is not None and self._message_stream.get_messages():
            bounds.append((self._message_stream.get_start(), self._message_stream.get_end()))
        return bounds

    def get_start(self) -> int:
        """Earliest time stamp of non-empty streams, 0 when all are empty."""
        bounds = self._stream_bounds()
        return min(start for start, _ in bounds) if bounds else 0

    def get_end(self) -> int:
        bounds = self._stream_bounds()
        return max(end for _, end in bounds) if bounds else 0

    def is_good(self) -> bool:
        return not any(provider.is_stream_finished() for provider in self._providers.values())

    def is_live(self) -> bool:
        return self._live

    def set_offset(self, offset: int) -> None:
        if self._message_stream is not None:
            self._message_stream.set_offset(offset)
        for provider in self._providers.values():
            provider.set_offset(offset)

    def get_offset(self) -> int:
        """Mean offset of the message stream and every provider, truncated."""
        offsets = [provider.get_offset() for provider in self._providers.values()]
        if self._message_stream is not None:
            offsets.append(self._message_stream.get_offset())
        if not offsets:
            return 0
        total = sum(offsets)
        mean = abs(total) // len(offsets)
        return mean if total >= 0 else -mean

    def _close_constituents(self) -> None:
        for provider in self._providers.values():
            provider.close()
        if self._message_stream is not None:
            self._message_stream.close()

    def close(self) -> None:
        """Save collected messages if requested and release every stream."""
        if self._closed:
            return
        self._closed = True
        try:
            if self._msg_collection_path is not None and self._message_stream is not None:
                self._message_stream.save_messages(self._msg_collection_path)
        finally:
            self._close_constituents()
        logger.info("Monitoring manager closed")

    def __enter__(self) -> "MonitoringManager":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


__all__ = ["MonitoringManager"]
