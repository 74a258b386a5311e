from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections.abc import Iterator
from typing import Any

from nocodebot.domain import Event


class Transport(ABC):
    """Connection to a chat service that delivers events and accepts replies.

    Every event carrying a ``request_id`` must be acknowledged at most once via
    :meth:`ack`. Reconnecting after a dropped connection is the transport's job.
    """

    @abstractmethod
    def connect(self) -> None:  # pragma: no cover - interface
        ...

    @abstractmethod
    def events(self, stop: threading.Event) -> Iterator[Event]:  # pragma: no cover - interface
        """Yield inbound events in delivery order until ``stop`` is set."""

    @abstractmethod
    def ack(self, request_id: str, payload: dict[str, Any] | None = None) -> None:  # pragma: no cover - interface
        ...

    @abstractmethod
    def post_message(
        self, channel_id: str, blocks: list[dict[str, Any]], text: str | None = None
    ) -> None:  # pragma: no cover - interface
        """Post a new message. Raises TransportError on failure."""

    @abstractmethod
    def close(self) -> None:  # pragma: no cover - interface
        ...
