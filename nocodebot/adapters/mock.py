from __future__ import annotations

import threading
from collections import deque
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Any

from nocodebot.adapters.base import Transport
from nocodebot.domain import Event
from nocodebot.errors import TransportError
from nocodebot.logging_setup import get_logger


@dataclass
class Ack:
    request_id: str
    payload: dict[str, Any] | None


@dataclass
class Post:
    channel_id: str
    blocks: list[dict[str, Any]]
    text: str | None


class MockTransport(Transport):
    """In-memory transport that replays a scripted list of events.

    - Records every acknowledgment and posted message for inspection
    - ``fail_posts`` makes post_message raise TransportError
    - ``events()`` ends once the script is exhausted
    """

    def __init__(self, events: Iterable[Event] = (), *, fail_posts: bool = False) -> None:
        self._pending: deque[Event] = deque(events)
        self.fail_posts = fail_posts
        self.acks: list[Ack] = []
        self.posts: list[Post] = []
        self.connected = False
        self.closed = False
        self._logger = get_logger(self.__class__.__name__)

    # Public API -----------------------------------------------------------------
    def push(self, event: Event) -> None:
        self._pending.append(event)

    def connect(self) -> None:
        self.connected = True

    def events(self, stop: threading.Event) -> Iterator[Event]:
        while self._pending and not stop.is_set():
            yield self._pending.popleft()

    def ack(self, request_id: str, payload: dict[str, Any] | None = None) -> None:
        self.acks.append(Ack(request_id=request_id, payload=payload))

    def post_message(self, channel_id: str, blocks: list[dict[str, Any]], text: str | None = None) -> None:
        if self.fail_posts:
            raise TransportError(f"mock post to {channel_id} failed")
        self.posts.append(Post(channel_id=channel_id, blocks=blocks, text=text))

    def close(self) -> None:
        self.closed = True

    # Introspection helpers for tests -------------------------------------------
    def get_state_snapshot(self) -> dict[str, int]:
        return {
            "acks": len(self.acks),
            "posts": len(self.posts),
            "pending": len(self._pending),
        }
