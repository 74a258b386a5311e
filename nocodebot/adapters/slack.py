from __future__ import annotations

import queue
import threading
from collections.abc import Iterator
from typing import Any

from slack_sdk.errors import SlackApiError
from slack_sdk.socket_mode import SocketModeClient
from slack_sdk.socket_mode.request import SocketModeRequest
from slack_sdk.socket_mode.response import SocketModeResponse
from slack_sdk.web import WebClient

from nocodebot.adapters.base import Transport
from nocodebot.domain import Event, EventType
from nocodebot.errors import TransportError
from nocodebot.logging_setup import get_logger


def event_from_request(req: SocketModeRequest) -> Event:
    payload = req.payload if isinstance(req.payload, dict) else {}
    return Event.from_request(req.type, req.envelope_id, payload)


class SlackTransport(Transport):
    """Slack Socket Mode transport.

    The SDK calls listeners on its own worker threads; they only enqueue. A single
    consumer drains the queue through :meth:`events`, preserving delivery order.
    """

    def __init__(
        self,
        app_token: str = "",
        bot_token: str = "",
        *,
        client: SocketModeClient | None = None,
        poll_interval: float = 0.5,
    ) -> None:
        self._client = client or SocketModeClient(
            app_token=app_token,
            web_client=WebClient(token=bot_token),
        )
        self._queue: queue.Queue[Event] = queue.Queue()
        self._poll_interval = poll_interval
        self._logger = get_logger(self.__class__.__name__)

        self._client.socket_mode_request_listeners.append(self._on_request)
        on_error = getattr(self._client, "on_error_listeners", None)
        if on_error is not None:
            on_error.append(self._on_error)

    # Public API -----------------------------------------------------------------
    def connect(self) -> None:
        self._queue.put(Event.lifecycle(EventType.CONNECTING))
        try:
            self._client.connect()
        except Exception as exc:
            self._queue.put(Event.lifecycle(EventType.CONNECTION_ERROR, error=str(exc)))
            raise TransportError(f"could not connect to Slack: {exc}") from exc
        self._queue.put(Event.lifecycle(EventType.CONNECTED))

    def events(self, stop: threading.Event) -> Iterator[Event]:
        while not stop.is_set():
            try:
                event = self._queue.get(timeout=self._poll_interval)
            except queue.Empty:
                continue
            yield event

    def ack(self, request_id: str, payload: dict[str, Any] | None = None) -> None:
        self._client.send_socket_mode_response(SocketModeResponse(envelope_id=request_id, payload=payload))

    def post_message(self, channel_id: str, blocks: list[dict[str, Any]], text: str | None = None) -> None:
        kwargs: dict[str, Any] = {"channel": channel_id, "blocks": blocks}
        if text:
            kwargs["text"] = text
        try:
            self._client.web_client.chat_postMessage(**kwargs)
        except SlackApiError as exc:
            raise TransportError(f"chat.postMessage failed: {exc.response.get('error')}") from exc
        except OSError as exc:
            raise TransportError(f"chat.postMessage failed: {exc}") from exc

    def close(self) -> None:
        self._client.close()

    # Internals -----------------------------------------------------------------
    def _on_request(self, client: SocketModeClient, req: SocketModeRequest) -> None:
        self._queue.put(event_from_request(req))

    def _on_error(self, error: Exception) -> None:
        self._queue.put(Event.lifecycle(EventType.CONNECTION_ERROR, error=str(error)))
