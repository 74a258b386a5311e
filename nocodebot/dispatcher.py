from __future__ import annotations

import threading
from collections.abc import Callable

from nocodebot.adapters.base import Transport
from nocodebot.domain import Event, EventType
from nocodebot.handlers import CommandHandler, InteractionHandler
from nocodebot.logging_setup import get_logger


class Dispatcher:
    """Pulls events from a transport one at a time and routes them by type."""

    def __init__(
        self,
        transport: Transport,
        commands: CommandHandler,
        interactions: InteractionHandler,
    ) -> None:
        self.transport = transport
        self.commands = commands
        self.interactions = interactions
        self.connected = False
        self._logger = get_logger(self.__class__.__name__)
        self._routes: dict[EventType, Callable[[Event], None]] = {
            EventType.CONNECTING: self._on_connecting,
            EventType.CONNECTION_ERROR: self._on_connection_error,
            EventType.CONNECTED: self._on_connected,
            EventType.EVENTS_API: self._on_events_api,
            EventType.SLASH_COMMAND: self._on_slash_command,
            EventType.INTERACTIVE: self.interactions.handle,
            EventType.UNKNOWN: self._on_unknown,
        }
        missing = set(EventType) - set(self._routes)
        if missing:
            raise TypeError(f"no handler for event types: {sorted(m.value for m in missing)}")

    def run(self, stop: threading.Event | None = None) -> None:
        """Process events until the transport's stream ends or ``stop`` is set."""
        stop = stop or threading.Event()
        for event in self.transport.events(stop):
            try:
                self.dispatch(event)
            except Exception:
                self._logger.exception("Failed to handle %s event", event.raw_type or event.type.value)
        self._logger.info("Event loop stopped.")

    def dispatch(self, event: Event) -> None:
        self._routes[event.type](event)

    # Internals -----------------------------------------------------------------
    def _on_connecting(self, event: Event) -> None:
        self._logger.info("Connecting to Slack with Socket Mode...")

    def _on_connection_error(self, event: Event) -> None:
        detail = event.error or "no detail"
        if self.connected:
            self._logger.warning("Connection lost. Retrying later... (%s)", detail)
        else:
            self._logger.warning("Connection failed. Retrying later... (%s)", detail)
        self.connected = False

    def _on_connected(self, event: Event) -> None:
        if self.connected:
            self._logger.info("Connected to Slack with Socket Mode (connection refreshed).")
        else:
            self._logger.info("Connected to Slack with Socket Mode.")
        self.connected = True

    def _on_events_api(self, event: Event) -> None:
        if event.request_id is not None:
            self.transport.ack(event.request_id)
        inner = event.payload.get("event") or {}
        self._logger.info("Event received: %s", inner.get("type", "unknown"))

    def _on_slash_command(self, event: Event) -> None:
        if event.command is None or not self.commands.supports(event.command.command):
            self._logger.debug("Ignoring unsupported command %s", event.command and event.command.command)
            return
        self.commands.handle(event)

    def _on_unknown(self, event: Event) -> None:
        self._logger.warning("Unexpected event type received: %s", event.raw_type)
