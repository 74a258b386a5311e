from __future__ import annotations

import copy
import json
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Template(BaseModel):
    """A Block Kit message loaded verbatim from a template file."""

    model_config = ConfigDict(frozen=True)

    name: str
    source: str
    payload: dict[str, Any] = Field(default_factory=dict, repr=False)

    @classmethod
    def from_source(cls, name: str, source: str) -> Template:
        payload = json.loads(source)
        if not isinstance(payload, dict):
            raise ValueError("template must be a JSON object")
        return cls(name=name, source=source, payload=payload)

    def render(self) -> str:
        return self.source

    def as_payload(self) -> dict[str, Any]:
        # Callers get their own copy; the stored payload is never handed out.
        return copy.deepcopy(self.payload)

    @property
    def blocks(self) -> list[dict[str, Any]]:
        return copy.deepcopy(self.payload.get("blocks") or [])

    @property
    def text(self) -> str | None:
        return self.payload.get("text")


class Workflow(BaseModel):
    """A user-facing name pointing at a template file."""

    model_config = ConfigDict(frozen=True)

    name: str
    file: str


class CompletionRecord(BaseModel):
    """One finished interactive action."""

    model_config = ConfigDict(frozen=True)

    user: str
    timestamp: datetime
    value: str
    message: str | None = None


class EventType(str, Enum):
    CONNECTING = "connecting"
    CONNECTION_ERROR = "connection_error"
    CONNECTED = "connected"
    EVENTS_API = "events_api"
    SLASH_COMMAND = "slash_commands"
    INTERACTIVE = "interactive"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, raw: str) -> EventType:
        try:
            return cls(raw)
        except ValueError:
            return cls.UNKNOWN


class SlashCommand(BaseModel):
    command: str
    text: str = ""
    user_name: str = ""
    channel_id: str = ""

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> SlashCommand:
        return cls(
            command=payload.get("command", ""),
            text=(payload.get("text") or "").strip(),
            user_name=payload.get("user_name", ""),
            channel_id=payload.get("channel_id", ""),
        )


class BlockAction(BaseModel):
    action_id: str
    value: str = ""


class InteractionType(str, Enum):
    BLOCK_ACTIONS = "block_actions"


class InteractionCallback(BaseModel):
    type: str
    user_name: str = ""
    channel_id: str = ""
    actions: list[BlockAction] = Field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> InteractionCallback:
        user = payload.get("user") or {}
        channel = payload.get("channel") or {}
        actions = [
            BlockAction(action_id=a.get("action_id", ""), value=a.get("value") or "")
            for a in payload.get("actions") or []
        ]
        return cls(
            type=payload.get("type", ""),
            user_name=user.get("name") or user.get("username") or "",
            channel_id=channel.get("id", ""),
            actions=actions,
        )

    @property
    def is_block_actions(self) -> bool:
        return self.type == InteractionType.BLOCK_ACTIONS.value


class Event(BaseModel):
    """An inbound event pulled from a transport.

    ``request_id`` is the acknowledgment handle; lifecycle events have none.
    """

    type: EventType
    raw_type: str = ""
    request_id: str | None = None
    payload: dict[str, Any] = Field(default_factory=dict)
    command: SlashCommand | None = None
    interaction: InteractionCallback | None = None
    error: str | None = None

    @classmethod
    def lifecycle(cls, type: EventType, error: str | None = None) -> Event:
        return cls(type=type, raw_type=type.value, error=error)

    @classmethod
    def from_request(cls, raw_type: str, request_id: str | None, payload: dict[str, Any]) -> Event:
        event_type = EventType.parse(raw_type)
        command = SlashCommand.from_payload(payload) if event_type == EventType.SLASH_COMMAND else None
        interaction = (
            InteractionCallback.from_payload(payload) if event_type == EventType.INTERACTIVE else None
        )
        return cls(
            type=event_type,
            raw_type=raw_type,
            request_id=request_id,
            payload=payload,
            command=command,
            interaction=interaction,
        )
