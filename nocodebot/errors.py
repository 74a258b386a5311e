from __future__ import annotations


class NocodeBotError(Exception):
    """Base class for errors raised by nocodebot."""


class ConfigError(NocodeBotError):
    """Configuration file is unreadable or fails validation."""


class TemplateLoadError(NocodeBotError):
    """A template directory or file could not be loaded."""

    def __init__(self, path, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class TransportError(NocodeBotError):
    """An outbound call to the chat transport failed."""
