from .base import Transport
from .mock import MockTransport
from .slack import SlackTransport

__all__ = ["Transport", "MockTransport", "SlackTransport"]
