# myo_host/core/errors.py
from __future__ import annotations

from typing import Optional


class MyoHostError(Exception):
    """Base class for everything raised inside myo_host."""


class ConfigurationError(MyoHostError):
    """Invalid host/port/profile. The only error callers must handle inline."""


class TransportError(MyoHostError):
    """Connect / publish / subscribe failure reported by the transport."""

    def __init__(self, message: str, *, topic: Optional[str] = None) -> None:
        super().__init__(message)
        self.topic = topic


class ParseError(MyoHostError):
    """Inbound payload does not match the topic's grammar."""

    def __init__(self, topic: str, payload: str, reason: str) -> None:
        super().__init__(f"{topic}: {reason} (payload={payload!r})")
        self.topic = topic
        self.payload = payload
        self.reason = reason
