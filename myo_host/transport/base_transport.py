from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Callable, Optional

from myo_host.core.settings import ConnectionConfig

MessageHandler = Callable[[str, str], None]
ConnectionLostHandler = Callable[[Optional[BaseException]], None]


class BaseTransport(ABC):
    """
    Base class for publish/subscribe transports. Handles:
      - registering the inbound message handler
      - registering the connection-lost handler
    Subclasses implement:
      - connect() / disconnect()
      - subscribe() / publish()

    Both handlers must be invoked on the event loop that called connect();
    transports with their own network thread marshal callbacks across.
    Failures are raised as TransportError.
    """

    def __init__(self) -> None:
        self._on_message: Optional[MessageHandler] = None
        self._on_connection_lost: Optional[ConnectionLostHandler] = None

    def set_message_handler(self, handler: MessageHandler) -> None:
        self._on_message = handler

    def set_connection_lost_handler(self, handler: ConnectionLostHandler) -> None:
        self._on_connection_lost = handler

    # Called by subclasses for every inbound (topic, payload)
    def _handle_message(self, topic: str, payload: str) -> None:
        if self._on_message:
            self._on_message(topic, payload)

    # Called by subclasses when the link drops without being asked to
    def _handle_connection_lost(self, error: Optional[BaseException]) -> None:
        if self._on_connection_lost:
            self._on_connection_lost(error)

    @abstractmethod
    async def connect(self, config: ConnectionConfig) -> None:
        ...

    @abstractmethod
    async def disconnect(self) -> None:
        ...

    @abstractmethod
    async def subscribe(self, topic: str) -> None:
        ...

    @abstractmethod
    async def publish(self, topic: str, payload: str) -> None:
        ...
