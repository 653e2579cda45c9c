import asyncio
from dataclasses import dataclass
from typing import Any, Callable, Optional


@dataclass
class PublishedEvent:
    topic: str
    data: Any


class CapturingBus:
    """
    EventBus stand-in: publish(topic, data) records everything and still
    fans out to subscribers. Useful for asserting what got published.
    """
    def __init__(self) -> None:
        self.events: list[PublishedEvent] = []
        self.subscribers: dict[str, list[Callable[[Any], None]]] = {}

    def subscribe(self, topic: str, handler: Callable[[Any], None]) -> None:
        self.subscribers.setdefault(topic, []).append(handler)

    def unsubscribe(self, topic: str, handler: Callable[[Any], None]) -> None:
        handlers = self.subscribers.get(topic, [])
        if handler in handlers:
            handlers.remove(handler)

    def publish(self, topic: str, data: Any) -> None:
        self.events.append(PublishedEvent(topic, data))
        for h in list(self.subscribers.get(topic, [])):
            h(data)

    def topics(self) -> list[str]:
        return [e.topic for e in self.events]

    def of(self, topic: str) -> list[Any]:
        return [e.data for e in self.events if e.topic == topic]

    def last(self, topic: str) -> Optional[PublishedEvent]:
        for e in reversed(self.events):
            if e.topic == topic:
                return e
        return None


class RecordingListener:
    """BridgeListener that writes every callback into `calls`."""
    def __init__(self) -> None:
        self.calls: list[tuple] = []

    def on_connected(self) -> None:
        self.calls.append(("connected",))

    def on_disconnected(self, error) -> None:
        self.calls.append(("disconnected", error))

    def on_message(self, topic: str, payload: str) -> None:
        self.calls.append(("message", topic, payload))


async def settle(rounds: int = 5) -> None:
    """Let queued callbacks and the outbound worker run."""
    for _ in range(rounds):
        await asyncio.sleep(0)
