import logging
from collections import defaultdict
from typing import Callable, Dict, List, Any

log = logging.getLogger(__name__)


class EventBus:
    """
    In-process fan-out from the bridge and sessions to UI observers.

    Delivery is synchronous on the publishing thread (the event loop for
    everything in myo_host), in subscription order. A handler that raises
    is logged and skipped; the remaining handlers still get the event.
    """

    def __init__(self) -> None:
        self._subs: Dict[str, List[Callable[[Any], None]]] = defaultdict(list)

    def subscribe(self, topic: str, handler: Callable[[Any], None]) -> None:
        self._subs[topic].append(handler)

    def unsubscribe(self, topic: str, handler: Callable[[Any], None]) -> None:
        """Unknown handlers and topics are ignored."""
        handlers = self._subs.get(topic)
        if handlers and handler in handlers:
            handlers.remove(handler)

    def publish(self, topic: str, data: Any) -> None:
        # copy: a handler may unsubscribe itself while we iterate
        for h in list(self._subs.get(topic, [])):
            try:
                h(data)
            except Exception:
                log.exception("handler error on '%s'", topic)
