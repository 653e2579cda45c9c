import logging
from typing import Optional

from myo_host.core.bridge import MessagingBridge
from myo_host.core.event_bus import EventBus
from myo_host.core.events import ClassificationReceived
from myo_host.core.grasp import GraspType
from myo_host.core.messages import AppState, BusTopic, Topic

log = logging.getLogger(__name__)


class EvaluationSession:
    """Evaluation phase: state markers out, latest classification in."""

    def __init__(self, bridge: MessagingBridge, bus: Optional[EventBus] = None) -> None:
        self._bridge = bridge
        self._bus = bus or bridge.bus
        self._active = False
        self.current: GraspType = GraspType.REST
        self.received = 0

    @property
    def is_active(self) -> bool:
        return self._active

    def start(self) -> None:
        if self._active:
            return
        self._bridge.publish(Topic.STATE, AppState.EVALUATION_START.value)
        self._bridge.publish(Topic.STATE, AppState.EVALUATING.value)
        self.current = GraspType.REST
        self.received = 0
        self._bus.subscribe(BusTopic.CLASSIFICATION, self._on_classification)
        self._active = True
        log.info("evaluation started")

    def end(self) -> None:
        if not self._active:
            return
        self._active = False
        self._bus.unsubscribe(BusTopic.CLASSIFICATION, self._on_classification)
        self._bridge.publish(Topic.STATE, AppState.EVALUATION_END.value)
        log.info("evaluation ended after %d classification(s)", self.received)

    def _on_classification(self, event: ClassificationReceived) -> None:
        self.current = event.grasp
        self.received += 1
