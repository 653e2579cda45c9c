# myo_host/core/router.py
from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional

from .errors import ParseError
from .events import ClassificationReceived, DeviceStateNotice
from .grasp import GraspType
from .messages import Topic
from myo_host.telemetry.models import TelemetrySample
from myo_host.telemetry.parser import parse_sensor_payload

log = logging.getLogger(__name__)

Handler = Callable[[Any], None]


class MessageRouter:
    """
    Turns raw (topic, payload) pairs into typed events and hands them to
    the handlers registered for that topic:

      sensor        -> TelemetrySample        (dropped if malformed)
      class_output  -> ClassificationReceived (always emitted)
      state         -> DeviceStateNotice      (verbatim)
      anything else -> ignored
    """

    def __init__(self, channel_count: int = 2) -> None:
        self.channel_count = int(channel_count)
        self._handlers: Dict[Topic, List[Handler]] = defaultdict(list)

        # Stats
        self.routed = 0
        self.parse_errors = 0
        self.ignored = 0

    def register(self, topic: Topic, handler: Handler) -> None:
        self._handlers[topic].append(handler)

    def route(self, topic: str, payload: str) -> Optional[Any]:
        """
        Parse and dispatch one message. Returns the event that was
        dispatched, or None if the message was dropped.
        """
        t = Topic.parse(topic)
        if t is None:
            self.ignored += 1
            log.debug("ignoring message on unknown topic %r", topic)
            return None

        if t is Topic.SENSOR:
            event = self._parse_sensor(payload)
        elif t is Topic.CLASS_OUTPUT:
            event = self._parse_classification(payload)
        elif t is Topic.STATE:
            event = DeviceStateNotice(text=payload)
        else:
            # training_prompt is outbound-only; an echo from the broker is not ours to handle
            self.ignored += 1
            return None

        if event is None:
            return None

        self.routed += 1
        self._dispatch(t, event)
        return event

    # ---------- parsing ----------

    def _parse_sensor(self, payload: str) -> Optional[TelemetrySample]:
        try:
            return parse_sensor_payload(payload, channel_count=self.channel_count)
        except ParseError as e:
            self.parse_errors += 1
            log.warning("dropping sensor payload: %s (expected 'v0,v1', e.g. '-0.19,1.12')", e)
            return None

    def _parse_classification(self, payload: str) -> ClassificationReceived:
        grasp, defaulted = GraspType.resolve(payload)
        if defaulted:
            log.debug("unrecognised class_output %r, defaulting to %s", payload, grasp.display)
        return ClassificationReceived(grasp=grasp, raw=payload, resolved_by_default=defaulted)

    def _dispatch(self, topic: Topic, event: Any) -> None:
        for h in list(self._handlers.get(topic, [])):
            try:
                h(event)
            except Exception:
                log.exception("router handler error on '%s'", topic.value)
