from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from myo_host.calibration.session import CalibrationSession
from myo_host.core.bridge import MessagingBridge
from myo_host.core.event_bus import EventBus
from myo_host.core.events import WorkflowRejected
from myo_host.core.messages import BusTopic
from myo_host.core.settings import CalibrationSettings
from .evaluation import EvaluationSession

log = logging.getLogger(__name__)


class WorkflowController:
    """
    The calls a UI makes into the core:
    connect / disconnect / start_calibration / cancel_calibration /
    start_evaluation / end_evaluation.

    At most one calibration or evaluation runs at a time, and neither
    starts without a live connection.
    """

    def __init__(
        self,
        bridge: MessagingBridge,
        bus: Optional[EventBus] = None,
        calibration_settings: Optional[CalibrationSettings] = None,
    ) -> None:
        self.bridge = bridge
        self.bus = bus or bridge.bus
        self.calibration_settings = calibration_settings or CalibrationSettings()
        self.calibration: Optional[CalibrationSession] = None
        self.evaluation: Optional[EvaluationSession] = None

    # ---------- Connection ----------

    def connect(self, host: Optional[str] = None, port: Optional[Any] = None) -> asyncio.Task:
        """Raises ConfigurationError for a bad host/port; everything else is an event."""
        return self.bridge.connect(host, port)

    def disconnect(self) -> None:
        self.cancel_calibration()
        self.end_evaluation()
        self.bridge.disconnect()

    # ---------- Calibration ----------

    def start_calibration(self, run_timer: bool = True) -> Optional[CalibrationSession]:
        if not self._can_start("start_calibration"):
            return None
        session = CalibrationSession(self.bridge, self.bus, self.calibration_settings)
        session.start(run_timer=run_timer)
        self.calibration = session
        return session

    def cancel_calibration(self) -> bool:
        if self.calibration is None:
            return False
        return self.calibration.cancel()

    # ---------- Evaluation ----------

    def start_evaluation(self) -> Optional[EvaluationSession]:
        if not self._can_start("start_evaluation"):
            return None
        session = EvaluationSession(self.bridge, self.bus)
        session.start()
        self.evaluation = session
        return session

    def end_evaluation(self) -> bool:
        if self.evaluation is None or not self.evaluation.is_active:
            return False
        self.evaluation.end()
        return True

    # ---------- Guards ----------

    def _can_start(self, action: str) -> bool:
        if not self.bridge.is_connected:
            return self._reject(action, "not connected")
        if self.calibration is not None and self.calibration.is_running:
            return self._reject(action, "calibration in progress")
        if self.evaluation is not None and self.evaluation.is_active:
            return self._reject(action, "evaluation in progress")
        return True

    def _reject(self, action: str, reason: str) -> bool:
        log.warning("%s rejected: %s", action, reason)
        self.bus.publish(BusTopic.WORKFLOW_REJECTED, WorkflowRejected(action=action, reason=reason))
        return False
