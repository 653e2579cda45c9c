# myo_host/calibration/session.py
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from myo_host.core.bridge import MessagingBridge
from myo_host.core.event_bus import EventBus
from myo_host.core.grasp import GraspType
from myo_host.core.messages import AppState, BusTopic, CANCEL_PROMPT, Topic
from myo_host.core.settings import CalibrationSettings
from .sequence import CALIBRATION_SEQUENCE, CalibrationStep
from .sequencer import CalibrationRunState, CalibrationSequencer, TickOutcome

log = logging.getLogger(__name__)


class SessionStatus(Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class CalibrationStepChanged:
    step_index: int
    step: CalibrationStep
    seconds_remaining: int
    repetition_count: int
    display_seconds: int
    progress: float
    repetition_label: str


@dataclass(frozen=True)
class CalibrationCompleted:
    repetitions: int


@dataclass(frozen=True)
class CalibrationCancelled:
    step_index: int
    repetition_count: int


class CalibrationSession:
    """
    Runs one calibration: publishes the start notice, walks the
    CalibrationSequencer on a one-second tick and publishes a training
    prompt each time the prompt label changes.

    The timer is an asyncio task on the bridge's loop; tick() is
    synchronous, so ticks never overlap and nothing can run between a
    cancel() and the timer stopping.
    """

    def __init__(
        self,
        bridge: MessagingBridge,
        bus: Optional[EventBus] = None,
        settings: Optional[CalibrationSettings] = None,
        sequence: Sequence[CalibrationStep] = CALIBRATION_SEQUENCE,
    ) -> None:
        self.settings = settings or CalibrationSettings()
        self._bridge = bridge
        self._bus = bus or bridge.bus
        self._sequencer = CalibrationSequencer(sequence, repetitions=self.settings.repetitions)
        self._status = SessionStatus.IDLE
        self._timer: Optional[asyncio.Task] = None

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def is_running(self) -> bool:
        return self._status is SessionStatus.RUNNING

    @property
    def state(self) -> Optional[CalibrationRunState]:
        return self._sequencer.state

    @property
    def current_step(self) -> Optional[CalibrationStep]:
        return self._sequencer.current_step

    # ---------- Lifecycle ----------

    def start(self, run_timer: bool = True) -> None:
        """
        Send the start notice, then load step 0.

        With run_timer=False the caller drives tick() itself.
        """
        if self._status is not SessionStatus.IDLE:
            raise RuntimeError(f"calibration session already {self._status.value}")

        self._bridge.publish(Topic.STATE, AppState.CALIBRATION_START.value)

        self._sequencer.start()
        self._status = SessionStatus.RUNNING
        log.info("calibration started")
        self._on_step_loaded()

        if run_timer:
            self._timer = asyncio.get_running_loop().create_task(self._run_timer())

    def cancel(self) -> bool:
        """Stop immediately and tell the device. Returns False if not running."""
        if self._status is not SessionStatus.RUNNING:
            return False

        self._status = SessionStatus.CANCELLED
        self._stop_timer()
        st = self._sequencer.state

        self._bridge.publish(Topic.TRAINING_PROMPT, CANCEL_PROMPT)
        log.info("calibration cancelled at step %d", st.step_index)
        self._bus.publish(
            BusTopic.CALIBRATION_CANCELLED,
            CalibrationCancelled(step_index=st.step_index, repetition_count=st.repetition_count),
        )
        return True

    async def wait(self) -> SessionStatus:
        """Wait for the timer to finish (completion or cancel)."""
        if self._timer is not None:
            await asyncio.gather(self._timer, return_exceptions=True)
        return self._status

    # ---------- Timer ----------

    def tick(self) -> None:
        if self._status is not SessionStatus.RUNNING:
            return

        outcome = self._sequencer.tick()
        if outcome is TickOutcome.COUNTDOWN:
            self._bus.publish(BusTopic.CALIBRATION_TICK, self._progress_event())
        elif outcome is TickOutcome.STEP_CHANGED:
            self._on_step_loaded()
        else:
            self._complete()

    async def _run_timer(self) -> None:
        interval = float(self.settings.tick_interval_s)
        while self._status is SessionStatus.RUNNING:
            await asyncio.sleep(interval)
            if self._status is not SessionStatus.RUNNING:
                break
            self.tick()

    def _stop_timer(self) -> None:
        timer, self._timer = self._timer, None
        if timer is not None and timer is not asyncio.current_task():
            timer.cancel()

    # ---------- Step handling ----------

    def _on_step_loaded(self) -> None:
        step = self._sequencer.current_step
        log.debug("calibration step %d: %s", self._sequencer.state.step_index, step.instruction)
        self._bus.publish(BusTopic.CALIBRATION_STEP, self._progress_event())
        self._publish_prompt(step.prompt_label)

    def _publish_prompt(self, label: str) -> None:
        st = self._sequencer.state
        if label == st.current_prompt_label:
            return
        st.current_prompt_label = label
        self._bridge.publish(Topic.TRAINING_PROMPT, label)

    def _complete(self) -> None:
        self._status = SessionStatus.COMPLETED
        self._stop_timer()

        self._publish_prompt(GraspType.REST.label)
        self._bridge.publish(Topic.STATE, AppState.CALIBRATION_END.value)
        log.info("calibration complete")
        self._bus.publish(
            BusTopic.CALIBRATION_COMPLETED,
            CalibrationCompleted(repetitions=self._sequencer.repetitions),
        )

    def _progress_event(self) -> CalibrationStepChanged:
        st = self._sequencer.state
        return CalibrationStepChanged(
            step_index=st.step_index,
            step=self._sequencer.current_step,
            seconds_remaining=st.seconds_remaining,
            repetition_count=st.repetition_count,
            display_seconds=st.display_seconds,
            progress=st.progress,
            repetition_label=st.repetition_label,
        )
