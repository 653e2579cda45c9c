# myo_host/calibration/sequencer.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from myo_host.core.grasp import GraspType
from .sequence import CALIBRATION_SEQUENCE, CalibrationStep, StepKind

DEFAULT_REPETITIONS = 10


@dataclass
class CalibrationRunState:
    step_index: int
    seconds_remaining: int
    total_seconds_for_step: int
    repetition_count: int = 0        # 0 until the initial rest completes
    current_prompt_label: str = GraspType.REST.label
    repetitions: int = DEFAULT_REPETITIONS

    @property
    def display_seconds(self) -> int:
        return self.seconds_remaining + 1

    @property
    def progress(self) -> float:
        if self.total_seconds_for_step <= 0:
            return 1.0
        return (self.total_seconds_for_step - self.seconds_remaining) / self.total_seconds_for_step

    @property
    def repetition_label(self) -> str:
        if self.step_index == 0:
            return ""
        return f"Repetition: {self.repetition_count}/{self.repetitions}"


class TickOutcome(Enum):
    COUNTDOWN = "countdown"
    STEP_CHANGED = "step_changed"
    COMPLETED = "completed"


class CalibrationSequencer:
    """
    Deterministic step machine behind a calibration session.

    One tick() per second. When the countdown goes negative the current
    step's transition fires:

      INITIAL_REST -> repetition_count = 1, next step
      PREPARE      -> next step
      GRASP        -> count < N: count += 1, on to RELAX
                      else:      count = 1, skip RELAX to the next PREPARE
      RELAX        -> count <= N: back to GRASP, else next step

    Running past the last step completes the sequence.
    """

    def __init__(
        self,
        sequence: Sequence[CalibrationStep] = CALIBRATION_SEQUENCE,
        repetitions: int = DEFAULT_REPETITIONS,
    ) -> None:
        if not sequence:
            raise ValueError("calibration sequence is empty")
        if repetitions < 1:
            raise ValueError(f"repetitions must be >= 1, got {repetitions}")
        self.sequence = tuple(sequence)
        self.repetitions = int(repetitions)
        self.state: Optional[CalibrationRunState] = None
        self.finished = False

    @property
    def current_step(self) -> Optional[CalibrationStep]:
        if self.state is None or self.finished:
            return None
        return self.sequence[self.state.step_index]

    def start(self) -> CalibrationRunState:
        first = self.sequence[0]
        self.state = CalibrationRunState(
            step_index=0,
            seconds_remaining=first.duration_s,
            total_seconds_for_step=first.duration_s,
            repetitions=self.repetitions,
        )
        self.finished = False
        return self.state

    def tick(self) -> TickOutcome:
        if self.state is None:
            raise RuntimeError("sequencer not started")
        if self.finished:
            return TickOutcome.COMPLETED

        st = self.state
        st.seconds_remaining -= 1
        if st.seconds_remaining >= 0:
            return TickOutcome.COUNTDOWN

        st.step_index = self._next_index()
        if st.step_index >= len(self.sequence):
            self.finished = True
            st.seconds_remaining = 0
            return TickOutcome.COMPLETED

        duration = self.sequence[st.step_index].duration_s
        st.seconds_remaining = duration
        st.total_seconds_for_step = duration
        return TickOutcome.STEP_CHANGED

    # ---------- transitions ----------

    def _next_index(self) -> int:
        step = self.sequence[self.state.step_index]
        if step.kind is StepKind.INITIAL_REST:
            return self._finish_initial_rest()
        if step.kind is StepKind.PREPARE:
            return self._advance(1)
        if step.kind is StepKind.GRASP:
            return self._finish_grasp()
        if step.kind is StepKind.RELAX:
            return self._finish_relax()
        return self._advance(1)

    def _advance(self, n: int) -> int:
        return self.state.step_index + n

    def _finish_initial_rest(self) -> int:
        self.state.repetition_count = 1
        return self._advance(1)

    def _finish_grasp(self) -> int:
        st = self.state
        if st.repetition_count < self.repetitions:
            st.repetition_count += 1
            return self._advance(1)          # relax
        st.repetition_count = 1
        return self._advance(2)              # next grasp type's prepare

    def _finish_relax(self) -> int:
        if self.state.repetition_count <= self.repetitions:
            return self._advance(-1)         # grasp again
        return self._advance(1)
