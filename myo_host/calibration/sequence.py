# myo_host/calibration/sequence.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence, Tuple

from myo_host.core.grasp import CALIBRATED_GRASPS, GraspType


class StepKind(Enum):
    INITIAL_REST = "initial_rest"
    PREPARE = "prepare"
    GRASP = "grasp"
    RELAX = "relax"


@dataclass(frozen=True)
class CalibrationStep:
    kind: StepKind
    instruction: str
    image_key: str
    duration_s: int          # countdown start; the step lasts duration_s + 1 ticks
    prompt_label: str
    grasp: GraspType = GraspType.REST


INITIAL_REST_S = 19
REP_STEP_S = 2


def build_sequence(grasps: Sequence[GraspType] = CALIBRATED_GRASPS) -> Tuple[CalibrationStep, ...]:
    """
    Initial rest, then prepare / grasp / relax for each grasp type.
    Repetitions come from the sequencer looping grasp <-> relax, not from
    repeating entries here.
    """
    rest = GraspType.REST
    steps = [
        CalibrationStep(
            kind=StepKind.INITIAL_REST,
            instruction="Rest for 20 seconds",
            image_key=rest.image_key,
            duration_s=INITIAL_REST_S,
            prompt_label=rest.label,
        )
    ]
    for g in grasps:
        steps += [
            CalibrationStep(StepKind.PREPARE, f"Prepare for {g.display}", rest.image_key,
                            REP_STEP_S, rest.label, g),
            CalibrationStep(StepKind.GRASP, g.display, g.image_key,
                            REP_STEP_S, g.label, g),
            CalibrationStep(StepKind.RELAX, "Relax your hand", rest.image_key,
                            REP_STEP_S, rest.label, g),
        ]
    return tuple(steps)


CALIBRATION_SEQUENCE = build_sequence()
