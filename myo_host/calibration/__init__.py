from .sequence import CALIBRATION_SEQUENCE, CalibrationStep, StepKind, build_sequence
from .sequencer import CalibrationRunState, CalibrationSequencer, TickOutcome
from .session import (
    CalibrationCancelled,
    CalibrationCompleted,
    CalibrationSession,
    CalibrationStepChanged,
    SessionStatus,
)

__all__ = [
    "CALIBRATION_SEQUENCE",
    "CalibrationStep",
    "StepKind",
    "build_sequence",
    "CalibrationRunState",
    "CalibrationSequencer",
    "TickOutcome",
    "CalibrationCancelled",
    "CalibrationCompleted",
    "CalibrationSession",
    "CalibrationStepChanged",
    "SessionStatus",
]
