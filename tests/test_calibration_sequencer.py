import pytest

from myo_host.calibration.sequence import CALIBRATION_SEQUENCE, StepKind, build_sequence
from myo_host.calibration.sequencer import CalibrationSequencer, TickOutcome
from myo_host.core.grasp import GraspType


def _run_to_end(seq: CalibrationSequencer, limit: int = 10_000):
    """Tick until COMPLETED; returns [(step_index, repetition_count)] at each step load."""
    visits = [(seq.state.step_index, seq.state.repetition_count)]
    ticks = 0
    while True:
        ticks += 1
        assert ticks < limit, "sequencer never completed"
        outcome = seq.tick()
        if outcome is TickOutcome.STEP_CHANGED:
            visits.append((seq.state.step_index, seq.state.repetition_count))
        elif outcome is TickOutcome.COMPLETED:
            return visits, ticks


def test_sequence_layout():
    kinds = [s.kind for s in CALIBRATION_SEQUENCE]
    assert kinds == [
        StepKind.INITIAL_REST,
        StepKind.PREPARE, StepKind.GRASP, StepKind.RELAX,
        StepKind.PREPARE, StepKind.GRASP, StepKind.RELAX,
    ]
    assert CALIBRATION_SEQUENCE[0].instruction == "Rest for 20 seconds"
    assert CALIBRATION_SEQUENCE[0].duration_s == 19
    assert CALIBRATION_SEQUENCE[1].instruction == "Prepare for Power Sphere Grasp"
    assert CALIBRATION_SEQUENCE[2].prompt_label == "power sphere"
    assert CALIBRATION_SEQUENCE[5].image_key == "large_diameter"
    assert CALIBRATION_SEQUENCE[6].instruction == "Relax your hand"
    assert all(s.duration_s == 2 for s in CALIBRATION_SEQUENCE[1:])


def test_start_state():
    seq = CalibrationSequencer()
    st = seq.start()

    assert st.step_index == 0
    assert st.seconds_remaining == 19
    assert st.display_seconds == 20
    assert st.repetition_count == 0
    assert st.repetition_label == ""
    assert st.progress == 0.0
    assert seq.current_step.kind is StepKind.INITIAL_REST


def test_tick_before_start_is_an_error():
    with pytest.raises(RuntimeError):
        CalibrationSequencer().tick()


def test_initial_rest_lasts_twenty_ticks_then_sets_first_repetition():
    seq = CalibrationSequencer()
    seq.start()

    outcomes = [seq.tick() for _ in range(20)]

    assert outcomes[:19] == [TickOutcome.COUNTDOWN] * 19
    assert outcomes[19] is TickOutcome.STEP_CHANGED
    assert seq.state.step_index == 1
    assert seq.state.repetition_count == 1
    assert seq.state.repetition_label == "Repetition: 1/10"
    assert seq.state.display_seconds == 3


def test_each_grasp_repeats_then_moves_to_the_next_prepare():
    seq = CalibrationSequencer()
    seq.start()
    visits, _ = _run_to_end(seq)

    steps = [i for i, _ in visits]
    first_grasp = [(i, r) for i, r in visits[:visits.index((4, 1))]]

    assert [r for i, r in first_grasp if i == 2] == list(range(1, 11))
    assert steps.count(3) == 9
    assert steps.count(6) == 9
    assert steps.count(2) == 10
    assert steps.count(5) == 10
    # grasp 10 skips relax and lands on the next prepare with the counter reset
    assert visits[visits.index((2, 10)) + 1] == (4, 1)
    assert visits[-1] == (5, 10)


def test_full_run_tick_count_and_completion():
    seq = CalibrationSequencer()
    seq.start()
    _, ticks = _run_to_end(seq)

    # 20 initial + per grasp: prepare 3 + 10 grasps * 3 + 9 relaxes * 3
    assert ticks == 20 + 2 * (3 + 30 + 27)
    assert seq.finished
    assert seq.current_step is None
    assert seq.tick() is TickOutcome.COMPLETED


def test_repetitions_are_configurable():
    seq = CalibrationSequencer(repetitions=2)
    seq.start()
    visits, _ = _run_to_end(seq)

    assert [i for i, _ in visits] == [0, 1, 2, 3, 2, 4, 5, 6, 5]


def test_single_grasp_sequence():
    seq = CalibrationSequencer(build_sequence([GraspType.POWER_SPHERE]), repetitions=1)
    seq.start()
    visits, ticks = _run_to_end(seq)

    assert visits == [(0, 0), (1, 1), (2, 1)]
    assert ticks == 20 + 3 + 3


@pytest.mark.parametrize("kwargs", [{"sequence": ()}, {"repetitions": 0}])
def test_invalid_sequencer(kwargs):
    with pytest.raises(ValueError):
        CalibrationSequencer(**kwargs)
