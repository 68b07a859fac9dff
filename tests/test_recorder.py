# File: tests/test_recorder.py
"""
Recorder state machine and the time histories it produces.
"""

import numpy as np
import pytest

from trusslab.config import DEFAULT_CONFIG
from trusslab.errors import InvalidOperationState, InvalidReference
from trusslab.recorder import Recorder, RecorderState, RecordMode
from trusslab.simulation import Simulation
from trusslab.structure import Structure


def make_running_simulation(exports=None):
    sim = Simulation(on_export=None if exports is None else exports.append)
    sim.load_preset(0)
    sim.set_running(True)
    return sim


def test_start_rejected_while_stopped():
    """
    WHAT IS THIS TEST?
    ==================
    Recording needs an advancing simulation. A request with duration=10 and
    interval=dt·sub_steps while stopped is rejected and the recorder stays
    idle.
    """
    recorder = Recorder()
    s = Structure()
    with pytest.raises(InvalidOperationState):
        recorder.start(
            s,
            duration=10.0,
            interval=DEFAULT_CONFIG.dt * DEFAULT_CONFIG.sub_steps,
            simulation_running=False,
        )
    assert recorder.state is RecorderState.IDLE
    assert recorder.progress == (0.0, 0.0)


def test_simulation_start_recording_rejected_while_stopped():
    sim = Simulation()
    sim.load_preset(0)
    with pytest.raises(InvalidOperationState):
        sim.start_recording()
    assert not sim.recorder.recording


@pytest.mark.parametrize("duration, interval", [(0.0, 0.1), (-1.0, 0.1), (1.0, 0.0)])
def test_start_rejects_non_positive_timing(duration, interval):
    recorder = Recorder()
    with pytest.raises(ValueError):
        recorder.start(Structure(), duration, interval, simulation_running=True)
    assert recorder.state is RecorderState.IDLE


def test_second_start_rejected():
    sim = make_running_simulation()
    sim.start_recording(duration=1.0)
    with pytest.raises(InvalidOperationState):
        sim.start_recording(duration=1.0)
    assert sim.recorder.recording


def test_stress_session_completes_and_exports_once():
    """
    WHAT IS THIS TEST?
    ==================
    A 0.5 s stress recording sampled once per 1/60 s tick holds exactly 30
    samples, one column per element, and is handed to the export
    collaborator exactly once.
    """
    exports = []
    sim = make_running_simulation(exports)
    sim.start_recording(duration=0.5)

    finished = []
    for _ in range(40):
        result = sim.tick()
        if result.series is not None:
            finished.append(result.series)

    assert len(exports) == 1
    assert len(finished) == 1
    series = exports[0]
    assert series is finished[0]
    assert series.mode is RecordMode.STRESS
    assert series.n_samples == 30
    assert series.values.shape == (30, sim.structure.n_elements)
    assert series.element_ids == sim.structure.element_ids
    np.testing.assert_allclose(np.diff(series.times), DEFAULT_CONFIG.tick_interval)
    assert series.times[-1] == pytest.approx(0.5)
    assert sim.recorder.state is RecorderState.IDLE
    assert sim.running
    print(f"✓ Recorded {series.n_samples} samples of {len(series.element_ids)} elements")


def test_progress_reports_elapsed_time():
    sim = make_running_simulation()
    sim.start_recording(duration=1.0)
    sim.run_ticks(15)
    elapsed, duration = sim.recording_progress
    assert elapsed == pytest.approx(0.25)
    assert duration == 1.0


def test_pausing_aborts_without_export():
    exports = []
    sim = make_running_simulation(exports)
    sim.start_recording(duration=1.0)
    sim.run_ticks(10)

    sim.set_running(False)

    assert sim.recorder.state is RecorderState.IDLE
    assert exports == []
    assert sim.recorder.last_series is None


def test_abort_when_idle_is_a_no_op():
    recorder = Recorder()
    assert recorder.abort() is False


def test_displacement_mode_tracks_one_node():
    sim = make_running_simulation()
    node_id = sim.structure.find_node_near((6.0, 0.0), radius=0.1)
    sim.start_recording(duration=0.25, mode=RecordMode.DISPLACEMENT, node_id=node_id)
    series = None
    while series is None:
        series = sim.tick().series

    assert series.mode is RecordMode.DISPLACEMENT
    assert series.node_id == node_id
    assert series.values.shape == (15,)
    # the deck sags under gravity (+y is down)
    assert series.values.max() > 0
    assert series.values[-1] == pytest.approx(sim.structure.node(node_id).displacement[1])


def test_displacement_mode_requires_existing_node():
    sim = make_running_simulation()
    with pytest.raises(ValueError):
        sim.start_recording(duration=1.0, mode=RecordMode.DISPLACEMENT)
    with pytest.raises(InvalidReference):
        sim.start_recording(duration=1.0, mode=RecordMode.DISPLACEMENT, node_id=999)
    assert not sim.recorder.recording


def test_removed_element_records_nan():
    """Columns keep the starting element order; removed elements read NaN."""
    sim = make_running_simulation()
    element_ids = list(sim.structure.element_ids)
    sim.start_recording(duration=0.1)
    sim.tick()
    sim.remove_element(element_ids[3])
    series = None
    while series is None:
        series = sim.tick().series

    assert series.element_ids == element_ids
    assert np.isfinite(series.values[0]).all()
    assert np.isnan(series.values[1:, 3]).all()
    assert np.isfinite(np.delete(series.values[1:], 3, axis=1)).all()


def test_series_dataframe_columns():
    sim = make_running_simulation()
    sim.start_recording(duration=0.05)
    series = None
    while series is None:
        series = sim.tick().series

    df = series.to_dataframe()
    assert list(df.columns) == ["Time_s"] + [f"Element_{eid}_Stress_Pa" for eid in series.element_ids]
    assert len(df) == series.n_samples == 3
