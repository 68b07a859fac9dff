# File: tests/test_impulse.py
"""
Impulse test: target selection, the velocity kick and the measured frequency.

VALIDATION CASE:
----------------
A single steel hanger, 2 m long, carrying 1000 kg, no gravity:

    fixed (0, 0)
       |
       |   k = E·A / L0 = 5e6 N/m
       |
    free (0, 2)   m = 39.25 kg (half the steel) + 1000 kg

    f = sqrt(k / m) / 2π ≈ 11.04 Hz

Both the FFT of the recorded free vibration and the modal analysis must
find this frequency.
"""

import numpy as np
import pytest

from trusslab.config import DEFAULT_CONFIG
from trusslab.errors import InvalidOperationState
from trusslab.impulse import ImpulseTestController, dominant_frequency
from trusslab.materials import Material
from trusslab.modal import natural_frequencies
from trusslab.recorder import RecordedSeries, RecordMode
from trusslab.simulation import Simulation

HANGER_LOAD = 1000.0


def make_hanger_simulation(exports=None):
    config = DEFAULT_CONFIG.with_overrides(gravity=(0.0, 0.0))
    sim = Simulation(config, on_export=None if exports is None else exports.append)
    top = sim.add_node((0.0, 0.0), fixed=True)
    bottom = sim.add_node((0.0, 2.0))
    element = sim.add_element(top, bottom, Material.STEEL)
    sim.add_load(bottom, HANGER_LOAD)
    return sim, bottom, element


def run_to_completion(sim):
    series = None
    while series is None:
        series = sim.tick().series
    return series


def test_rejected_while_running():
    sim = Simulation()
    sim.load_preset(0)
    sim.set_running(True)
    controller = ImpulseTestController(sim)
    with pytest.raises(InvalidOperationState):
        controller.run()
    # nothing was touched
    assert sim.integrator.alpha == DEFAULT_CONFIG.alpha_damping
    assert not sim.recorder.recording


def test_target_is_mid_span_deck_node():
    sim = Simulation()
    layout = sim.load_preset(0)
    controller = ImpulseTestController(sim)
    target = controller.find_target_node()
    assert target == layout.deck_nodes[3]
    np.testing.assert_allclose(sim.structure.node(target).position, [6.0, 0.0])


def test_target_ties_go_to_first_created_node():
    sim = Simulation()
    sim.add_node((0.0, 0.0), fixed=True)
    sim.add_node((4.0, 0.0), fixed=True)
    first = sim.add_node((1.0, -1.0))
    sim.add_node((3.0, -1.0))
    assert ImpulseTestController(sim).find_target_node() == first


def test_requires_supports_and_free_nodes():
    sim = Simulation()
    sim.add_node((0.0, 0.0))
    sim.add_node((2.0, 0.0))
    with pytest.raises(InvalidOperationState):
        ImpulseTestController(sim).find_target_node()

    sim = Simulation()
    sim.add_node((0.0, 0.0), fixed=True)
    with pytest.raises(InvalidOperationState):
        ImpulseTestController(sim).find_target_node()


def test_invalid_duration_leaves_simulation_untouched():
    sim, _, _ = make_hanger_simulation()
    with pytest.raises(ValueError):
        ImpulseTestController(sim).run(duration=0.0)
    assert not sim.running
    assert sim.integrator.alpha == DEFAULT_CONFIG.alpha_damping


def test_run_sets_up_free_vibration():
    """
    WHAT IS THIS TEST?
    ==================
    After run(): damping is zero, the struck node moves at J/m downwards,
    the simulation runs and a displacement recording of that node is active.
    """
    sim = Simulation()
    sim.load_preset(0)
    sim.set_running(True)
    sim.run_ticks(5)
    sim.set_running(False)

    controller = ImpulseTestController(sim)
    node_id = controller.run(impulse=500.0, duration=2.0)
    node = sim.structure.node(node_id)

    assert (sim.integrator.alpha, sim.integrator.beta) == (0.0, 0.0)
    np.testing.assert_allclose(node.velocity, [0.0, 500.0 / node.total_mass])
    np.testing.assert_array_equal(node.position, node.original_position)
    assert sim.running
    assert sim.recorder.recording
    assert sim.recorder.mode is RecordMode.DISPLACEMENT
    assert sim.recorder.node_id == node_id
    assert sim.recording_progress == (0.0, 2.0)
    print(f"✓ Node {node_id} kicked to {node.velocity[1]:.3f} m/s")


def test_reset_restores_damping():
    sim, _, _ = make_hanger_simulation()
    ImpulseTestController(sim).run(duration=1.0)
    sim.reset()
    assert sim.integrator.alpha == DEFAULT_CONFIG.alpha_damping
    assert sim.integrator.beta == DEFAULT_CONFIG.beta_damping
    assert not sim.recorder.recording


def test_measured_frequency_matches_analytical_and_modal():
    """
    WHAT IS THIS TEST?
    ==================
    Strike the loaded hanger, record 5 s of free vibration at 60 Hz and
    read the dominant frequency off the spectrum. With 300 samples the
    frequency resolution is 0.2 Hz.
    """
    exports = []
    sim, bottom, element = make_hanger_simulation(exports)
    controller = ImpulseTestController(sim)
    assert controller.run() == bottom

    series = run_to_completion(sim)

    assert len(exports) == 1
    assert series.n_samples == 300
    assert series.node_id == bottom

    k = sim.structure.element(element).stiffness
    m = sim.structure.node(bottom).total_mass
    f_exact = np.sqrt(k / m) / (2.0 * np.pi)
    f_measured = dominant_frequency(series)
    frequencies, _, _ = natural_frequencies(sim.structure, n_modes=2)

    assert f_exact == pytest.approx(11.04, abs=0.01)
    assert f_measured == pytest.approx(f_exact, abs=0.3)
    assert frequencies[-1] == pytest.approx(f_exact, rel=1e-3)
    assert sim.structure.failure_counts() == (0, 0)
    print(f"✓ f_exact = {f_exact:.2f} Hz, FFT = {f_measured:.2f} Hz, modal = {frequencies[-1]:.2f} Hz")


def test_dominant_frequency_of_synthetic_signal():
    interval = 1.0 / 60.0
    times = np.arange(1, 601) * interval
    values = 0.002 + 0.01 * np.sin(2.0 * np.pi * 3.5 * times)
    series = RecordedSeries(
        mode=RecordMode.DISPLACEMENT, interval=interval, times=times, values=values, node_id=0,
    )
    assert dominant_frequency(series) == pytest.approx(3.5, abs=0.1)


def test_dominant_frequency_rejects_bad_input():
    times = np.arange(1, 4) / 60.0
    short = RecordedSeries(RecordMode.DISPLACEMENT, 1 / 60.0, times, np.zeros(3), node_id=0)
    with pytest.raises(ValueError):
        dominant_frequency(short)
    stress = RecordedSeries(RecordMode.STRESS, 1 / 60.0, times, np.zeros((3, 1)), element_ids=[0])
    with pytest.raises(ValueError):
        dominant_frequency(stress)
