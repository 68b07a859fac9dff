# trusslab/impulse.py
"""
IMPULSE TEST: FREE-VIBRATION RESPONSE OF A BRIDGE
=================================================

A diagnostic scenario: strike the middle of the span once and record how it
rings. With damping switched off the recorded displacement is the free,
undamped vibration of the structure, so the dominant frequency of the
record is the fundamental natural frequency of the loaded bridge (compare
with `modal.natural_frequencies`).

STEPS:
------
1. Pick the free node whose x is closest to the midpoint between the
   outermost supports
2. Reset the structure to rest
3. Zero both Rayleigh coefficients
4. Convert the impulse J to a velocity kick, Δv = J / m (downwards, +y)
5. Record that node's vertical displacement for a fixed duration
6. Resume the simulation
"""

import logging
from typing import Optional

import numpy as np

from .errors import InvalidOperationState
from .recorder import RecordedSeries, RecordMode
from .simulation import Simulation

logger = logging.getLogger(__name__)


class ImpulseTestController:
    """Runs impulse tests on a Simulation."""

    def __init__(self, simulation: Simulation):
        self.simulation = simulation
        self.node_id: Optional[int] = None

    def find_target_node(self) -> int:
        """
        Free node closest (in x) to the midpoint of the support anchors.

        Ties go to the node created first.

        Raises:
        -------
        InvalidOperationState
            If the structure has no fixed nodes or no free nodes
        """
        s = self.simulation.structure
        span = s.anchor_span()
        if span is None:
            raise InvalidOperationState("Impulse test needs at least one fixed support")
        free_rows = np.flatnonzero(~s.fixed)
        if len(free_rows) == 0:
            raise InvalidOperationState("Impulse test needs at least one free node")
        mid_x = 0.5 * (span[0] + span[1])
        distance = np.abs(s.original_positions[free_rows, 0] - mid_x)
        return s.node_ids[free_rows[int(np.argmin(distance))]]

    def run(self, impulse: Optional[float] = None, duration: Optional[float] = None) -> int:
        """
        Start an impulse test. Returns the id of the struck node.

        Raises:
        -------
        InvalidOperationState
            If the simulation is running, or there is nothing to strike
        """
        sim = self.simulation
        sim.require_stopped("Impulse test")
        config = sim.config
        impulse = config.impulse_magnitude if impulse is None else float(impulse)
        duration = config.impulse_duration if duration is None else float(duration)
        if duration <= 0 or not np.isfinite(impulse):
            raise ValueError(f"Need a finite impulse and positive duration, got {impulse}, {duration}")

        node_id = self.find_target_node()
        node = sim.structure.node(node_id)
        if node.total_mass <= 0.0:
            raise InvalidOperationState(f"Node {node_id} has no mass to accelerate")

        sim.reset()
        sim.integrator.zero_damping()
        node.velocity = (0.0, impulse / node.total_mass)

        sim.set_running(True)
        sim.start_recording(
            duration=duration,
            interval=config.tick_interval,
            mode=RecordMode.DISPLACEMENT,
            node_id=node_id,
        )
        self.node_id = node_id
        logger.info(
            "Impulse test: J = %.1f N·s on node %d (m = %.1f kg) for %.2f s",
            impulse, node_id, node.total_mass, duration,
        )
        return node_id


def dominant_frequency(series: RecordedSeries) -> float:
    """
    Frequency (Hz) of the largest non-DC peak in a displacement record.

    The mean is removed first so that a static sag offset does not mask
    the oscillation.
    """
    if series.mode is not RecordMode.DISPLACEMENT:
        raise ValueError("dominant_frequency needs a displacement recording")
    values = np.asarray(series.values, dtype=float)
    values = values[np.isfinite(values)]
    if len(values) < 4:
        raise ValueError(f"Need at least 4 samples, got {len(values)}")
    spectrum = np.abs(np.fft.rfft(values - values.mean()))
    freqs = np.fft.rfftfreq(len(values), d=series.interval)
    peak = 1 + int(np.argmax(spectrum[1:]))
    return float(freqs[peak])
