# trusslab/simulation.py
"""
Simulation context: the one object an editor/renderer talks to.

Owns the Structure, the Integrator, the Recorder and the running flag.
Nothing in the package is global; create as many Simulations as needed.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from .config import DEFAULT_CONFIG, SimulationConfig
from .errors import InvalidOperationState
from .integrator import Integrator
from .modal import critical_timestep
from .presets import PresetLayout, load_preset
from .recorder import RecordedSeries, Recorder, RecordMode
from .structure import Structure

logger = logging.getLogger(__name__)


@dataclass
class TickResult:
    """Outcome of one externally driven tick."""
    advanced: bool
    broken: List[int] = field(default_factory=list)
    series: Optional[RecordedSeries] = None


class Simulation:
    """
    Parameters:
    -----------
    config : SimulationConfig
        dt, sub_steps, gravity, damping and recording defaults
    structure : Structure, optional
        Start from an existing structure instead of an empty one
    on_export : Callable[[RecordedSeries], None], optional
        Receives every finished recording

    Example:
    --------
    >>> sim = Simulation()
    >>> sim.load_preset(0)
    >>> sim.set_running(True)
    >>> for _ in range(60):
    ...     sim.tick()
    >>> sim.structure.failure_counts()
    (0, 0)
    """

    def __init__(
        self,
        config: SimulationConfig = DEFAULT_CONFIG,
        structure: Optional[Structure] = None,
        on_export: Optional[Callable[[RecordedSeries], None]] = None,
    ):
        self.config = config
        self.structure = structure if structure is not None else Structure(config.coincident_tolerance)
        self.integrator = Integrator(config)
        self.recorder = Recorder(on_finished=on_export)
        self.running = False
        self.time = 0.0
        self.tick_count = 0

    # ------------------------------------------------------------------
    # Run control
    # ------------------------------------------------------------------

    def set_running(self, running: bool) -> None:
        """Start or pause the simulation. Pausing aborts an active recording."""
        running = bool(running)
        if not running and self.recorder.recording:
            self.recorder.abort()
        self.running = running

    def tick(self) -> TickResult:
        """
        Advance one frame: `sub_steps` integrator steps, then one recorder sample.

        Does nothing while the simulation is stopped.
        """
        if not self.running:
            return TickResult(advanced=False)
        broken = self.integrator.advance(self.structure, self.config.sub_steps)
        self.time += self.config.tick_interval
        self.tick_count += 1
        series = self.recorder.sample(self.structure)
        return TickResult(advanced=True, broken=broken, series=series)

    def run_ticks(self, n: int) -> List[int]:
        """Tick `n` times; returns all element ids that broke."""
        broken = []
        for _ in range(n):
            broken.extend(self.tick().broken)
        return broken

    def reset(self) -> None:
        """Stop, put the structure back at rest and restore the configured damping."""
        self.recorder.abort()
        self.running = False
        self.structure.reset()
        self.integrator.restore_damping()
        self.time = 0.0
        self.tick_count = 0

    def clear(self) -> None:
        self.recorder.abort()
        self.running = False
        self.structure.clear()
        self.integrator.restore_damping()
        self.time = 0.0
        self.tick_count = 0

    def load_preset(self, index: int) -> PresetLayout:
        """Stop and rebuild one of the preset bridges (0 Warren truss, 1 arch, 2 simple beam)."""
        self.recorder.abort()
        self.running = False
        layout = load_preset(self.structure, index)
        self.integrator.restore_damping()
        self.time = 0.0
        self.tick_count = 0
        self.check_timestep()
        return layout

    def check_timestep(self) -> float:
        """
        Critical timestep of the current structure (s); logs a warning when
        the configured dt exceeds it.
        """
        dt_crit = critical_timestep(self.structure)
        if self.config.dt >= dt_crit:
            logger.warning(
                "dt = %.3g s exceeds the critical timestep %.3g s; the simulation will diverge",
                self.config.dt, dt_crit,
            )
        return dt_crit

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def start_recording(
        self,
        duration: Optional[float] = None,
        interval: Optional[float] = None,
        mode: RecordMode = RecordMode.STRESS,
        node_id: Optional[int] = None,
    ) -> None:
        """
        Start sampling once per tick. Defaults: config.record_duration and
        dt · sub_steps.

        Raises InvalidOperationState while the simulation is stopped.
        """
        self.recorder.start(
            self.structure,
            duration=self.config.record_duration if duration is None else duration,
            interval=self.config.tick_interval if interval is None else interval,
            simulation_running=self.running,
            mode=mode,
            node_id=node_id,
        )

    def abort_recording(self) -> bool:
        return self.recorder.abort()

    @property
    def recording_progress(self) -> Tuple[float, float]:
        return self.recorder.progress

    # ------------------------------------------------------------------
    # Editing interface
    # ------------------------------------------------------------------

    def add_node(self, position, fixed: bool = False) -> int:
        return self.structure.add_node(position, fixed)

    def remove_node(self, node_id: int) -> Tuple[List[int], List[int]]:
        return self.structure.remove_node(node_id)

    def toggle_fixed(self, node_id: int) -> bool:
        return self.structure.toggle_fixed(node_id)

    def add_element(self, node_a: int, node_b: int, material) -> int:
        return self.structure.add_element(node_a, node_b, material)

    def remove_element(self, element_id: int) -> None:
        self.structure.remove_element(element_id)

    def add_load(self, node_id: int, mass: float) -> int:
        return self.structure.add_load(node_id, mass)

    def remove_load(self, load_id: int) -> None:
        self.structure.remove_load(load_id)

    def require_stopped(self, what: str) -> None:
        if self.running:
            logger.debug("%s rejected: simulation is running", what)
            raise InvalidOperationState(f"{what} requires the simulation to be stopped")
