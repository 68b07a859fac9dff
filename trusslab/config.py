# trusslab/config.py
"""
Simulation configuration and defaults.
"""

from dataclasses import dataclass, replace
from typing import Tuple


@dataclass(frozen=True)
class SimulationConfig:
    """
    Fixed parameters of a simulation run.

    Coordinates follow screen conventions: +x to the right, +y DOWN.
    Gravity therefore has a positive y component.

    Parameters:
    -----------
    dt : float
        Integrator timestep (s). 1/1200 s = 20 sub-steps of a 60 Hz tick.

    sub_steps : int
        Integrator steps per externally driven tick.

    gravity : Tuple[float, float]
        Gravitational acceleration vector (m/s²).

    alpha_damping : float
        Mass-proportional Rayleigh coefficient α (1/s).

    beta_damping : float
        Stiffness-proportional Rayleigh coefficient β (s).

    impulse_magnitude : float
        Impulse J (N·s) injected by the impulse test.

    impulse_duration : float
        Length of the impulse-test recording (s).

    record_duration : float
        Default length of a stress-history recording (s).

    coincident_tolerance : float
        Two nodes closer than this (m) are treated as coincident.
    """
    dt: float = 1.0 / 1200.0
    sub_steps: int = 20
    gravity: Tuple[float, float] = (0.0, 9.81)
    alpha_damping: float = 0.5
    beta_damping: float = 5e-4
    impulse_magnitude: float = 500.0
    impulse_duration: float = 5.0
    record_duration: float = 10.0
    coincident_tolerance: float = 1e-9

    def __post_init__(self):
        if self.dt <= 0:
            raise ValueError(f"dt must be positive, got {self.dt}")
        if self.sub_steps < 1:
            raise ValueError(f"sub_steps must be at least 1, got {self.sub_steps}")
        if len(self.gravity) != 2:
            raise ValueError(f"gravity must be a 2D vector, got {self.gravity}")
        if self.alpha_damping < 0 or self.beta_damping < 0:
            raise ValueError(
                f"damping coefficients must be non-negative, got "
                f"alpha={self.alpha_damping}, beta={self.beta_damping}"
            )
        if self.impulse_duration <= 0 or self.record_duration <= 0:
            raise ValueError("recording durations must be positive")
        if self.coincident_tolerance < 0:
            raise ValueError(f"coincident_tolerance must be non-negative, got {self.coincident_tolerance}")

    @property
    def tick_interval(self) -> float:
        """Simulated time covered by one tick (dt · sub_steps)."""
        return self.dt * self.sub_steps

    def with_overrides(self, **changes) -> "SimulationConfig":
        return replace(self, **changes)


DEFAULT_CONFIG = SimulationConfig()
