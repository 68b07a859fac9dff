# trusslab - Interactive 2D truss dynamics
"""
TRUSSLAB: Explicit Dynamics of Pin-Jointed 2D Bridges
=====================================================

This package provides:
- A node/element/load arena with derived mass bookkeeping
- Axial stress, strain and failure (yield/break) of bar elements
- Semi-implicit Euler integration with Rayleigh damping
- Stress-history and impulse (free-vibration) recording
- Modal analysis and CSV export of the results

ARCHITECTURE:
-------------
    materials.py    Closed material catalog (WOOD, STEEL, ROAD)
    elements.py     Vectorized bar mechanics
    structure.py    Structure arena, Node/Element views, topology edits
    integrator.py   Fixed-step dynamics (gravity, elastic + damping forces)
    recorder.py     Time-history sampling
    simulation.py   Context object tying it all together
    impulse.py      Impulse test + dominant frequency
    modal.py        Lumped-mass eigen analysis, critical timestep
    presets.py      Warren truss, arch, simple beam fixtures
    export.py       CSV tables
    config.py       SimulationConfig defaults
    errors.py       Rejection exceptions
"""

import logging

from .config import DEFAULT_CONFIG, SimulationConfig
from .errors import DegenerateElement, InvalidOperationState, InvalidReference, TrussError
from .materials import MATERIALS, Material, MaterialProperties
from .structure import Element, LoadWeight, Node, Structure
from .integrator import Integrator
from .recorder import RecordedSeries, Recorder, RecorderState, RecordMode
from .simulation import Simulation, TickResult
from .impulse import ImpulseTestController, dominant_frequency
from .export import ExportService

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_CONFIG", "SimulationConfig",
    "DegenerateElement", "InvalidOperationState", "InvalidReference", "TrussError",
    "MATERIALS", "Material", "MaterialProperties",
    "Element", "LoadWeight", "Node", "Structure",
    "Integrator",
    "RecordedSeries", "Recorder", "RecorderState", "RecordMode",
    "Simulation", "TickResult",
    "ImpulseTestController", "dominant_frequency",
    "ExportService",
]
