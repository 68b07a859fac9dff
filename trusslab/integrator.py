# trusslab/integrator.py
"""
EXPLICIT TIME INTEGRATION WITH RAYLEIGH DAMPING
===============================================

One call to `Integrator.step()` advances a Structure by a fixed dt in four
phases, always in this order:

1. FORCE RESET + GRAVITY
   free nodes:  F = g · (m_structural + m_applied)
   fixed nodes: F = 0 (they never move, so nothing is computed for them)

2. ELEMENT FORCES (unbroken elements only)
   u = unit vector A -> B, N = stress · area (tension positive)
   stiffness-proportional damping  c = β · k · ((v_B - v_A) · u)
   T = N + c
   A receives +T·u, B receives -T·u   (a stretched bar pulls its ends together)

3. SEMI-IMPLICIT EULER (free nodes with positive mass)
   F -= α · m · v                      mass-proportional damping
   v += (F / m) · dt
   x += v · dt                         uses the NEW velocity

4. FAILURE CHECK on every element (broken ones included; flags are monotone)

WHY SEMI-IMPLICIT EULER?
------------------------
Updating the velocity before the position makes the scheme symplectic:
an undamped spring oscillates with a bounded energy error instead of the
steady energy growth of explicit Euler. Stability still requires
omega_max · dt < 2, which is why the driver sub-steps each frame.

Scratch arrays are sized to the structure and only reallocated when its
topology_version changes, so repeated steps reuse the same buffers.
"""

import logging
from typing import List

import numpy as np

from .config import DEFAULT_CONFIG, SimulationConfig
from .elements import element_geometry, update_failure_flags
from .structure import Structure

logger = logging.getLogger(__name__)


class Integrator:
    """
    Fixed-step semi-implicit Euler integrator.

    `alpha` and `beta` are plain attributes so that scenarios such as the
    impulse test can switch damping off; `restore_damping()` puts the
    configured values back.
    """

    def __init__(self, config: SimulationConfig = DEFAULT_CONFIG):
        self.config = config
        self.dt = config.dt
        self.gravity = np.asarray(config.gravity, dtype=float)
        self.alpha = config.alpha_damping
        self.beta = config.beta_damping
        self._scratch_version = None
        self._scratch_shape = None

    def restore_damping(self) -> None:
        self.alpha = self.config.alpha_damping
        self.beta = self.config.beta_damping

    def zero_damping(self) -> None:
        self.alpha = 0.0
        self.beta = 0.0

    def _ensure_scratch(self, structure: Structure) -> None:
        shape = (structure.n_nodes, structure.n_elements)
        if structure.topology_version == self._scratch_version and shape == self._scratch_shape:
            return
        n, m = shape
        self._total_mass = np.zeros(n, dtype=float)
        self._movable = np.zeros(n, dtype=bool)
        self._accel = np.zeros((n, 2), dtype=float)
        self._node_tmp = np.zeros((n, 2), dtype=float)
        self._lengths = np.zeros(m, dtype=float)
        self._directions = np.zeros((m, 2), dtype=float)
        self._rel_velocity = np.zeros((m, 2), dtype=float)
        self._tension = np.zeros(m, dtype=float)
        self._damping = np.zeros(m, dtype=float)
        self._stress = np.zeros(m, dtype=float)
        self._element_force = np.zeros((m, 2), dtype=float)
        self._scratch_version = structure.topology_version
        self._scratch_shape = shape

    def step(self, structure: Structure) -> List[int]:
        """
        Advance `structure` by one timestep dt.

        Returns:
        --------
        List[int]
            Ids of elements that broke during this step.
        """
        self._ensure_scratch(structure)
        s = structure
        dt = self.dt
        free = ~s.fixed

        # ====================================================================
        # PHASE 1: FORCE RESET + GRAVITY
        # ====================================================================
        np.add(s.structural_mass, s.applied_mass, out=self._total_mass)
        np.multiply(self._total_mass[:, None], self.gravity, out=s.forces)
        s.forces[s.fixed] = 0.0

        # ====================================================================
        # PHASE 2: ELEMENT FORCES
        # ====================================================================
        if s.n_elements:
            lengths, directions = element_geometry(
                s.positions, s.element_nodes,
                out_direction=self._directions, out_length=self._lengths,
            )
            a = s.element_nodes[:, 0]
            b = s.element_nodes[:, 1]

            # elastic axial force N = E·(L - L0)/L0 · A
            np.subtract(lengths, s.rest_length, out=self._tension)
            self._tension /= s.rest_length
            self._tension *= s.youngs_modulus
            self._tension *= s.area

            # stiffness-proportional damping β·k·(Δv · u)
            np.subtract(s.velocities[b], s.velocities[a], out=self._rel_velocity)
            np.einsum("ij,ij->i", self._rel_velocity, directions, out=self._damping)
            self._damping *= s.stiffness
            self._damping *= self.beta

            self._tension += self._damping
            self._tension[s.broken] = 0.0

            np.multiply(self._tension[:, None], directions, out=self._element_force)
            np.add.at(s.forces, a, self._element_force)
            np.subtract.at(s.forces, b, self._element_force)
            s.forces[s.fixed] = 0.0

        # ====================================================================
        # PHASE 3: DAMPED SEMI-IMPLICIT EULER
        # ====================================================================
        np.logical_and(free, self._total_mass > 0.0, out=self._movable)

        np.multiply(s.velocities, (self.alpha * self._total_mass)[:, None], out=self._node_tmp)
        s.forces -= self._node_tmp

        self._accel.fill(0.0)
        np.divide(s.forces, self._total_mass[:, None], out=self._accel, where=self._movable[:, None])

        self._accel *= dt
        s.velocities += self._accel
        np.multiply(s.velocities, dt, out=self._node_tmp)
        self._node_tmp[~self._movable] = 0.0
        s.positions += self._node_tmp

        # ====================================================================
        # PHASE 4: FAILURE CHECK
        # ====================================================================
        if not s.n_elements:
            return []
        lengths, _ = element_geometry(
            s.positions, s.element_nodes,
            out_direction=self._directions, out_length=self._lengths,
        )
        np.subtract(lengths, s.rest_length, out=self._stress)
        self._stress /= s.rest_length
        self._stress *= s.youngs_modulus
        newly_yielded, newly_broken = update_failure_flags(
            self._stress, s.yield_strength, s.ultimate_strength, s.yielded, s.broken,
        )

        broken_ids = []
        if newly_yielded.any():
            for row in np.flatnonzero(newly_yielded):
                logger.info(
                    "Element %d (%s) yielded at %.3g Pa",
                    s.element_ids[row], s.materials[row].name, self._stress[row],
                )
        if newly_broken.any():
            for row in np.flatnonzero(newly_broken):
                broken_ids.append(s.element_ids[row])
                logger.warning(
                    "Element %d (%s) broke at %.3g Pa",
                    s.element_ids[row], s.materials[row].name, self._stress[row],
                )
        return broken_ids

    def advance(self, structure: Structure, sub_steps: int) -> List[int]:
        """Run `sub_steps` consecutive steps. Returns every element id that broke."""
        broken = []
        for _ in range(sub_steps):
            broken.extend(self.step(structure))
        return broken
