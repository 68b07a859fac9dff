# trusslab/modal.py
"""Modal analysis of the current structure: lumped mass, stiffness and natural frequencies."""

import numpy as np
from scipy.linalg import eigh
from typing import Tuple

from .elements import element_geometry, truss2d_global_stiffness
from .structure import Structure

DOF_PER_NODE = 2  # ux, uy


def dof_index(row: int, local_dof: int) -> int:
    return DOF_PER_NODE * row + local_dof


def assemble_stiffness(structure: Structure) -> np.ndarray:
    """
    Global tangent stiffness (2N x 2N) at the current geometry.

    Each unbroken element contributes k = E·A/L0 along its CURRENT direction.
    Broken elements carry nothing and are skipped.
    """
    ndof = DOF_PER_NODE * structure.n_nodes
    K = np.zeros((ndof, ndof), dtype=float)
    if structure.n_elements == 0:
        return K

    lengths, directions = element_geometry(structure.positions, structure.element_nodes)
    for e in range(structure.n_elements):
        if structure.broken[e] or lengths[e] <= 0.0:
            continue
        c, s = directions[e]
        ke = truss2d_global_stiffness(c, s, structure.stiffness[e])
        ni, nj = structure.element_nodes[e]
        dof_map = [dof_index(ni, 0), dof_index(ni, 1), dof_index(nj, 0), dof_index(nj, 1)]
        K[np.ix_(dof_map, dof_map)] += ke
    return K


def lumped_mass_matrix(structure: Structure) -> np.ndarray:
    """
    Diagonal mass matrix: each node carries its structural mass (half of
    every incident element) plus its applied point loads, in both directions.
    """
    node_mass = structure.structural_mass + structure.applied_mass
    return np.diag(np.repeat(node_mass, DOF_PER_NODE))


def _free_dofs(structure: Structure) -> np.ndarray:
    """DOFs of free nodes that carry mass. Massless nodes have no elements either."""
    node_mass = structure.structural_mass + structure.applied_mass
    movable = ~structure.fixed & (node_mass > 0.0)
    rows = np.flatnonzero(movable)
    return np.sort(np.concatenate([DOF_PER_NODE * rows + d for d in range(DOF_PER_NODE)])).astype(int)


def natural_frequencies(structure: Structure, n_modes: int = 5) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Lowest natural frequencies from K·φ = ω²·M·φ on the free DOFs.

    Mechanisms (unbraced directions) show up as ~0 Hz modes.

    Returns:
    --------
    frequencies_hz : np.ndarray
        Ascending, length min(n_modes, n_free)
    mode_shapes : np.ndarray
        (n_free, n_modes) mass-normalised mode shapes
    free_dofs : np.ndarray
        Global DOF index of each mode-shape row

    Raises:
    -------
    ValueError
        If the structure has no free DOFs
    """
    free = _free_dofs(structure)
    if len(free) == 0:
        raise ValueError("No free DOFs - cannot compute modes")

    K = assemble_stiffness(structure)
    M = lumped_mass_matrix(structure)
    Kff = K[np.ix_(free, free)]
    Mff = M[np.ix_(free, free)]

    n_actual = min(n_modes, len(free))
    eigenvalues, eigenvectors = eigh(Kff, Mff, subset_by_index=[0, n_actual - 1])
    omega = np.sqrt(np.maximum(eigenvalues, 0.0))
    return omega / (2.0 * np.pi), eigenvectors, free


def critical_timestep(structure: Structure) -> float:
    """
    Largest stable undamped timestep 2 / ω_max for the explicit integrator.

    Returns inf when nothing can vibrate (no free, massive, connected DOFs).
    """
    free = _free_dofs(structure)
    if len(free) == 0:
        return float("inf")
    K = assemble_stiffness(structure)
    M = lumped_mass_matrix(structure)
    eigenvalues = eigh(K[np.ix_(free, free)], M[np.ix_(free, free)], eigvals_only=True)
    omega_max = float(np.sqrt(max(eigenvalues.max(), 0.0)))
    if omega_max == 0.0:
        return float("inf")
    return 2.0 / omega_max
