# trusslab/elements.py
"""
2D AXIAL ELEMENT MECHANICS
==========================

PURPOSE:
--------
Stress, strain and axial force for pin-jointed 2D bars, computed for ALL
elements at once from the arena arrays held by `Structure`.

An element connects node i (endpoint A) to node j (endpoint B). With the
live positions p_i, p_j:

    L      = |p_j - p_i|                 current length
    u      = (p_j - p_i) / L             unit vector A -> B
    strain = (L - L0) / L0               L0 frozen at creation (> 0)
    stress = E · strain                  positive = tension
    N      = stress · A                  axial force along u

Because L0 > 0 is guaranteed when an element is created, every quantity
here stays finite even when the two endpoints collapse onto each other
(L = 0 gives strain = -1). Only the direction is undefined in that case;
`element_geometry` returns a zero direction vector so that no force is
applied along it.

All functions take the index array `element_nodes` of shape (M, 2) holding
node ROW indices (not node ids) into the position array of shape (N, 2).
"""

import numpy as np
from typing import Optional, Tuple


def element_geometry(
    positions: np.ndarray,
    element_nodes: np.ndarray,
    out_direction: Optional[np.ndarray] = None,
    out_length: Optional[np.ndarray] = None,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Current lengths and unit directions (A -> B) of every element.

    Parameters:
    -----------
    positions : np.ndarray
        Node positions, shape (N, 2)
    element_nodes : np.ndarray
        Endpoint row indices, shape (M, 2)
    out_direction, out_length : np.ndarray, optional
        Preallocated buffers of shape (M, 2) and (M,). The integrator passes
        these so that its hot loop does not allocate.

    Returns:
    --------
    (lengths, directions) with shapes (M,) and (M, 2).
    Coincident endpoints give length 0 and direction (0, 0).
    """
    m = element_nodes.shape[0]
    if out_direction is None:
        out_direction = np.empty((m, 2), dtype=float)
    if out_length is None:
        out_length = np.empty(m, dtype=float)
    if m == 0:
        return out_length, out_direction

    np.subtract(positions[element_nodes[:, 1]], positions[element_nodes[:, 0]], out=out_direction)
    np.hypot(out_direction[:, 0], out_direction[:, 1], out=out_length)
    np.divide(
        out_direction,
        out_length[:, None],
        out=out_direction,
        where=out_length[:, None] > 0.0,
    )
    return out_length, out_direction


def element_lengths(positions: np.ndarray, element_nodes: np.ndarray) -> np.ndarray:
    """Current Euclidean length of every element, shape (M,)."""
    if element_nodes.shape[0] == 0:
        return np.zeros(0, dtype=float)
    delta = positions[element_nodes[:, 1]] - positions[element_nodes[:, 0]]
    return np.hypot(delta[:, 0], delta[:, 1])


def element_strains(lengths: np.ndarray, rest_length: np.ndarray) -> np.ndarray:
    """Engineering strain (L - L0) / L0."""
    return (lengths - rest_length) / rest_length


def element_stresses(
    lengths: np.ndarray,
    rest_length: np.ndarray,
    youngs_modulus: np.ndarray,
) -> np.ndarray:
    """Axial stress E·(L - L0)/L0 in Pa. Tension positive, compression negative."""
    return youngs_modulus * element_strains(lengths, rest_length)


def element_axial_forces(stresses: np.ndarray, area: np.ndarray) -> np.ndarray:
    """Axial force N = stress · A (N). Tension positive."""
    return stresses * area


def element_stress_ratios(stresses: np.ndarray, ultimate_strength: np.ndarray) -> np.ndarray:
    """
    Utilization |stress| / ultimate.

    Not clamped: a value above 1.0 means the member is (or is about to be)
    broken. Renderers clamp for colour mapping; the engine never does.
    """
    return np.abs(stresses) / ultimate_strength


def update_failure_flags(
    stresses: np.ndarray,
    yield_strength: np.ndarray,
    ultimate_strength: np.ndarray,
    yielded: np.ndarray,
    broken: np.ndarray,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Raise yield/break flags in place from the current stresses.

    The flags are monotone: this function only ever sets them. Clearing
    happens exclusively through Structure.reset() / Structure.clear().

    Returns:
    --------
    (newly_yielded, newly_broken) : boolean masks of shape (M,)
    """
    magnitude = np.abs(stresses)
    newly_yielded = (magnitude > yield_strength) & ~yielded
    newly_broken = (magnitude > ultimate_strength) & ~broken
    yielded |= newly_yielded
    broken |= newly_broken
    return newly_yielded, newly_broken


def truss2d_global_stiffness(c: float, s: float, stiffness: float) -> np.ndarray:
    """
    4×4 global stiffness matrix of a 2D truss bar.

    DOF order: [ux_i, uy_i, ux_j, uy_j]. With direction cosines c, s of
    the bar axis:

        ke = k × [  B  -B ]      B = [ c²  cs ]
                 [ -B   B ]          [ cs  s² ]
    """
    B = np.array([
        [c * c, c * s],
        [c * s, s * s],
    ], dtype=float)
    ke = np.zeros((4, 4), dtype=float)
    ke[0:2, 0:2] = B
    ke[0:2, 2:4] = -B
    ke[2:4, 0:2] = -B
    ke[2:4, 2:4] = B
    ke *= stiffness
    return ke
